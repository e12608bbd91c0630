"""
Paginated fetch orchestration over the address inventory.

Page state is an immutable `PageState`. Navigation is a set of pure transition functions,
each returning the next state plus the `FetchPage` command (or None) to run. `Pager` is the
thin shell that runs those commands against a record source and commits the results.

Each navigation bumps the state's generation; a fetch may only commit if its generation is
still current, so a slow page that lands after a newer one is discarded.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from typing import Iterable, Protocol

from records import MenuItem, PageWindow, Record
from server import RecordSourceError
from utils.pure import filter_records, page_count, page_window

logger = logging.getLogger(__name__)


class RecordSource(Protocol):
    async def menu_items(self) -> list[MenuItem]: ...

    async def customer_numbers(self) -> int: ...

    async def address(self, record_id: int) -> Record: ...


class PagerNotReady(RuntimeError):
    pass


@asynccontextmanager
async def timeit(label: str):
    loop = asyncio.get_running_loop()
    start = loop.time()
    yield
    end = loop.time()
    logger.debug("%s took %.2f seconds", label, end - start)


async def fetch_window(
    source: RecordSource, window: PageWindow, max_concurrency: int | None = None
) -> tuple[Record, ...]:
    """
    Reads every ID in `window` concurrently and returns the ones that succeeded.

    All reads are created as tasks up front; `max_concurrency` only limits how many are in
    flight at once. A failed read is logged and dropped, never retried. The result keeps
    issuance order, i.e. ascending ID, whatever order the reads complete in.
    """
    if window.is_empty:
        return ()
    sema4 = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def fetcher(record_id: int) -> Record | None:
        try:
            if sema4 is None:
                return await source.address(record_id)
            async with sema4:
                return await source.address(record_id)
        except RecordSourceError as e:
            logger.warning("Dropping record %d: %s", record_id, e)
            return None

    async with timeit(f"Fetching records {window.start}-{window.end}"):
        async with asyncio.TaskGroup() as tg:
            tasks = [
                tg.create_task(fetcher(record_id), name=str(record_id))
                for record_id in window
            ]
    fetched = []
    for task in tasks:
        record = task.result()
        if record is not None:
            fetched.append(record)
    if len(fetched) < len(window):
        logger.info(
            "Page %d-%d: %d of %d records fetched",
            window.start,
            window.end,
            len(fetched),
            len(window),
        )
    return tuple(fetched)


@dataclass(frozen=True)
class PageState:
    page_size: int = 10
    current_page: int = 1
    # None until the count fetch has settled
    total_count: int | None = None
    records: tuple[Record, ...] = ()
    query: str = ""
    generation: int = 0

    @property
    def is_ready(self) -> bool:
        return self.total_count is not None


@dataclass(frozen=True)
class FetchPage:
    window: PageWindow
    generation: int


Transition = tuple[PageState, FetchPage | None]


def with_count(state: PageState, total_count: int) -> PageState:
    return replace(state, total_count=total_count)


def counted(state: PageState, total_count: int, page: int = 1) -> Transition:
    """Records the total count and asks for the first page to show."""
    return navigate(with_count(state, total_count), page)


def navigate(state: PageState, page: int) -> Transition:
    if state.total_count is None:
        raise PagerNotReady("total count has not been fetched yet")
    window = page_window(page, state.page_size, state.total_count)
    generation = state.generation + 1
    return (
        replace(state, current_page=page, generation=generation),
        FetchPage(window=window, generation=generation),
    )


def can_next(state: PageState) -> bool:
    if state.total_count is None:
        return False
    return state.current_page * state.page_size < state.total_count


def can_previous(state: PageState) -> bool:
    return state.current_page > 1


def next_page(state: PageState) -> Transition:
    if not can_next(state):
        return state, None
    return navigate(state, state.current_page + 1)


def previous_page(state: PageState) -> Transition:
    if not can_previous(state):
        return state, None
    return navigate(state, max(state.current_page - 1, 1))


def loaded(state: PageState, generation: int, records: Iterable[Record]) -> PageState:
    if generation != state.generation:
        logger.debug(
            "Discarding stale page (generation %d, current %d)", generation, state.generation
        )
        return state
    return replace(state, records=tuple(records))


def with_query(state: PageState, query: str) -> PageState:
    return replace(state, query=query)


class PageWalker:
    """
    Async iterator yielding every page in order. The next page is only fetched when it is
    asked for, and the pager's own state is left untouched.
    """

    def __init__(
        self,
        source: RecordSource,
        page_size: int,
        total_count: int,
        max_concurrency: int | None = None,
    ):
        self.source = source
        self.page_size = page_size
        self.total_count = total_count
        self.max_concurrency = max_concurrency
        self.page = 0

    def __aiter__(self):
        return self

    async def __anext__(self) -> list[Record]:
        if self.page >= page_count(self.page_size, self.total_count):
            raise StopAsyncIteration
        self.page += 1
        window = page_window(self.page, self.page_size, self.total_count)
        return list(await fetch_window(self.source, window, self.max_concurrency))


class Pager:
    def __init__(
        self,
        source: RecordSource,
        page_size: int = 10,
        max_concurrency: int | None = None,
    ):
        self.source = source
        self.max_concurrency = max_concurrency
        self.state = PageState(page_size=page_size)
        self.menu: list[MenuItem] = []

    async def start(self, page: int = 1) -> None:
        """
        Fetches the total count, then the first page. The count is final for the session; if
        it cannot be fetched the pager has no pages rather than no bound.
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        total_count = await self._fetch_count()
        self.state, command = counted(self.state, total_count, page)
        await self._execute(command)

    async def count(self) -> int:
        """Fetches and commits the total count without loading a page."""
        total_count = await self._fetch_count()
        self.state = with_count(self.state, total_count)
        return total_count

    async def _fetch_count(self) -> int:
        try:
            return await self.source.customer_numbers()
        except RecordSourceError as e:
            logger.error("Could not fetch the total count, no pages available: %s", e)
            return 0

    async def load_menu(self) -> list[MenuItem]:
        try:
            self.menu = await self.source.menu_items()
        except RecordSourceError as e:
            logger.error("Could not fetch the menu: %s", e)
            self.menu = []
        return self.menu

    async def go_to_page(self, page: int) -> None:
        self.state, command = navigate(self.state, page)
        await self._execute(command)

    async def next(self) -> None:
        self.state, command = next_page(self.state)
        await self._execute(command)

    async def previous(self) -> None:
        self.state, command = previous_page(self.state)
        await self._execute(command)

    async def _execute(self, command: FetchPage | None) -> None:
        if command is None:
            return
        records = await fetch_window(self.source, command.window, self.max_concurrency)
        # read self.state after the await: other navigations may have landed meanwhile
        self.state = loaded(self.state, command.generation, records)

    @property
    def can_next(self) -> bool:
        return can_next(self.state)

    @property
    def can_previous(self) -> bool:
        return can_previous(self.state)

    @property
    def current_page(self) -> int:
        return self.state.current_page

    def get_current_page(self) -> list[Record]:
        return list(self.state.records)

    def get_filtered_page(self, query: str | None = None) -> list[Record]:
        if query is None:
            query = self.state.query
        return filter_records(self.state.records, query)

    def set_filter_query(self, query: str) -> None:
        self.state = with_query(self.state, query)

    def pages(self) -> PageWalker:
        if self.state.total_count is None:
            raise PagerNotReady("total count has not been fetched yet")
        return PageWalker(
            self.source,
            self.state.page_size,
            self.state.total_count,
            max_concurrency=self.max_concurrency,
        )
