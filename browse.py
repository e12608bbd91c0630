import asyncio
import csv
import inspect
import logging
import sys
from typing import Iterable

import uvloop

from pager import Pager
from records import MenuItem, Record
from server import Server
from settings import Settings, get_settings

COLUMNS = (
    ("First Name", "first_name"),
    ("Last Name", "last_name"),
    ("Street", "street"),
    ("Postcode", "postcode"),
    ("State", "region"),
    ("Country", "country"),
)


def render_table(records: Iterable[Record]) -> str:
    rows = [[title for title, _ in COLUMNS]]
    rows.extend([getattr(record, field) for _, field in COLUMNS] for record in records)
    widths = [max(len(row[i]) for row in rows) for i in range(len(COLUMNS))]
    lines = [
        "  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip()
        for row in rows
    ]
    lines.insert(1, "  ".join("-" * width for width in widths))
    return "\n".join(lines)


def render_menu(items: Iterable[MenuItem]) -> str:
    return " | ".join(f"{item.menu_item} <{item.href}>" for item in items)


def render_controls(pager: Pager) -> str:
    previous = "[p] Previous" if pager.can_previous else "    Previous"
    following = "Next [n]" if pager.can_next else "Next    "
    return f"{previous}    page {pager.current_page}    {following}"


class Browser:
    def __init__(self, server: Server, settings: Settings):
        self.server = server
        self.pager = Pager(
            server, page_size=settings.page_size, max_concurrency=settings.max_concurrency
        )

    def show(self) -> None:
        print(render_table(self.pager.get_filtered_page()))
        if self.pager.state.query:
            print(f"(street contains {self.pager.state.query!r})")
        print(render_controls(self.pager))

    async def menu(self):
        """
        Print the navigation menu
        """
        items = await self.pager.load_menu()
        print(render_menu(items) or "(no menu)")

    async def page(self, page: int | str = 1):
        """
        Print one page of the address table
        """
        await self.pager.start(int(page))
        self.show()

    async def search(self, query: str, page: int | str = 1):
        """
        Print one page, keeping only rows whose street contains the query
        """
        self.pager.set_filter_query(query)
        await self.page(page)

    async def export(self):
        """
        Write every record as CSV, one page at a time
        """
        await self.pager.count()
        writer = csv.writer(sys.stdout)
        writer.writerow(["id", *(field for _, field in COLUMNS)])
        async for records in self.pager.pages():
            for record in records:
                writer.writerow([record.id, *(getattr(record, field) for _, field in COLUMNS)])

    async def interactive(self):
        """
        Browse the table: `n` next, `p` previous, a number jumps to that page,
        `/text` filters by street, `q` quits
        """
        loop = asyncio.get_running_loop()
        menu, _ = await asyncio.gather(self.pager.load_menu(), self.pager.start())
        if menu:
            print(render_menu(menu))
        self.show()
        navigations: set[asyncio.Task[None]] = set()
        while True:
            try:
                command = (await asyncio.to_thread(input, "> ")).strip()
            except EOFError:
                break
            if command == "q":
                break
            if command.startswith("/"):
                # filtering works on the loaded page, no fetch
                self.pager.set_filter_query(command[1:])
                self.show()
                continue
            if command == "n":
                move = self.pager.next()
            elif command == "p":
                move = self.pager.previous()
            elif command.isdecimal() and int(command) >= 1:
                move = self.pager.go_to_page(int(command))
            else:
                print(inspect.getdoc(self.interactive))
                continue
            # navigation runs in the background so typing is never blocked on the network
            task = loop.create_task(self._navigate(move))
            navigations.add(task)
            task.add_done_callback(navigations.discard)
        if navigations:
            await asyncio.gather(*navigations)

    async def _navigate(self, move) -> None:
        await move
        self.show()


def commands(browser: Browser) -> list[str]:
    return [
        name
        for name in dir(browser)
        if not name.startswith("_") and inspect.iscoroutinefunction(getattr(browser, name))
    ]


async def run(argv: list[str], settings: Settings) -> int:
    async with Server.from_settings(settings) as server:
        browser = Browser(server, settings)
        if not argv:
            print("You forgot to type the name of the command you want. You can choose:")
        elif argv[0] not in commands(browser):
            print(f"`{argv[0]}` not recognised. You can choose:")
        else:
            coro = getattr(browser, argv[0])
            try:
                inspect.signature(coro).bind(*argv[1:])
            except TypeError as e:
                print(f"{argv[0]}: {e}")
                print(inspect.getdoc(coro))
                return 2
            try:
                await coro(*argv[1:])
            except ValueError as e:
                print(f"{argv[0]}: {e}")
                return 2
            return 0
        for name in commands(browser):
            print(" -", name, "-", inspect.getdoc(getattr(browser, name)).splitlines()[0])
        return 2


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    async_loop = uvloop.new_event_loop()
    asyncio.set_event_loop(async_loop)
    try:
        status = async_loop.run_until_complete(run(sys.argv[1:], settings))
    finally:
        async_loop.close()
    sys.exit(status)


if __name__ == "__main__":
    main()
