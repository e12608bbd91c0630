from math import ceil
from typing import Iterable

from records import PageWindow, Record


def page_window(page: int, page_size: int, total_count: int) -> PageWindow:
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    if total_count < 0:
        raise ValueError(f"total_count must be >= 0, got {total_count}")
    start = (page - 1) * page_size + 1
    if start > total_count:
        return PageWindow.empty(start)
    return PageWindow(start=start, end=min(total_count, start + page_size - 1))


def page_count(page_size: int, total_count: int) -> int:
    return ceil(total_count / page_size)


def filter_records(records: Iterable[Record], query: str) -> list[Record]:
    """
    Case-insensitive substring match on the street field. An empty query keeps everything.
    """
    needle = query.casefold()
    return [record for record in records if needle in record.street.casefold()]
