from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """One row of the address inventory."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    first_name: str
    last_name: str
    street: str
    postcode: str
    region: str = Field(alias="state")
    country: str


class MenuItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    menu_item: str
    href: str


@dataclass(frozen=True)
class PageWindow:
    """
    Inclusive range of record IDs backing one page.

    A window with `start > end` is empty and must never reach the server.
    """

    start: int
    end: int

    @classmethod
    def empty(cls, start: int) -> "PageWindow":
        return cls(start=start, end=start - 1)

    @property
    def is_empty(self) -> bool:
        return self.start > self.end

    def __len__(self) -> int:
        return max(self.end - self.start + 1, 0)

    def __iter__(self):
        return iter(range(self.start, self.end + 1))
