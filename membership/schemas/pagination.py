from __future__ import annotations

import math
from typing import Any, Callable, Generic, List, Literal, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Sort(BaseModel):
    """One ordering criterion of a page request."""
    model_config = ConfigDict(frozen=True)

    field: str = Field(..., min_length=1, description="Mapped attribute name")
    direction: Literal["asc", "desc"] = Field("asc", description="Sort direction")

    @classmethod
    def asc(cls, field: str) -> "Sort":
        return cls(field=field, direction="asc")

    @classmethod
    def desc(cls, field: str) -> "Sort":
        return cls(field=field, direction="desc")


# PUBLIC_INTERFACE
class PageRequest(BaseModel):
    """Page index (0-based), page size and optional sort order."""
    model_config = ConfigDict(frozen=True)

    page: int = Field(0, ge=0, description="0-based page index")
    size: int = Field(20, ge=1, description="Number of records per page")
    sort: Tuple[Sort, ...] = Field(default=(), description="Ordering; store default when empty")

    @classmethod
    def of(cls, page: int, size: int, *sort: Sort) -> "PageRequest":
        return cls(page=page, size=size, sort=tuple(sort))

    @property
    def offset(self) -> int:
        return self.page * self.size

    def next(self) -> "PageRequest":
        return self.model_copy(update={"page": self.page + 1})


# PUBLIC_INTERFACE
class Page(BaseModel, Generic[T]):
    """One page of results plus the total element count of the whole query."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    content: List[T] = Field(default_factory=list)
    page: int = Field(0, ge=0)
    size: int = Field(..., ge=1)
    total_elements: int = Field(0, ge=0)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_elements / self.size)

    @property
    def number_of_elements(self) -> int:
        return len(self.content)

    @property
    def has_content(self) -> bool:
        return bool(self.content)

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 0

    @property
    def is_first(self) -> bool:
        return not self.has_previous

    @property
    def is_last(self) -> bool:
        return not self.has_next

    def map(self, fn: Callable[[T], Any]) -> "Page[Any]":
        """Convert the content (e.g. entities to DTOs) keeping the paging metadata."""
        return Page(
            content=[fn(item) for item in self.content],
            page=self.page,
            size=self.size,
            total_elements=self.total_elements,
        )
