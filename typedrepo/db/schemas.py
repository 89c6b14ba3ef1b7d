"""
Pydantic result schemas returned by repositories.
"""
import math
from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class PagedResult(BaseModel, Generic[T]):
    """One page of records plus the total count across all pages."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: List[T]
    total_count: int
    page_index: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_previous_page(self) -> bool:
        return self.page_index > 0

    @property
    def has_next_page(self) -> bool:
        return self.page_index + 1 < self.total_pages
