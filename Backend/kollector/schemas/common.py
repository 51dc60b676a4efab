from pydantic import BaseModel
from typing import Generic, List, TypeVar

from kollector.repositories.base import Page

T = TypeVar("T")


class PagedResult(BaseModel, Generic[T]):
    items: List[T] = []
    page: int
    page_size: int
    total_count: int
    total_pages: int
    has_previous: bool
    has_next: bool

    @classmethod
    def from_page(cls, page: Page, items: List[T]) -> "PagedResult[T]":
        """Build the API shape from a repository page and its mapped items."""
        return cls(
            items=items,
            page=page.page,
            page_size=page.page_size,
            total_count=page.total_count,
            total_pages=page.total_pages,
            has_previous=page.has_previous,
            has_next=page.has_next
        )
