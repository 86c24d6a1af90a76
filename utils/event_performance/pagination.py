# utils/event_performance/pagination.py
"""
Pagination for event lists.

Convention: total_pages = ceil(count / page_size), so an empty
collection reports 0 pages. Requested page numbers are clamped into
[1, max(total_pages, 1)].
"""

import math
from dataclasses import dataclass, field
from typing import Generic, List, Optional, Sequence, TypeVar

from .constants import DEFAULT_PAGE_SIZE

T = TypeVar('T')


@dataclass
class Page(Generic[T]):
    items: List[T]
    total_pages: int
    page: int
    page_size: int
    total_count: int

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def start_index(self) -> int:
        """1-based index of the first item shown (0 when empty)."""
        return (self.page - 1) * self.page_size + 1 if self.items else 0

    @property
    def end_index(self) -> int:
        return self.start_index + len(self.items) - 1 if self.items else 0


def count_pages(count: int, page_size: int = DEFAULT_PAGE_SIZE) -> int:
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    return math.ceil(count / page_size) if count > 0 else 0


def paginate(items: Sequence[T], page_size: int = DEFAULT_PAGE_SIZE, page: int = 1) -> Page[T]:
    """
    Slice a filtered, sorted collection into one page.

    Args:
        items: Already filtered and sorted collection
        page_size: Items per page (> 0)
        page: 1-based page number; clamped to the valid range

    Returns:
        Page with the slice and paging metadata
    """
    items = list(items)
    total_pages = count_pages(len(items), page_size)
    page = max(1, min(int(page or 1), max(total_pages, 1)))

    start = (page - 1) * page_size
    return Page(
        items=items[start:start + page_size],
        total_pages=total_pages,
        page=page,
        page_size=page_size,
        total_count=len(items),
    )


@dataclass
class PaginationState:
    """
    Current page for a list view.

    sync() must be called with the active filter signature on every render;
    any change in the signature sends the view back to page 1.
    """
    page: int = 1
    filter_signature: Optional[tuple] = field(default=None)

    def sync(self, signature: tuple) -> 'PaginationState':
        if signature != self.filter_signature:
            self.filter_signature = signature
            self.page = 1
        return self

    def go_to(self, page: int, total_pages: int) -> 'PaginationState':
        self.page = max(1, min(page, max(total_pages, 1)))
        return self

    def next(self, total_pages: int) -> 'PaginationState':
        return self.go_to(self.page + 1, total_pages)

    def previous(self, total_pages: int) -> 'PaginationState':
        return self.go_to(self.page - 1, total_pages)
