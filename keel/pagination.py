from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Iterator, List, Mapping, Optional, Set, TypeVar

from .errors import PaginationCycleDetected
from .models import Page

logger = logging.getLogger(__name__)

T = TypeVar("T")

PageFetcher = Callable[[Mapping[str, Any], Optional[str], Optional[int]], Page]


class PagedIterable(Generic[T]):
    """
    Lazy view over every item of a cursor-paginated listing.

    Nothing is fetched until iteration starts, and each new iteration walks
    the listing again from the first page. A fetch failure propagates out of
    the iterator after the items of earlier pages have been yielded.
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        filters: Mapping[str, Any],
        page_size: Optional[int] = None,
    ) -> None:
        self._fetch_page = fetch_page
        self._filters = dict(filters)
        self._page_size = page_size

    def __iter__(self) -> Iterator[T]:
        cursor: Optional[str] = None
        seen: Set[str] = set()
        pages = 0

        while True:
            page = self._fetch_page(self._filters, cursor, self._page_size)
            pages += 1
            yield from page.items

            if page.next_cursor is None:
                logger.debug("Listing finished after %d page(s)", pages)
                return

            if page.next_cursor in seen:
                raise PaginationCycleDetected(page.next_cursor, pages)
            seen.add(page.next_cursor)
            cursor = page.next_cursor

    def to_list(self) -> List[T]:
        return list(self)


class PaginatedLister:
    """
    Drains a cursor-based list endpoint.

    `fetch_page(filters, cursor, page_size)` returns one Page. The same
    filters are sent with every request; only the cursor changes.
    """

    def __init__(self, fetch_page: PageFetcher) -> None:
        self._fetch_page = fetch_page

    def list_all(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        page_size: Optional[int] = None,
    ) -> PagedIterable:
        if page_size is not None and page_size <= 0:
            raise ValueError(f"page_size must be > 0, got {page_size}")
        return PagedIterable(self._fetch_page, filters or {}, page_size)


def list_all(
    fetch_page: PageFetcher,
    filters: Optional[Mapping[str, Any]] = None,
    page_size: Optional[int] = None,
) -> PagedIterable:
    return PaginatedLister(fetch_page).list_all(filters, page_size)
