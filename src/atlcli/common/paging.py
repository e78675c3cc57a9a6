"""Paged list responses and sequential page traversal.

Two response shapes are understood:

* start-index pages (Bitbucket Server and friends):
  ``{"values": [...], "size", "limit", "start", "isLastPage", "nextPageStart"}``
* next-link pages (Bitbucket Cloud):
  ``{"values": [...], "size", "page", "pagelen", "next"}``
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from atlcli.common.models import from_payload

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _Envelope:
    values: list[Any] = field(default_factory=list)
    size: int | None = None
    limit: int | None = None
    start: int | None = None
    is_last_page: bool | None = None
    next_page_start: int | None = None
    page: int | None = None
    pagelen: int | None = None
    next: str | None = None


@dataclass
class PagedResult(Generic[T]):
    """One page of a list endpoint.

    ``is_last_page`` is None when the server sent no last-page flag at all.
    """

    values: list[T] = field(default_factory=list)
    size: int = 0
    limit: int = 0
    start: int = 0
    is_last_page: bool | None = None
    next_page_start: int | None = None
    next_url: str | None = None

    @classmethod
    def from_payload(cls, data: Any, item_type: type[T], *, operation: str, resource: str) -> PagedResult[T]:
        """Map a decoded page of either shape, mapping each value onto ``item_type``."""
        envelope = from_payload(_Envelope, data, operation=operation, resource=resource)
        values = from_payload(list[item_type], envelope.values, operation=operation, resource=resource)
        size = envelope.size if envelope.size is not None else len(values)

        if envelope.page is not None or envelope.pagelen is not None or envelope.next is not None:
            pagelen = envelope.pagelen or len(values)
            page_number = envelope.page or 1
            return cls(
                values=values,
                size=size,
                limit=pagelen,
                start=(page_number - 1) * pagelen,
                is_last_page=envelope.next is None,
                next_url=envelope.next,
            )

        is_last_page = envelope.is_last_page
        next_page_start = envelope.next_page_start
        if is_last_page:
            next_page_start = None
        return cls(
            values=values,
            size=size,
            limit=envelope.limit or 0,
            start=envelope.start or 0,
            is_last_page=is_last_page,
            next_page_start=next_page_start,
        )


@dataclass
class Cursor:
    """Where the next page starts: a start index, or an absolute next-page URL."""

    start: int
    url: str | None = None


def next_cursor(page: PagedResult, current: Cursor, limit: int) -> Cursor | None:
    """Work out where the page after ``page`` starts, or None if traversal is done.

    A last-page flag always wins over any cursor the server also sent. An
    empty page ends traversal. When the server says the page is not the last
    one but gives no cursor, the next start is ``start + limit`` provided the
    page came back full; a short page is treated as the last one.
    """
    if page.is_last_page:
        return None
    if not page.values:
        logger.debug("Empty page received, stopping pagination")
        return None

    following = current.start + len(page.values)

    if page.next_url:
        return Cursor(start=following, url=page.next_url)

    if page.next_page_start is not None:
        if page.next_page_start <= current.start:
            logger.warning(
                f"Server returned nextPageStart={page.next_page_start} at start={current.start}, stopping pagination"
            )
            return None
        return Cursor(start=page.next_page_start)

    if page.is_last_page is False and len(page.values) >= limit:
        logger.debug(f"No nextPageStart on a full page, advancing to start={current.start + limit}")
        return Cursor(start=current.start + limit)

    logger.debug("No pagination cursor received, treating page as the last one")
    return None


def collect_pages(fetch_page: Callable[[Cursor], PagedResult[T]], limit: int) -> list[T]:
    """Fetch pages one after another until the last one, returning all values in order.

    Args:
        fetch_page: Called with the cursor of each page to fetch; the first
            call gets ``Cursor(start=0)``.
        limit: The page size requested from the server.
    """
    items: list[T] = []
    cursor: Cursor | None = Cursor(start=0)
    seen_urls: set[str] = set()
    pages = 0

    while cursor is not None:
        page = fetch_page(cursor)
        pages += 1
        items.extend(page.values)

        cursor = next_cursor(page, cursor, limit)
        if cursor is not None and cursor.url is not None:
            if cursor.url in seen_urls:
                logger.warning(f"Next page URL repeated ({cursor.url}), stopping pagination")
                break
            seen_urls.add(cursor.url)

    logger.debug(f"Collected {len(items)} items over {pages} page(s)")
    return items
