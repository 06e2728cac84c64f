"""Lazy iteration over paginated API7 Cloud list endpoints.

A list endpoint answers ``GET <path>?page=N&page_size=M`` with the payload
``{"list": [...], "count": total}``. The iterator fetches one page at a
time, buffers its items and hands them out one by one in server order.
An empty page is the only end-of-stream signal.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import AsyncIterator, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from .errors import CloudClientError, CloudDecodeError, CloudIterationError
from .http import Headers, HttpTransport

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10


@dataclass
class Pagination:
    """Paging cursor.

    Attributes:
        page: 1-based page to fetch next.
        page_size: How many items are in a page.
    """

    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE

    def step(self) -> None:
        self.page += 1


def merge_pagination(paging: Pagination | None) -> Pagination:
    """Return a copy of paging with non-positive fields set to defaults."""
    if paging is None:
        return Pagination()
    return Pagination(
        page=paging.page if paging.page > 0 else DEFAULT_PAGE,
        page_size=paging.page_size if paging.page_size > 0 else DEFAULT_PAGE_SIZE,
    )


@dataclass(frozen=True)
class Filter:
    """Conditions to filter out list results."""

    search: str = ""

    def to_query(self) -> dict[str, str]:
        query: dict[str, str] = {}
        if self.search:
            query["search"] = self.search
        return query


@dataclass(frozen=True)
class ListEnvelope:
    """One page as returned by a list endpoint."""

    items: list[Any]
    count: int

    @classmethod
    def from_payload(cls, payload: Any) -> ListEnvelope:
        """Decode a list payload. A missing payload or list is an empty page."""
        if payload is None:
            return cls(items=[], count=0)
        if not isinstance(payload, Mapping):
            raise TypeError(f"expected JSON object, got {type(payload).__name__}")
        items = payload.get("list") or []
        if not isinstance(items, list):
            raise TypeError(f"expected list, got {type(items).__name__}")
        count = int(payload.get("count") or 0)
        if count < 0:
            raise ValueError(f"negative count: {count}")
        return cls(items=items, count=count)


class IteratorState(Enum):
    """Where an iterator stands."""

    ACTIVE = "active"
    DRAINING = "draining"
    EXHAUSTED = "exhausted"


class ListIterator(Generic[T]):
    """Pull-based iterator over one list endpoint.

    Items are passed through ``decoder`` when one is given, otherwise the
    raw JSON values are returned. Not safe for concurrent ``next()`` calls;
    one task owns an iterator.

    Usage:
        iterator = ListIterator(transport, "/api/v1/controlplanes/1/apps")
        while (item := await iterator.next()) is not None:
            ...
        # or
        async for item in iterator:
            ...
    """

    def __init__(
        self,
        client: HttpTransport,
        path: str,
        *,
        pagination: Pagination | None = None,
        filter: Filter | None = None,
        headers: Headers | None = None,
        decoder: Callable[[Any], T] | None = None,
        resource: str = "resources",
    ) -> None:
        self._client = client
        self._path = path
        self._paging = merge_pagination(pagination)
        self._filter = filter
        self._headers = dict(headers) if headers else None
        self._decoder = decoder
        self._resource = resource
        self._items: deque[Any] = deque()
        self._eof = False

    @property
    def pagination(self) -> Pagination:
        """Copy of the cursor for the next fetch."""
        return Pagination(page=self._paging.page, page_size=self._paging.page_size)

    @property
    def state(self) -> IteratorState:
        if self._eof:
            return IteratorState.EXHAUSTED
        if self._items:
            return IteratorState.DRAINING
        return IteratorState.ACTIVE

    def _query(self) -> dict[str, str | int]:
        query: dict[str, str | int] = {
            "page": self._paging.page,
            "page_size": self._paging.page_size,
        }
        if self._filter is not None:
            query.update(self._filter.to_query())
        return query

    async def _fetch(self) -> None:
        try:
            page: ListEnvelope = await self._client.send_get_request(
                self._path,
                query=self._query(),
                decoder=ListEnvelope.from_payload,
                headers=self._headers,
            )
        except CloudClientError as err:
            raise CloudIterationError("list resources", err) from err

        _LOGGER.debug(
            "Fetched %d %s from %s (page %d, page size %d)",
            len(page.items),
            self._resource,
            self._path,
            self._paging.page,
            self._paging.page_size,
        )
        if not page.items:
            self._eof = True
            return
        self._items.extend(page.items)
        self._paging.step()

    async def next(self) -> T | None:
        """Return the next item, or None once the list is exhausted.

        Raises:
            CloudIterationError: If fetching a page failed. Nothing is
                consumed; calling again refetches the same page.
            CloudDecodeError: If the caller decoder rejects an item. The
                item is consumed.
        """
        if self._eof:
            return None
        if not self._items:
            await self._fetch()
            if self._eof:
                return None

        raw = self._items.popleft()
        if self._decoder is None:
            return raw  # type: ignore[no-any-return]
        try:
            return self._decoder(raw)
        except (ValueError, TypeError, KeyError) as err:
            raise CloudDecodeError(f"decode {self._resource} item", str(err)) from err

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iter_items()

    async def _iter_items(self) -> AsyncIterator[T]:
        while (item := await self.next()) is not None:
            yield item
