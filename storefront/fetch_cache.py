"""Paged fetch cache: infinite-query state keyed by filter fingerprint.

One ``FetchCacheEntry`` per fingerprint accumulates pages in order. Pages
are fetched strictly one after another: page N+1 is only requested once
page N has resolved, and at most one request per entry is in flight. When
the active filters change, entries for other fingerprints are dropped; a
response that arrives for a dropped entry (or for a page number that is no
longer next) is discarded instead of being merged.

Everything runs on a single asyncio loop. Only an entry's own fetch task
mutates its page list.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from storefront.errors import MalformedPayloadError
from storefront.logging_config import log_event
from storefront.models import FilterState, Page, Product

__all__ = ["PagedFetchCache", "FetchCacheEntry", "InfiniteQuery", "PageFetcher"]

logger = logging.getLogger(__name__)

PageFetcher = Callable[[FilterState, int], Awaitable[Page]]


@dataclass
class FetchCacheEntry:
    """Accumulated pages and fetch status for one filter fingerprint."""

    fingerprint: str
    filters: FilterState
    pages: List[Page] = field(default_factory=list)
    in_flight: Optional["asyncio.Task[None]"] = None
    error: Optional[BaseException] = None

    @property
    def next_page_number(self) -> Optional[int]:
        """Page to request next, or None when the last page has been fetched."""
        if not self.pages:
            return 1
        last = self.pages[-1]
        return last.page + 1 if last.has_next_page else None


class InfiniteQuery:
    """View of one cache entry, as handed to the list renderer."""

    def __init__(self, cache: "PagedFetchCache", entry: FetchCacheEntry):
        self._cache = cache
        self._entry = entry

    @property
    def fingerprint(self) -> str:
        return self._entry.fingerprint

    @property
    def filters(self) -> FilterState:
        return self._entry.filters

    @property
    def pages(self) -> Tuple[Page, ...]:
        return tuple(self._entry.pages)

    @property
    def all_products(self) -> List[Product]:
        """Items of every fetched page, in page order."""
        return [item for page in self._entry.pages for item in page.items]

    @property
    def total_count(self) -> int:
        return self._entry.pages[-1].total_count if self._entry.pages else 0

    @property
    def has_next_page(self) -> bool:
        return bool(self._entry.pages) and self._entry.pages[-1].has_next_page

    @property
    def is_fetching(self) -> bool:
        return self._entry.in_flight is not None

    @property
    def is_loading(self) -> bool:
        """First page still pending."""
        return self.is_fetching and not self._entry.pages

    @property
    def is_fetching_next_page(self) -> bool:
        return self.is_fetching and bool(self._entry.pages)

    @property
    def is_error(self) -> bool:
        return self._entry.error is not None

    @property
    def error(self) -> Optional[BaseException]:
        return self._entry.error

    @property
    def is_active(self) -> bool:
        return self._cache.is_current(self._entry)

    async def fetch_next_page(self) -> None:
        await self._cache.fetch_next_page(self._entry)

    def prefetch_next_page(self) -> Optional["asyncio.Task[None]"]:
        return self._cache.prefetch_next_page(self._entry)

    async def retry(self) -> None:
        """Re-issue the request that failed (same fingerprint, same page)."""
        await self._cache.fetch_next_page(self._entry)


class PagedFetchCache:
    """Cache of infinite queries over a page fetcher."""

    def __init__(self, fetch_page: PageFetcher):
        self._fetch_page = fetch_page
        self._entries: Dict[str, FetchCacheEntry] = {}
        self._active_key: Optional[str] = None

    @property
    def active_key(self) -> Optional[str]:
        return self._active_key

    def get(self, filters: FilterState) -> InfiniteQuery:
        """Return the query for ``filters``, making its fingerprint active.

        Switching to a new fingerprint discards every other entry, so the
        list for the new filters starts again at page 1.
        """
        key = filters.fingerprint()
        if key != self._active_key:
            discarded = [k for k in self._entries if k != key]
            for old_key in discarded:
                del self._entries[old_key]
            if self._active_key is not None:
                log_event(
                    "filters_changed",
                    {"fingerprint": key, "discarded": len(discarded)},
                    level=logging.DEBUG,
                )
            self._active_key = key

        entry = self._entries.get(key)
        if entry is None:
            entry = FetchCacheEntry(fingerprint=key, filters=filters)
            self._entries[key] = entry
        return InfiniteQuery(self, entry)

    def is_current(self, entry: FetchCacheEntry) -> bool:
        return self._entries.get(entry.fingerprint) is entry

    async def fetch_next_page(self, entry: FetchCacheEntry) -> None:
        """Fetch the entry's next page.

        Does nothing when the entry was discarded or has no next page. While
        a fetch is in flight, waits for that fetch instead of issuing a
        second request.
        """
        if entry.in_flight is not None:
            await asyncio.shield(entry.in_flight)
            return

        task = self._start_fetch(entry)
        if task is not None:
            await asyncio.shield(task)

    def prefetch_next_page(self, entry: FetchCacheEntry) -> Optional["asyncio.Task[None]"]:
        """Start fetching the next page in the background.

        Returns the in-flight task, or None when there is nothing to fetch.
        """
        if entry.in_flight is not None:
            return entry.in_flight
        return self._start_fetch(entry)

    def _start_fetch(self, entry: FetchCacheEntry) -> Optional["asyncio.Task[None]"]:
        if not self.is_current(entry):
            return None
        page_number = entry.next_page_number
        if page_number is None:
            return None

        entry.error = None
        entry.in_flight = asyncio.get_running_loop().create_task(self._run_fetch(entry, page_number))
        log_event(
            "fetch_issued",
            {"fingerprint": entry.fingerprint, "page": page_number},
            level=logging.DEBUG,
        )
        return entry.in_flight

    async def _run_fetch(self, entry: FetchCacheEntry, page_number: int) -> None:
        try:
            page = await self._fetch_page(entry.filters, page_number)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._on_failure(entry, page_number, e)
        else:
            self._on_success(entry, page_number, page)
        finally:
            entry.in_flight = None

    def _on_success(self, entry: FetchCacheEntry, page_number: int, page: Page) -> None:
        expected = len(entry.pages) + 1
        if not self.is_current(entry) or page_number != expected:
            log_event(
                "fetch_stale",
                {
                    "message": "Discarding stale page response",
                    "fingerprint": entry.fingerprint,
                    "page": page_number,
                    "active_fingerprint": self._active_key,
                },
                level=logging.DEBUG,
            )
            return
        if page.page != page_number:
            self._on_failure(
                entry,
                page_number,
                MalformedPayloadError(f"Requested page {page_number}, received page {page.page}"),
            )
            return

        entry.pages.append(page)
        log_event(
            "fetch_resolved",
            {
                "fingerprint": entry.fingerprint,
                "page": page_number,
                "items": len(page.items),
                "total_count": page.total_count,
                "has_next_page": page.has_next_page,
            },
            level=logging.DEBUG,
        )

    def _on_failure(self, entry: FetchCacheEntry, page_number: int, error: Exception) -> None:
        if not self.is_current(entry):
            logger.debug("Ignoring failure for discarded query %s page %d", entry.fingerprint, page_number)
            return
        entry.error = error
        logger.warning("Failed to fetch page %d for %s: %s", page_number, entry.fingerprint, error)
        log_event(
            "fetch_failed",
            {"fingerprint": entry.fingerprint, "page": page_number, "error": str(error)},
            level=logging.WARNING,
        )
