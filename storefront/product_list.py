"""Product list state: filters, paged cache and viewport triggers wired together.

The list renders every fetched page. Two sentinels sit at the end of the
rendered content: the near trigger loads the next page, the far trigger
(larger margin) prefetches it in the background. When the filters change
the old trigger pair is disconnected and a fresh pair is bound to the new
query, which starts again at page 1.
"""

import asyncio
import logging
from typing import Any, List, Optional

from storefront.config import FAR_TRIGGER_MARGIN, NEAR_TRIGGER_MARGIN, TRIGGER_THRESHOLD
from storefront.fetch_cache import InfiniteQuery, PagedFetchCache
from storefront.filter_state import FilterStateStore
from storefront.models import FilterState, Product
from storefront.viewport import ScrollViewport, Sentinel, ViewportTrigger

__all__ = ["ProductListState", "format_product"]

logger = logging.getLogger(__name__)


def format_product(product: Product) -> str:
    line = f"#{product.id} {product.title}"
    if product.brand:
        line += f" | {product.brand}"
    if product.sale_price:
        line += f" | {product.sale_price}"
    if product.sizes:
        line += f" | sizes: {product.sizes}"
    return line


class ProductListState:
    """Infinite-scrolling product list bound to a filter store."""

    def __init__(
        self,
        store: FilterStateStore,
        cache: PagedFetchCache,
        viewport: ScrollViewport,
        item_height: float = 100.0,
        near_margin: float = NEAR_TRIGGER_MARGIN,
        far_margin: float = FAR_TRIGGER_MARGIN,
        threshold: float = TRIGGER_THRESHOLD,
    ):
        self.store = store
        self.cache = cache
        self.viewport = viewport
        self.item_height = item_height
        self.near_margin = near_margin
        self.far_margin = far_margin
        self.threshold = threshold

        self.query: InfiniteQuery = cache.get(store.filters)
        self.near_trigger: Optional[ViewportTrigger] = None
        self.far_trigger: Optional[ViewportTrigger] = None
        self._prefetch_tasks: List["asyncio.Task[Any]"] = []
        self._mounted = False
        self._unsubscribe = store.subscribe(self._on_filters_changed)

    # ---------- derived state ----------

    @property
    def filters(self) -> FilterState:
        return self.store.filters

    @property
    def products(self) -> List[Product]:
        return self.query.all_products

    @property
    def total_count(self) -> int:
        return self.query.total_count

    @property
    def is_loading(self) -> bool:
        return self.query.is_loading

    @property
    def is_fetching_next_page(self) -> bool:
        return self.query.is_fetching_next_page

    @property
    def has_next_page(self) -> bool:
        return self.query.has_next_page

    @property
    def is_error(self) -> bool:
        return self.query.is_error

    @property
    def error(self) -> Optional[BaseException]:
        return self.query.error

    @property
    def content_height(self) -> float:
        return len(self.products) * self.item_height

    # ---------- lifecycle ----------

    def mount(self) -> None:
        """Bind the sentinels; the first page is requested as soon as they are visible."""
        self._mounted = True
        self._bind_triggers()

    def close(self) -> None:
        self._mounted = False
        self._unsubscribe()
        self._unbind_triggers()

    async def retry(self) -> None:
        query = self.query
        before = len(query.pages)
        await query.retry()
        self._after_fetch(query, before)

    async def wait_idle(self) -> None:
        """Wait until no fetch or trigger task is pending."""
        while True:
            pending = self._pending_tasks()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
                continue
            # Let done-callbacks run; they may bind new triggers.
            await asyncio.sleep(0)
            if not self.query.is_fetching and not self._pending_tasks():
                return

    def _pending_tasks(self) -> List["asyncio.Task[Any]"]:
        pending = [t for t in self._prefetch_tasks if not t.done()]
        for trigger in (self.near_trigger, self.far_trigger):
            if trigger is not None:
                pending.extend(trigger.pending_tasks)
        return pending

    # ---------- triggers ----------

    def _bind_triggers(self) -> None:
        self._unbind_triggers()
        query = self.query
        if query.pages and not query.has_next_page:
            return

        self.near_trigger = ViewportTrigger(
            self.viewport,
            lambda: self._load_more(query),
            root_margin=self.near_margin,
            threshold=self.threshold,
        )
        self.far_trigger = ViewportTrigger(
            self.viewport,
            lambda: self._prefetch(query),
            root_margin=self.far_margin,
            threshold=self.threshold,
        )
        end = self.content_height
        self.near_trigger.observe(Sentinel(top=end))
        self.far_trigger.observe(Sentinel(top=end))

    def _unbind_triggers(self) -> None:
        for trigger in (self.near_trigger, self.far_trigger):
            if trigger is not None:
                trigger.disconnect()
        self.near_trigger = None
        self.far_trigger = None

    async def _load_more(self, query: InfiniteQuery) -> None:
        before = len(query.pages)
        await query.fetch_next_page()
        self._after_fetch(query, before)

    def _prefetch(self, query: InfiniteQuery) -> None:
        if not query.has_next_page:
            return
        before = len(query.pages)
        task = query.prefetch_next_page()
        if task is None:
            return
        self._prefetch_tasks = [t for t in self._prefetch_tasks if not t.done()]
        self._prefetch_tasks.append(task)
        task.add_done_callback(lambda _t: self._after_fetch(query, before))

    def _after_fetch(self, query: InfiniteQuery, pages_before: int) -> None:
        # Layout only moves when the current query gained a page.
        if query is not self.query or len(query.pages) == pages_before:
            return
        self._bind_triggers()

    def _on_filters_changed(self, filters: FilterState) -> None:
        query = self.cache.get(filters)
        if query.fingerprint == self.query.fingerprint:
            return
        logger.info("Filters changed, restarting list: %s", filters.to_dict())
        self._unbind_triggers()
        self.query = query
        self.viewport.scroll_top = 0.0
        if self._mounted:
            self._bind_triggers()

    # ---------- rendering ----------

    def render(self) -> List[str]:
        """Plain-text rendering of the list."""
        lines: List[str] = []
        search = self.filters.search
        if search and not self.is_loading:
            noun = "result" if self.total_count == 1 else "results"
            lines.append(f'{self.total_count} {noun} for "{search}"')

        lines.extend(format_product(p) for p in self.products)

        if self.is_loading:
            lines.append("Loading products...")
        elif self.is_fetching_next_page:
            lines.append("Loading more products...")

        if self.is_error:
            lines.append(f"Failed to load products: {self.error}. Try again.")
        elif not self.products and not self.query.is_fetching and self.query.pages:
            lines.append("No products found.")

        return lines
