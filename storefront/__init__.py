"""Product catalog browsing: filtered, paginated, infinitely scrolling lists."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from storefront.catalog import Catalog, load_catalog
from storefront.client import ApiPageFetcher, LocalPageFetcher
from storefront.config import PAGE_SIZE
from storefront.errors import (
    CatalogLoadError,
    FetchError,
    InvalidPageError,
    MalformedPayloadError,
    NavigationError,
    StorefrontError,
)
from storefront.fetch_cache import InfiniteQuery, PagedFetchCache
from storefront.filter_state import FilterStateStore, InMemoryLocation, Location
from storefront.filters import SearchDebouncer, SizeFilterOptions, toggle_size
from storefront.models import FilterState, Page, Product
from storefront.product_list import ProductListState
from storefront.query import query_products
from storefront.viewport import ScrollViewport, Sentinel, ViewportTrigger

__all__ = [
    # Version
    "__version__",
    # Config
    "PAGE_SIZE",
    # Models
    "Product",
    "FilterState",
    "Page",
    # Core
    "Catalog",
    "load_catalog",
    "query_products",
    "FilterStateStore",
    "Location",
    "InMemoryLocation",
    "SearchDebouncer",
    "SizeFilterOptions",
    "toggle_size",
    "PagedFetchCache",
    "InfiniteQuery",
    "ApiPageFetcher",
    "LocalPageFetcher",
    "ScrollViewport",
    "Sentinel",
    "ViewportTrigger",
    "ProductListState",
    # Errors
    "StorefrontError",
    "FetchError",
    "MalformedPayloadError",
    "InvalidPageError",
    "NavigationError",
    "CatalogLoadError",
]
