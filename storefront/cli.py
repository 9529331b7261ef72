"""Command-line interface: serve the catalog API or browse it headlessly."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional
from urllib.parse import urlencode

from storefront.catalog import load_catalog
from storefront.client import ApiPageFetcher, LocalPageFetcher
from storefront.config import API_BASE_URL, FLASK_DEBUG, FLASK_HOST, FLASK_PORT, LOG_LEVEL, PRODUCTS_PATH
from storefront.errors import CatalogLoadError
from storefront.fetch_cache import PagedFetchCache
from storefront.filter_state import FilterStateStore, InMemoryLocation
from storefront.filters import SizeFilterOptions
from storefront.logging_config import setup_logging
from storefront.models import FilterState
from storefront.product_list import ProductListState
from storefront.viewport import ScrollViewport

__all__ = ["main", "parse_args", "browse"]

logger = logging.getLogger(__name__)


async def browse(
    fetch_page,
    query_string: str = "",
    max_pages: int = 1,
    viewport_height: float = 800.0,
    item_height: float = 100.0,
) -> ProductListState:
    """Open the list for ``query_string`` and scroll until ``max_pages`` pages are loaded.

    Scrolling stops early when the list is exhausted or a fetch fails.
    """
    store = FilterStateStore(InMemoryLocation(query_string))
    cache = PagedFetchCache(fetch_page)
    viewport = ScrollViewport(height=viewport_height)
    state = ProductListState(store, cache, viewport, item_height=item_height)

    state.mount()
    await state.wait_idle()

    while len(state.query.pages) < max_pages and state.has_next_page and not state.is_error:
        loaded = len(state.query.pages)
        viewport.scroll_to(state.content_height - viewport.height)
        await state.wait_idle()
        if len(state.query.pages) == loaded:
            break

    state.close()
    return state


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Product catalog with filtered, infinitely scrolling pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve the products API
  python -m storefront.cli serve --port 5000

  # Browse the first two pages of "shirt" results in sizes S or M from the API
  python -m storefront.cli browse --search shirt --sizes S,M --pages 2

  # Browse the local data file without a server
  python -m storefront.cli browse --local --products data/products.json
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the Flask products API")
    serve.add_argument("--host", default=FLASK_HOST)
    serve.add_argument("--port", type=int, default=FLASK_PORT)
    serve.add_argument("--debug", action="store_true", default=FLASK_DEBUG)
    serve.add_argument("--products", default=PRODUCTS_PATH, help="Path to products JSON")

    browse_parser = sub.add_parser("browse", help="Scroll through filtered products")
    browse_parser.add_argument("--search", default=None, help="Free-text search")
    browse_parser.add_argument("--sizes", default=None, help="Comma-separated sizes, e.g. S,M")
    browse_parser.add_argument("--pages", type=int, default=1, help="Pages to load (default: 1)")
    browse_parser.add_argument("--api-url", default=API_BASE_URL, help=f"API base URL (default: {API_BASE_URL})")
    browse_parser.add_argument("--local", action="store_true", help="Query the data file in-process")
    browse_parser.add_argument("--products", default=PRODUCTS_PATH, help="Path to products JSON (with --local)")

    return parser.parse_args(argv)


def _serve(args: argparse.Namespace) -> int:
    from storefront.app import create_app

    flask_app = create_app({"PRODUCTS_PATH": args.products})
    flask_app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


def _browse(args: argparse.Namespace) -> int:
    filters = FilterState(search=args.search, sizes=tuple((args.sizes or "").split(",")))
    query_string = urlencode(filters.to_query_params())

    sizes: List[str] = []
    if args.local:
        try:
            catalog = load_catalog(args.products)
        except CatalogLoadError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        fetcher = LocalPageFetcher(catalog.products)
        sizes = catalog.available_sizes()
    else:
        fetcher = ApiPageFetcher(args.api_url)

    state = asyncio.run(browse(fetcher.fetch_page, query_string, max_pages=max(1, args.pages)))

    if sizes:
        print("Sizes: " + SizeFilterOptions(sizes).label(list(filters.sizes)))
    for line in state.render():
        print(line)
    print(f"\nShowing {len(state.products)} of {state.total_count} products "
          f"({len(state.query.pages)} pages, {fetcher.request_count} requests)")
    return 1 if state.is_error else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else getattr(logging, LOG_LEVEL, logging.INFO),
        log_to_file=args.command == "serve",
    )
    if args.command == "serve":
        return _serve(args)
    return _browse(args)


if __name__ == "__main__":
    sys.exit(main())
