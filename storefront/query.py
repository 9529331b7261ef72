"""Product query function: filter and paginate the in-memory catalog.

The query is a pure function of (products, filters, page). Products keep
their catalog order; no sorting or ranking is applied, so the same inputs
always produce the same page.
"""

from typing import Iterable, List, Optional, Sequence

from storefront.config import PAGE_SIZE
from storefront.errors import InvalidPageError
from storefront.models import FilterState, Page, Product

__all__ = [
    "query_products",
    "filter_products",
    "matches_search",
    "matches_sizes",
    "validate_page",
]


def validate_page(page) -> int:
    """Return ``page`` if it is a valid page number, else raise.

    Page numbers are rejected rather than clamped: bools, non-integers and
    values below 1 raise ``InvalidPageError``.
    """
    if isinstance(page, bool) or not isinstance(page, int):
        raise InvalidPageError(f"Page must be an integer, got {page!r}")
    if page < 1:
        raise InvalidPageError(f"Page must be >= 1, got {page}")
    return page


def matches_search(product: Product, search: str) -> bool:
    """Case-insensitive substring match on title, description or brand."""
    needle = search.lower()
    return any(
        needle in (value or "").lower()
        for value in (product.title, product.description, product.brand)
    )


def matches_sizes(product: Product, sizes: Iterable[str]) -> bool:
    """True if the product declares at least one of ``sizes``.

    Products without a sizes value never match an active size filter.
    """
    tokens = product.size_tokens()
    if not tokens:
        return False
    return any(size in tokens for size in sizes)


def filter_products(products: Sequence[Product], filters: FilterState) -> List[Product]:
    """Apply search, then size membership. Order is preserved."""
    result = list(products)

    if filters.search:
        result = [p for p in result if matches_search(p, filters.search)]

    if filters.sizes:
        result = [p for p in result if matches_sizes(p, filters.sizes)]

    return result


def query_products(
    products: Sequence[Product],
    filters: Optional[FilterState] = None,
    page: int = 1,
    page_size: int = PAGE_SIZE,
) -> Page:
    """Filter the catalog and return one page of results.

    Args:
        products: Full product collection, in catalog order.
        filters: Active filters (None means no filtering).
        page: 1-based page number.
        page_size: Items per page.

    Returns:
        Page with at most ``page_size`` items and the filtered total count.

    Raises:
        InvalidPageError: If ``page`` is not an integer >= 1.
    """
    page = validate_page(page)
    filtered = filter_products(products, filters or FilterState())

    offset = (page - 1) * page_size
    items = tuple(filtered[offset:offset + page_size])

    return Page(items=items, page=page, total_count=len(filtered), limit=page_size)

