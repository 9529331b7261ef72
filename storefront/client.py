"""Page fetchers used by the paged fetch cache.

Both fetchers share one coroutine signature, ``fetch_page(filters, page)``:

- ``ApiPageFetcher`` calls ``GET /api/products`` over HTTP with httpx.
- ``LocalPageFetcher`` runs the query function in-process against a catalog.
"""

import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from storefront.config import API_BASE_URL, PAGE_SIZE, REQUEST_TIMEOUT
from storefront.errors import FetchError, MalformedPayloadError
from storefront.models import FilterState, Page, Product
from storefront.query import query_products, validate_page

__all__ = ["ApiPageFetcher", "LocalPageFetcher", "build_query_params", "parse_products_payload"]

logger = logging.getLogger(__name__)


def build_query_params(filters: FilterState, page: int) -> Dict[str, str]:
    """Query parameters for one products request; empty filters are left out."""
    params = {"page": str(page)}
    params.update(filters.to_query_params())
    return params


def parse_products_payload(payload: Any) -> Page:
    """Turn a products endpoint response body into a ``Page``.

    Raises:
        FetchError: If the body reports ``success: false``.
        MalformedPayloadError: If required keys are missing or mistyped, or
            the pagination block contradicts itself.
    """
    if not isinstance(payload, dict):
        raise MalformedPayloadError("Products payload is not an object")
    if payload.get("success") is False:
        raise FetchError(str(payload.get("error") or "Products request failed"))

    try:
        data = payload["data"]
        pagination = payload["pagination"]
        items = tuple(Product.from_dict(item) for item in data["products"])
        page = Page(
            items=items,
            page=int(pagination["page"]),
            total_count=int(pagination["totalCount"]),
            limit=int(pagination.get("limit", PAGE_SIZE)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedPayloadError(f"Malformed products payload: {e}") from e

    if page.limit != PAGE_SIZE:
        raise MalformedPayloadError(f"Unexpected page size {page.limit}, expected {PAGE_SIZE}")
    if len(page.items) > page.limit or page.page < 1 or page.total_count < 0:
        raise MalformedPayloadError(
            f"Inconsistent pagination: page={page.page} items={len(page.items)} "
            f"limit={page.limit} totalCount={page.total_count}"
        )
    has_next = pagination.get("hasNextPage")
    if has_next is not None and bool(has_next) != page.has_next_page:
        raise MalformedPayloadError(
            f"hasNextPage={has_next} contradicts page={page.page} totalCount={page.total_count}"
        )
    return page


class ApiPageFetcher:
    """Fetch product pages from the HTTP products endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or API_BASE_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self.request_count = 0

    async def fetch_page(self, filters: FilterState, page: int) -> Page:
        url = f"{self.base_url}/api/products"
        params = build_query_params(filters, page)
        self.request_count += 1
        logger.debug("GET %s %s", url, params)

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"HTTP error! status: {e.response.status_code}", status_code=e.response.status_code
            ) from e
        except httpx.RequestError as e:
            raise FetchError(f"Request error fetching {url}: {e}") from e
        except ValueError as e:
            raise MalformedPayloadError(f"Products response is not JSON: {e}") from e

        return parse_products_payload(payload)


class LocalPageFetcher:
    """Run the query function in-process with the fetcher signature."""

    def __init__(self, products: Sequence[Product]):
        self.products = products
        self.request_count = 0

    async def fetch_page(self, filters: FilterState, page: int) -> Page:
        self.request_count += 1
        return query_products(self.products, filters, validate_page(page))
