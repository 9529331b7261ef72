"""Shared test fixtures and utilities for the storefront test suite."""

import asyncio
import json
import logging
from typing import List, Optional, Set

import pytest

from storefront.catalog import load_catalog
from storefront.errors import FetchError
from storefront.models import FilterState, Page, Product
from storefront.query import query_products


class ControlledFetcher:
    """Page fetcher the test can hold, release or fail.

    With ``auto=True`` every call resolves immediately from the product
    list. With ``auto=False`` each call parks on a future in ``pending``
    until the test calls ``release`` or ``fail``.
    """

    def __init__(self, products: List[Product], auto: bool = True):
        self.products = products
        self.auto = auto
        self.calls: List[tuple] = []
        self.pending: List[tuple] = []
        self.fail_pages: Set[int] = set()

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def fetch_page(self, filters: FilterState, page: int) -> Page:
        self.calls.append((filters.fingerprint(), page))
        if page in self.fail_pages:
            self.fail_pages.discard(page)
            raise FetchError("HTTP error! status: 503", status_code=503)
        if self.auto:
            await asyncio.sleep(0)
            return query_products(self.products, filters, page)

        future = asyncio.get_running_loop().create_future()
        self.pending.append((filters, page, future))
        return await future

    def release(self, index: int = 0) -> None:
        filters, page, future = self.pending.pop(index)
        future.set_result(query_products(self.products, filters, page))

    def fail(self, index: int = 0, error: Optional[Exception] = None) -> None:
        _filters, _page, future = self.pending.pop(index)
        future.set_exception(error or FetchError("connection reset"))


async def _settle(rounds: int = 5) -> None:
    """Give scheduled tasks and callbacks a few loop iterations to run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settle():
    """Coroutine that lets pending tasks run: `await settle()`."""
    return _settle


@pytest.fixture
def make_fetcher():
    """Factory for ControlledFetcher instances."""
    return ControlledFetcher


@pytest.fixture
def shoe_and_hat():
    """The two-product catalog used for filter examples."""
    return [
        Product(id=1, title="Red Shoe", sizes="S,M"),
        Product(id=2, title="Blue Hat", sizes="M,L"),
    ]


@pytest.fixture
def many_products():
    """45 products with a mix of sizes; every third product has none."""
    sizes_cycle = ["S,M", "L, XL", None]
    return [
        Product(
            id=i,
            title=f"Item {i}",
            description="Hat" if i % 5 == 0 else "Shirt",
            brand="Brand A" if i % 2 else "Brand B",
            sizes=sizes_cycle[(i - 1) % 3],
        )
        for i in range(1, 46)
    ]


@pytest.fixture
def sample_records():
    """Raw catalog records as stored in products.json."""
    return [
        {
            "id": 1,
            "title": "Red Classic Cotton Tee",
            "description": "Soft cotton tee",
            "brand": "Northwind",
            "category": "Clothing",
            "color": "Red",
            "sale_price": "17.99",
            "list_price": "32.99",
            "sizes": "XS,S,M",
            "image_link": "https://example.com/images/1.jpg",
            "availability": "in stock",
        },
        {
            "id": 2,
            "title": "Wool Beanie",
            "description": "Warm winter hat",
            "brand": "Fjordline",
            "category": "Accessories",
            "color": "Black",
            "sale_price": "12.50",
            "list_price": "20.00",
            "sizes": None,
            "image_link": "https://example.com/images/2.jpg",
            "availability": "in stock",
        },
        {
            "id": 3,
            "title": "Running Shoe",
            "description": "Lightweight trainer",
            "brand": "Stride",
            "category": "Footwear",
            "color": "Blue",
            "sale_price": "80.00",
            "list_price": "99.00",
            "sizes": "40, 41,42",
            "image_link": "https://example.com/images/3.jpg",
            "availability": "out of stock",
        },
    ]


@pytest.fixture
def products_file(tmp_path, sample_records):
    """Temporary products.json with the sample records."""
    path = tmp_path / "products.json"
    path.write_text(json.dumps(sample_records))
    return path


@pytest.fixture
def catalog(products_file):
    return load_catalog(products_file)


@pytest.fixture
def client(catalog):
    """Create Flask test client over the sample catalog."""
    from storefront.app import create_app

    app = create_app({"CATALOG": catalog, "TESTING": True})
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def reset_storefront_logging():
    """Undo setup_logging() calls made by a test."""
    logger = logging.getLogger("storefront")
    level = logger.level
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
