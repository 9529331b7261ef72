"""Data models for products, filters and pages."""

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from storefront.config import PAGE_SIZE

__all__ = ["Product", "FilterState", "Page", "SIZE_DELIMITER", "split_sizes"]

# Multi-value size fields are comma separated, both in the catalog and in the URL.
SIZE_DELIMITER = ","


def split_sizes(raw: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated size string into trimmed, non-empty tokens."""
    if not raw or not isinstance(raw, str):
        return ()
    return tuple(token.strip() for token in raw.split(SIZE_DELIMITER) if token.strip())


def _text(value: Any) -> str:
    # pandas hands missing cells over as NaN
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value)


@dataclass(frozen=True)
class Product:
    """A single catalog record. Loaded once, never mutated."""

    id: int
    title: str
    description: str = ""
    brand: str = ""
    category: str = ""
    color: str = ""
    sale_price: str = ""
    list_price: str = ""
    sizes: Optional[str] = None
    image_link: str = ""
    availability: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Product":
        """Build a product from a raw catalog/wire record."""
        sizes = _text(data.get("sizes")) or None
        return cls(
            id=int(data["id"]),
            title=_text(data.get("title")),
            description=_text(data.get("description")),
            brand=_text(data.get("brand")),
            category=_text(data.get("category")),
            color=_text(data.get("color")),
            sale_price=_text(data.get("sale_price")),
            list_price=_text(data.get("list_price")),
            sizes=sizes,
            image_link=_text(data.get("image_link")),
            availability=_text(data.get("availability")),
        )

    def size_tokens(self) -> Tuple[str, ...]:
        return split_sizes(self.sizes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "brand": self.brand,
            "category": self.category,
            "color": self.color,
            "sale_price": self.sale_price,
            "list_price": self.list_price,
            "sizes": self.sizes,
            "image_link": self.image_link,
            "availability": self.availability,
        }


def _ordered_unique(values: Iterable[str]) -> Tuple[str, ...]:
    seen = []
    for value in values:
        value = value.strip() if isinstance(value, str) else value
        if value and value not in seen:
            seen.append(value)
    return tuple(seen)


@dataclass(frozen=True)
class FilterState:
    """Client-selected filters.

    ``sizes`` is an ordered set: insertion order is kept for display, but
    equality between two states (``same_as``) and the cache fingerprint
    ignore it.
    """

    search: Optional[str] = None
    sizes: Tuple[str, ...] = field(default_factory=tuple)

    KEYS = ("search", "sizes")

    def __post_init__(self):
        search = self.search.strip() if isinstance(self.search, str) else None
        object.__setattr__(self, "search", search or None)
        sizes = split_sizes(self.sizes) if isinstance(self.sizes, str) else self.sizes
        object.__setattr__(self, "sizes", _ordered_unique(sizes or ()))

    @property
    def is_empty(self) -> bool:
        return self.search is None and not self.sizes

    def same_as(self, other: "FilterState") -> bool:
        """Deep comparison, order-insensitive for sizes."""
        return self.search == other.search and sorted(self.sizes) == sorted(other.sizes)

    def fingerprint(self) -> str:
        """Canonical cache key for this filter set."""
        return json.dumps({"search": self.search, "sizes": sorted(self.sizes)}, sort_keys=True)

    def replace(self, key: str, value: Any) -> "FilterState":
        if key == "search":
            return FilterState(search=value, sizes=self.sizes)
        if key == "sizes":
            return FilterState(search=self.search, sizes=value)
        raise KeyError(f"Unknown filter: {key}")

    def to_query_params(self) -> Dict[str, str]:
        """Query-string mirror; empty values are left out entirely."""
        params: Dict[str, str] = {}
        if self.search:
            params["search"] = self.search
        if self.sizes:
            params["sizes"] = SIZE_DELIMITER.join(self.sizes)
        return params

    @classmethod
    def from_query_params(cls, params: Mapping[str, str]) -> "FilterState":
        return cls(search=params.get("search") or None, sizes=split_sizes(params.get("sizes")))

    def to_dict(self) -> Dict[str, Any]:
        return {"search": self.search, "sizes": list(self.sizes)}


@dataclass(frozen=True)
class Page:
    """One page of query results."""

    items: Tuple[Product, ...]
    page: int
    total_count: int
    limit: int = PAGE_SIZE

    @property
    def has_next_page(self) -> bool:
        return self.page * self.limit < self.total_count

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit)

    def pagination(self) -> Dict[str, Any]:
        """Pagination block of the products endpoint."""
        return {
            "page": self.page,
            "limit": self.limit,
            "totalCount": self.total_count,
            "totalPages": self.total_pages,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
        }
