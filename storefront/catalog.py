"""Static product catalog loaded from the JSON data file.

The catalog is read once into a DataFrame and materialized as an immutable
tuple of ``Product`` records; every query runs over that in-memory tuple.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

import pandas as pd

from storefront.config import PRODUCTS_PATH
from storefront.errors import CatalogLoadError
from storefront.models import SIZE_DELIMITER, Product

__all__ = ["Catalog", "load_catalog", "products_from_frame", "get_catalog", "reset_catalog"]

logger = logging.getLogger(__name__)


def _read_frame(path: Union[str, Path]) -> pd.DataFrame:
    """Read the product file without letting pandas coerce prices or ids."""
    try:
        df = pd.read_json(path, orient="records", dtype=False, convert_dates=False)
    except (OSError, ValueError) as e:
        raise CatalogLoadError(f"Could not load products from {path}: {e}") from e

    if df.empty:
        return df
    if "id" not in df.columns:
        raise CatalogLoadError(f"Product file {path} has no 'id' column")
    return df


def products_from_frame(df: pd.DataFrame) -> Tuple[Product, ...]:
    """Convert catalog rows to products, keeping file order."""
    if df.empty:
        return ()
    return tuple(Product.from_dict(row) for row in df.to_dict(orient="records"))


class Catalog:
    """In-memory product collection plus the derived size vocabulary."""

    def __init__(self, df: pd.DataFrame, source: Optional[str] = None):
        self.df = df
        self.source = source
        self.products: Tuple[Product, ...] = products_from_frame(df)

    def __len__(self) -> int:
        return len(self.products)

    def available_sizes(self) -> List[str]:
        """Sorted unique size tokens declared by any product."""
        if self.df.empty or "sizes" not in self.df.columns:
            return []
        tokens = (
            self.df["sizes"]
            .dropna()
            .astype(str)
            .str.split(SIZE_DELIMITER)
            .explode()
            .str.strip()
        )
        return sorted(t for t in tokens.unique() if t)


def load_catalog(path: Union[str, Path] = PRODUCTS_PATH) -> Catalog:
    """Load the product catalog from a JSON array of product records.

    Args:
        path: Path to the products JSON file.

    Returns:
        Catalog with products in file order.

    Raises:
        CatalogLoadError: If the file is missing or not a product list.
    """
    df = _read_frame(path)
    catalog = Catalog(df, source=str(path))
    logger.info("Loaded %d products from %s", len(catalog), path)
    return catalog


_catalog: Optional[Catalog] = None


def get_catalog(path: Union[str, Path] = PRODUCTS_PATH) -> Catalog:
    """Get the process-wide catalog, loading it on first use."""
    global _catalog
    if _catalog is None:
        _catalog = load_catalog(path)
    return _catalog


def reset_catalog() -> None:
    """Forget the cached catalog so the next call reloads it."""
    global _catalog
    _catalog = None
