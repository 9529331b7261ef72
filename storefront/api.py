"""HTTP endpoints for the product catalog.

GET /api/products?search=<str>&sizes=<csv>&page=<int>
    One page of filtered products plus the catalog's size vocabulary.
GET /health
    Liveness and catalog size.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, current_app, jsonify, request

from storefront.catalog import Catalog, get_catalog
from storefront.errors import InvalidPageError
from storefront.logging_config import log_event
from storefront.models import FilterState
from storefront.query import query_products

__all__ = ["api", "health", "parse_filters", "parse_page"]

logger = logging.getLogger(__name__)

# Create blueprints: /api/* and the unprefixed health check
api = Blueprint("api", __name__, url_prefix="/api")
health = Blueprint("health", __name__)


def _catalog() -> Catalog:
    """Catalog configured on the app, or the process-wide default."""
    catalog = current_app.config.get("CATALOG")
    if catalog is None:
        catalog = get_catalog(current_app.config["PRODUCTS_PATH"])
        current_app.config["CATALOG"] = catalog
    return catalog


def parse_filters(args) -> FilterState:
    """Read search/sizes query parameters into a FilterState."""
    return FilterState.from_query_params(
        {"search": args.get("search", ""), "sizes": args.get("sizes", "")}
    )


def parse_page(raw: str) -> int:
    """Parse the page query parameter; missing means page 1."""
    if raw is None or raw == "":
        return 1
    try:
        return int(raw)
    except ValueError:
        raise InvalidPageError(f"Page must be an integer, got {raw!r}")


def _error(message: str, status: int) -> Tuple[Response, int]:
    return jsonify({"success": False, "error": message}), status


@api.route("/products", methods=["GET"])
def list_products():
    """Return one page of products matching the query-string filters."""
    started = time.perf_counter()
    filters = parse_filters(request.args)

    try:
        page_number = parse_page(request.args.get("page"))
        catalog = _catalog()
        page = query_products(catalog.products, filters, page_number)
        sizes = catalog.available_sizes()
    except InvalidPageError as e:
        return _error(str(e), 400)
    except Exception:
        logger.exception("Error in /api/products")
        return _error("Failed to load products", 500)

    body: Dict[str, Any] = {
        "success": True,
        "data": {
            "products": [p.to_dict() for p in page.items],
            "sizes": sizes,
        },
        "pagination": page.pagination(),
    }

    log_event(
        "api_request",
        {
            "path": request.path,
            "filters": filters.to_dict(),
            "page": page.page,
            "returned": len(page.items),
            "total_count": page.total_count,
            "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
        },
        level=logging.DEBUG,
    )
    return jsonify(body)


@health.route("/health", methods=["GET"])
def health_check():
    try:
        total = len(_catalog())
    except Exception:
        logger.exception("Health check could not load catalog")
        return jsonify({"success": False, "status": "unhealthy"}), 503

    return jsonify(
        {
            "success": True,
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "totalProducts": total,
        }
    )
