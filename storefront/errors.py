"""Exception types for the storefront package.

Error types:
- FetchError: transport failure or non-success response on a page fetch
- MalformedPayloadError: upstream payload missing required keys (surfaced as a FetchError)
- InvalidPageError: page argument < 1 or not an integer
- NavigationError: query-string mirror could not be written
- CatalogLoadError: product file missing or unreadable
"""

from typing import Optional

__all__ = [
    "StorefrontError",
    "FetchError",
    "MalformedPayloadError",
    "InvalidPageError",
    "NavigationError",
    "CatalogLoadError",
]


class StorefrontError(Exception):
    """Base class for all storefront errors."""


class FetchError(StorefrontError):
    """A page fetch failed. Retrying re-issues the same request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedPayloadError(FetchError):
    """The products endpoint answered with a payload we cannot read."""


class InvalidPageError(StorefrontError, ValueError):
    """Page numbers start at 1."""


class NavigationError(StorefrontError):
    """Writing the filter mirror into the location failed."""


class CatalogLoadError(StorefrontError):
    """The product catalog could not be loaded."""
