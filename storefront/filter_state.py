"""Filter state store, mirrored into a location's query string.

The store owns the canonical ``FilterState``. Every update is applied
locally first and then written to the ``Location`` (the browser URL in a
GUI, an in-memory query string elsewhere). Navigation events coming back
from the location are reconciled by value: if they describe the state the
store already holds (typically its own write echoing back) nothing happens,
otherwise the location wins and listeners are notified.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional
from urllib.parse import parse_qsl, urlencode

from storefront.errors import NavigationError
from storefront.logging_config import log_event
from storefront.models import FilterState

__all__ = ["Location", "InMemoryLocation", "FilterStateStore"]

logger = logging.getLogger(__name__)

NavigationListener = Callable[[Dict[str, str]], None]
FilterListener = Callable[[FilterState], None]


class Location:
    """Key/value string store that filters are mirrored into.

    Implementations must call subscribed listeners with the new params
    whenever navigation happens, including after ``write``.
    """

    def read(self) -> Dict[str, str]:
        raise NotImplementedError

    def write(self, params: Mapping[str, str]) -> None:
        raise NotImplementedError

    def subscribe(self, listener: NavigationListener) -> Callable[[], None]:
        raise NotImplementedError


class InMemoryLocation(Location):
    """Query-string location with a back/forward history stack."""

    def __init__(self, query_string: str = "", fail_writes: bool = False):
        self._history: List[str] = [query_string.lstrip("?")]
        self._index = 0
        self._listeners: List[NavigationListener] = []
        self.fail_writes = fail_writes
        self.write_count = 0

    @property
    def query_string(self) -> str:
        return self._history[self._index]

    @property
    def url(self) -> str:
        return f"/?{self.query_string}" if self.query_string else "/"

    def read(self) -> Dict[str, str]:
        return dict(parse_qsl(self.query_string))

    def write(self, params: Mapping[str, str]) -> None:
        if self.fail_writes:
            raise NavigationError("History is not available")
        self.write_count += 1
        self._push(urlencode(dict(params)))

    def navigate(self, query_string: str) -> None:
        """External navigation, e.g. the user editing the address bar."""
        self._push(query_string.lstrip("?"))

    def back(self) -> bool:
        if self._index == 0:
            return False
        self._index -= 1
        self._notify()
        return True

    def forward(self) -> bool:
        if self._index >= len(self._history) - 1:
            return False
        self._index += 1
        self._notify()
        return True

    def subscribe(self, listener: NavigationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _push(self, query_string: str) -> None:
        del self._history[self._index + 1:]
        self._history.append(query_string)
        self._index += 1
        self._notify()

    def _notify(self) -> None:
        params = self.read()
        for listener in list(self._listeners):
            listener(params)


class FilterStateStore:
    """Single source of truth for the active filters."""

    def __init__(self, location: Location, initial_filters: Optional[FilterState] = None):
        self.location = location
        initial = initial_filters or FilterState()
        url_params = location.read()
        url_filters = FilterState.from_query_params(url_params)

        # Query-string values override caller defaults key by key
        self._filters = FilterState(
            search=url_filters.search if "search" in url_params else initial.search,
            sizes=url_filters.sizes if "sizes" in url_params else initial.sizes,
        )
        self._listeners: List[FilterListener] = []
        self._unsubscribe = location.subscribe(self._on_navigate)

    @property
    def filters(self) -> FilterState:
        return self._filters

    def subscribe(self, listener: FilterListener) -> Callable[[], None]:
        """Call ``listener`` with the new state whenever filters change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update_filter(self, key: str, value: Any) -> None:
        """Set one filter. Equal values (sizes compared as sets) are ignored."""
        if key not in FilterState.KEYS:
            raise KeyError(f"Unknown filter: {key}")
        self._apply(self._filters.replace(key, value))

    def clear_filter(self, key: str) -> None:
        if key not in FilterState.KEYS:
            raise KeyError(f"Unknown filter: {key}")
        self._apply(self._filters.replace(key, None))

    def clear_all_filters(self) -> None:
        self._apply(FilterState())

    def close(self) -> None:
        """Stop following navigation events."""
        self._unsubscribe()
        self._listeners.clear()

    def _apply(self, new_filters: FilterState) -> None:
        if new_filters.same_as(self._filters):
            return
        self._set(new_filters)
        self._write_location(new_filters)

    def _write_location(self, filters: FilterState) -> None:
        try:
            self.location.write(filters.to_query_params())
        except NavigationError as e:
            # The URL is only a mirror; local state stays authoritative.
            logger.warning("Could not mirror filters into location: %s", e)
            log_event("navigation_failed", {"filters": filters.to_dict(), "error": str(e)}, level=logging.WARNING)

    def _on_navigate(self, params: Dict[str, str]) -> None:
        url_filters = FilterState.from_query_params(params)
        if url_filters.same_as(self._filters):
            return
        logger.debug("Filters changed by navigation: %s", url_filters.to_dict())
        self._set(url_filters)

    def _set(self, filters: FilterState) -> None:
        self._filters = filters
        for listener in list(self._listeners):
            listener(filters)
