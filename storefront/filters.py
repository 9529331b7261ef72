"""Filter input helpers: debounced search input and size selection."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from storefront.config import SEARCH_DEBOUNCE_SECONDS, SIZE_FILTER_VISIBLE_COUNT

__all__ = ["SearchDebouncer", "toggle_size", "SizeFilterOptions"]

logger = logging.getLogger(__name__)


class SearchDebouncer:
    """Forward search input once typing has paused for ``delay`` seconds.

    Only the latest input is delivered. Input equal to the committed value
    cancels any pending delivery. Empty input is delivered as None (filter
    cleared).
    """

    def __init__(
        self,
        on_change: Callable[[Optional[str]], None],
        value: Optional[str] = None,
        delay: float = SEARCH_DEBOUNCE_SECONDS,
    ):
        self.on_change = on_change
        self.value = value or ""
        self.delay = delay
        self._pending: Optional[asyncio.TimerHandle] = None

    @property
    def is_debouncing(self) -> bool:
        return self._pending is not None

    def input(self, text: str) -> None:
        self.cancel()
        if text == self.value:
            return
        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(self.delay, self._commit, text)

    def sync(self, value: Optional[str]) -> None:
        """Follow an external change of the committed value."""
        self.cancel()
        self.value = value or ""

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _commit(self, text: str) -> None:
        self._pending = None
        self.value = text
        logger.debug("Search input settled: %r", text)
        self.on_change(text or None)


def toggle_size(selected: Sequence[str], size: str) -> List[str]:
    """Add ``size`` to the selection, or remove it if already selected."""
    if size in selected:
        return [s for s in selected if s != size]
    return [*selected, size]


@dataclass
class SizeFilterOptions:
    """Which size buttons are shown, with a collapsible overflow."""

    sizes: Sequence[str]
    visible_count: int = SIZE_FILTER_VISIBLE_COUNT
    show_all: bool = False

    @property
    def has_more(self) -> bool:
        return len(self.sizes) > self.visible_count

    @property
    def hidden_count(self) -> int:
        return max(0, len(self.sizes) - self.visible_count)

    @property
    def visible(self) -> List[str]:
        if self.show_all:
            return list(self.sizes)
        return list(self.sizes[:self.visible_count])

    def label(self, selected: Sequence[str]) -> str:
        parts = self.visible
        if self.has_more and not self.show_all:
            parts = [*parts, f"Show More ({self.hidden_count} more)"]
        elif self.has_more:
            parts = [*parts, "Show Less"]
        line = " ".join(f"[{s}]" if s in selected else s for s in parts)
        if selected:
            line += f"  ({len(selected)} sizes selected)"
        return line
