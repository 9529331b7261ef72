"""Viewport triggers: call back when a sentinel scrolls into view.

There is no platform intersection observer here, so visibility is computed
by polling: a ``ScrollViewport`` re-checks every attached trigger whenever
its scroll position changes. A trigger fires on the transition from
not-visible to visible (and on first observation if already visible),
mirroring how intersection observers report entries.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Set

from storefront.config import NEAR_TRIGGER_MARGIN, TRIGGER_THRESHOLD

__all__ = ["Sentinel", "ScrollViewport", "ViewportTrigger"]

logger = logging.getLogger(__name__)


@dataclass
class Sentinel:
    """Marker element at a vertical position in the scrolled content."""

    top: float
    height: float = 1.0

    @property
    def bottom(self) -> float:
        return self.top + self.height


class ScrollViewport:
    """Visible window over scrollable content."""

    def __init__(self, height: float, scroll_top: float = 0.0):
        self.height = height
        self.scroll_top = scroll_top
        self._triggers: List["ViewportTrigger"] = []

    @property
    def bottom(self) -> float:
        return self.scroll_top + self.height

    def attach(self, trigger: "ViewportTrigger") -> None:
        if trigger not in self._triggers:
            self._triggers.append(trigger)

    def detach(self, trigger: "ViewportTrigger") -> None:
        if trigger in self._triggers:
            self._triggers.remove(trigger)

    def scroll_to(self, y: float) -> None:
        self.scroll_top = max(0.0, y)
        self.poll()

    def scroll_by(self, dy: float) -> None:
        self.scroll_to(self.scroll_top + dy)

    def poll(self) -> None:
        """Re-check all attached triggers against the current position."""
        for trigger in list(self._triggers):
            trigger.check()

    def intersection_ratio(self, sentinel: Sentinel, root_margin: float) -> float:
        """Fraction of ``sentinel`` inside the viewport grown by ``root_margin``."""
        top = self.scroll_top - root_margin
        bottom = self.bottom + root_margin
        overlap = min(bottom, sentinel.bottom) - max(top, sentinel.top)
        if overlap < 0:
            return 0.0
        if sentinel.height <= 0:
            return 1.0
        return min(1.0, overlap / sentinel.height)


class ViewportTrigger:
    """Invoke ``callback`` when the observed sentinel comes near the viewport.

    Coroutine callbacks are scheduled as tasks on the running loop so that
    scroll handling never waits on a fetch. Repeated visibility events are
    not deduplicated here; callbacks are expected to be idempotent.
    """

    def __init__(
        self,
        viewport: ScrollViewport,
        callback: Callable[[], Any],
        root_margin: float = NEAR_TRIGGER_MARGIN,
        threshold: float = TRIGGER_THRESHOLD,
    ):
        self.viewport = viewport
        self.callback = callback
        self.root_margin = root_margin
        self.threshold = threshold
        self.sentinel: Optional[Sentinel] = None
        self.fire_count = 0
        self._visible = False
        self._tasks: Set["asyncio.Task[Any]"] = set()

    @property
    def is_observing(self) -> bool:
        return self.sentinel is not None

    @property
    def pending_tasks(self) -> List["asyncio.Task[Any]"]:
        return [task for task in self._tasks if not task.done()]

    def observe(self, sentinel: Sentinel) -> None:
        """Start observing ``sentinel``; fires at once if it is already visible."""
        self.sentinel = sentinel
        self._visible = False
        self.viewport.attach(self)
        self.check()

    def disconnect(self) -> None:
        self.sentinel = None
        self._visible = False
        self.viewport.detach(self)

    def is_intersecting(self) -> bool:
        if self.sentinel is None:
            return False
        ratio = self.viewport.intersection_ratio(self.sentinel, self.root_margin)
        return ratio > 0 and ratio >= self.threshold

    def check(self) -> bool:
        """Poll visibility; returns True if the callback fired."""
        visible = self.is_intersecting()
        fired = visible and not self._visible
        self._visible = visible
        if fired:
            self._fire()
        return fired

    def _fire(self) -> None:
        self.fire_count += 1
        result = self.callback()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
