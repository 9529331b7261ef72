"""Tests for sentinel visibility and trigger firing."""

import asyncio

import pytest

from storefront.viewport import ScrollViewport, Sentinel, ViewportTrigger


@pytest.fixture
def viewport():
    return ScrollViewport(height=500)


class TestIntersection:
    @pytest.mark.parametrize(
        "scroll_top,margin,expected",
        [
            (0, 0, 0.0),        # sentinel at 1000, viewport ends at 500
            (0, 200, 0.0),      # grown viewport ends at 700
            (400, 0, 0.0),      # ends at 900
            (400, 200, 1.0),    # ends at 1100
            (600, 0, 1.0),      # sentinel fully inside
            (1200, 0, 0.0),     # scrolled past it
            (1200, 200, 1.0),   # margin grows upward too
        ],
    )
    def test_ratio(self, viewport, scroll_top, margin, expected):
        """Test the intersection ratio for scroll positions and margins."""
        viewport.scroll_top = scroll_top
        sentinel = Sentinel(top=1000, height=10)
        assert viewport.intersection_ratio(sentinel, margin) == expected

    def test_partial_overlap(self, viewport):
        """Test a half-visible sentinel."""
        viewport.scroll_top = 0
        sentinel = Sentinel(top=495, height=10)
        assert viewport.intersection_ratio(sentinel, 0) == pytest.approx(0.5)

    def test_scroll_to_clamps_at_top(self, viewport):
        """Test that scrolling above the top clamps to 0."""
        viewport.scroll_to(-50)
        assert viewport.scroll_top == 0


class TestTrigger:
    def test_fires_on_observe_when_visible(self, viewport):
        """Test that an already visible sentinel fires on observe."""
        calls = []
        trigger = ViewportTrigger(viewport, lambda: calls.append("hit"), root_margin=200)
        trigger.observe(Sentinel(top=100))
        assert calls == ["hit"]

    def test_does_not_fire_when_out_of_range(self, viewport):
        """Test that a distant sentinel does not fire."""
        calls = []
        trigger = ViewportTrigger(viewport, lambda: calls.append("hit"), root_margin=200)
        trigger.observe(Sentinel(top=2000))
        assert calls == []

    def test_fires_once_per_entry(self, viewport):
        """Test that the trigger fires once each time the sentinel enters."""
        calls = []
        trigger = ViewportTrigger(viewport, lambda: calls.append("hit"), root_margin=200)
        trigger.observe(Sentinel(top=1000))

        viewport.scroll_to(400)   # enters
        viewport.scroll_to(450)   # still visible
        viewport.scroll_to(420)
        assert calls == ["hit"]

        viewport.scroll_to(0)     # leaves
        viewport.scroll_to(400)   # enters again
        assert calls == ["hit", "hit"]

    def test_near_and_far_margins(self, viewport):
        """Test that the larger margin fires first."""
        near, far = [], []
        ViewportTrigger(viewport, lambda: near.append(1), root_margin=200).observe(Sentinel(top=1000))
        ViewportTrigger(viewport, lambda: far.append(1), root_margin=400).observe(Sentinel(top=1000))

        viewport.scroll_to(200)   # far range ends at 1100, near at 900
        assert (len(near), len(far)) == (0, 1)
        viewport.scroll_to(400)
        assert (len(near), len(far)) == (1, 1)

    def test_disconnect_stops_observing(self, viewport):
        """Test that a disconnected trigger stops firing."""
        calls = []
        trigger = ViewportTrigger(viewport, lambda: calls.append("hit"), root_margin=0)
        trigger.observe(Sentinel(top=1000))
        trigger.disconnect()
        viewport.scroll_to(800)
        assert calls == []
        assert not trigger.is_observing

    def test_threshold(self, viewport):
        """Test that the trigger waits for the visibility threshold."""
        calls = []
        trigger = ViewportTrigger(viewport, lambda: calls.append(1), root_margin=0, threshold=0.5)
        trigger.observe(Sentinel(top=1000, height=100))
        viewport.scroll_to(530)   # 30% visible
        assert calls == []
        viewport.scroll_to(560)   # 60% visible
        assert calls == [1]

    def test_coroutine_callback_is_scheduled(self, viewport):
        """Test that coroutine callbacks run as background tasks."""
        async def scenario():
            done = []

            async def load():
                await asyncio.sleep(0)
                done.append("loaded")

            trigger = ViewportTrigger(viewport, load, root_margin=200)
            trigger.observe(Sentinel(top=100))
            # Scheduling does not block the scroll loop
            assert done == []
            assert len(trigger.pending_tasks) == 1
            await asyncio.gather(*trigger.pending_tasks)
            return done, trigger

        done, trigger = asyncio.run(scenario())
        assert done == ["loaded"]
        assert trigger.pending_tasks == []
