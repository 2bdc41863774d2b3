"""
Unit tests for AutoScrollController on a virtual clock.
"""

import pytest

from services.auto_scroll import AutoScrollController, ScrollState, VirtualViewport


def advance_until(scheduler, predicate, step=0.05, limit=120.0):
    elapsed = 0.0
    while not predicate():
        if elapsed > limit:
            raise AssertionError("condition not reached")
        scheduler.advance(step)
        elapsed += step
    return scheduler.now()


class TestAutoScroll:
    @pytest.fixture
    def viewport(self):
        return VirtualViewport(content_height=1180, viewport_height=1080)

    @pytest.fixture
    def controller(self, scheduler, viewport):
        return AutoScrollController(scheduler, viewport)

    def test_waits_before_scrolling(self, scheduler, controller, viewport):
        controller.start()
        scheduler.advance(4.9)

        assert controller.state == ScrollState.WAITING
        assert viewport.scroll_y == 0

        scheduler.advance(0.2)
        assert controller.state == ScrollState.SCROLLING_DOWN
        assert 0 < viewport.scroll_y < 5

    def test_full_cycle(self, scheduler, controller, viewport):
        controller.start()

        advance_until(scheduler, lambda: controller.state == ScrollState.PAUSED_AT_BOTTOM)
        assert viewport.scroll_y == controller.max_scroll == 100

        bottom_at = scheduler.now()
        advance_until(scheduler, lambda: controller.state != ScrollState.PAUSED_AT_BOTTOM)
        assert scheduler.now() - bottom_at == pytest.approx(8.0, abs=0.06)

        advance_until(scheduler, lambda: controller.state == ScrollState.PAUSED_AT_TOP)
        assert viewport.scroll_y == 0

        advance_until(scheduler, lambda: controller.state == ScrollState.SCROLLING_DOWN)

    def test_scrolls_up_faster_than_down(self, scheduler, controller):
        controller.start()
        down_start = advance_until(scheduler, lambda: controller.state == ScrollState.SCROLLING_DOWN)
        down_end = advance_until(scheduler, lambda: controller.state == ScrollState.PAUSED_AT_BOTTOM)
        up_start = advance_until(scheduler, lambda: controller.state == ScrollState.SCROLLING_UP)
        up_end = advance_until(scheduler, lambda: controller.state == ScrollState.PAUSED_AT_TOP)

        assert (up_end - up_start) < (down_end - down_start)

    def test_position_always_clamped(self, scheduler, controller, viewport):
        controller.start()
        advance_until(scheduler, lambda: viewport.scroll_y > 50)

        viewport.content_height = 1100  # max scroll drops to 20
        scheduler.advance(0.05)

        assert 0 <= viewport.scroll_y <= controller.max_scroll

    def test_content_that_fits_pins_to_top(self, scheduler, controller, viewport):
        viewport.content_height = 600
        viewport.scroll_y = 40

        controller.start()
        assert viewport.scroll_y == 0

        scheduler.advance(10)
        assert controller.state == ScrollState.IDLE
        assert viewport.scroll_y == 0
        assert scheduler.pending == 0

    def test_reset_restarts_wait(self, scheduler, controller):
        controller.start()
        advance_until(scheduler, lambda: controller.state == ScrollState.SCROLLING_DOWN)

        controller.reset()

        assert controller.state == ScrollState.WAITING
        assert scheduler.pending == 1

    def test_stop_cancels_timers(self, scheduler, controller, viewport):
        controller.start()
        advance_until(scheduler, lambda: controller.state == ScrollState.SCROLLING_DOWN)
        position = viewport.scroll_y

        controller.stop()
        scheduler.advance(30)

        assert controller.state == ScrollState.IDLE
        assert viewport.scroll_y == position
        assert scheduler.pending == 0
