"""
Unit tests for DisplayRuntime wiring (sync -> rotation -> scroller -> render).
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from services.auto_scroll import ScrollState, VirtualViewport
from services.display_service import DisplayRuntime
from services.promo_rotation import RotationState
from services.sync_service import SyncClient


class TestDisplayRuntime:
    @pytest.fixture
    def api(self):
        api = Mock()
        api.fetch_menu = AsyncMock(return_value=None)
        return api

    @pytest.fixture
    def sync(self, api, memory_cache, sample_document):
        return SyncClient(api, memory_cache, "http://board.local/api/menu", initial=sample_document)

    @pytest.fixture
    def viewport(self):
        return VirtualViewport(viewport_height=300)

    @pytest.fixture
    def on_render(self):
        return Mock()

    @pytest.fixture
    def runtime(self, sync, scheduler, viewport, on_render):
        return DisplayRuntime(sync, scheduler=scheduler, viewport=viewport, on_render=on_render,
                              sync_interval=60, cadence_mode="fixed")

    def test_start_renders_cached_menu(self, runtime, on_render, viewport):
        runtime.start()

        lines = on_render.call_args[0][0]
        assert any("Борщ" in line for line in lines)
        assert viewport.content_height == len(lines) * 48
        assert runtime.scroll_state == ScrollState.WAITING

    def test_promotion_shown_and_cleared(self, runtime, scheduler, on_render):
        runtime.start()

        scheduler.advance(8)
        assert runtime.rotation.state == RotationState.SHOWING
        assert any("Счастливые часы" in line for line in on_render.call_args[0][0])

        scheduler.advance(11)
        assert runtime.rotation.state == RotationState.IDLE
        assert not any("Счастливые часы" in line for line in on_render.call_args[0][0])

    def test_overlay_does_not_change_scroll_height(self, runtime, scheduler, viewport):
        runtime.start()
        height = viewport.content_height

        scheduler.advance(8)

        assert runtime.rotation.state == RotationState.SHOWING
        assert viewport.content_height == height

    @pytest.mark.asyncio
    async def test_new_document_updates_rotation_and_resets_scroll(
        self, runtime, sync, api, scheduler, sample_document, on_render
    ):
        runtime.start()
        scheduler.advance(6)
        assert runtime.scroll_state == ScrollState.SCROLLING_DOWN

        updated = sample_document.model_copy(
            update={"footer_message": "Сегодня рыбный день", "promotions": []}
        ).with_timestamp(2_000)
        api.fetch_menu.return_value = updated.to_wire()
        await sync.sync()

        assert on_render.call_args[0][0][-1] == "Сегодня рыбный день"
        assert runtime.rotation.promotions == []
        assert runtime.scroll_state == ScrollState.WAITING

    def test_deactivated_promo_leaves_screen_immediately(self, runtime, scheduler, sample_document, on_render):
        runtime.start()
        scheduler.advance(9)
        assert any("Счастливые часы" in line for line in on_render.call_args[0][0])

        promos = [p.model_copy(update={"active": False}) for p in sample_document.promotions]
        runtime.on_document(sample_document.model_copy(update={"promotions": promos}).with_timestamp(2_000))

        assert runtime.rotation.state == RotationState.IDLE
        assert not any("Счастливые часы" in line for line in on_render.call_args[0][0])

    @pytest.mark.asyncio
    async def test_same_document_is_ignored(self, runtime, sync, api, sample_document, on_render):
        runtime.start()
        renders = on_render.call_count

        api.fetch_menu.return_value = sample_document.to_wire()
        await sync.sync()

        assert on_render.call_count == renders

    def test_stop_halts_timers(self, runtime, scheduler):
        runtime.start()
        runtime.stop()

        assert runtime.running is False
        assert scheduler.pending == 0
        assert runtime.scroll_state == ScrollState.IDLE

    @pytest.mark.asyncio
    async def test_run_stops_on_cancel(self, runtime, api):
        task = asyncio.create_task(runtime.run())
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

        assert runtime.running is False
        api.fetch_menu.assert_awaited()
