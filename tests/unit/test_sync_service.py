"""
Unit tests for SyncClient reconciliation.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from core.exceptions import NetworkException
from services.sync_service import SyncClient

MENU_URL = "http://board.local/api/menu"


def _wire(doc, stamp):
    return doc.with_timestamp(stamp).to_wire()


class TestSyncClient:
    @pytest.fixture
    def api(self):
        api = Mock()
        api.fetch_menu = AsyncMock(return_value=None)
        return api

    @pytest.fixture
    def client(self, api, memory_cache, sample_document):
        return SyncClient(api, memory_cache, MENU_URL, initial=sample_document)

    @pytest.mark.asyncio
    async def test_equal_timestamp_is_noop(self, client, api, sample_document, memory_cache):
        listener = Mock()
        client.add_listener(listener)
        changed = sample_document.model_copy(update={"footer_message": "changed but same version"})
        api.fetch_menu.return_value = changed.to_wire()

        assert await client.sync() is None
        assert client.current.footer_message == sample_document.footer_message
        listener.assert_not_called()
        assert memory_cache.get("document") is None

    @pytest.mark.asyncio
    async def test_newer_document_replaces(self, client, api, sample_document, memory_cache):
        listener = Mock()
        client.add_listener(listener)
        newer = sample_document.model_copy(update={"footer_message": "Новое"}).with_timestamp(2_000)
        api.fetch_menu.return_value = newer.to_wire()

        accepted = await client.sync()

        assert accepted == newer
        assert client.current == newer
        listener.assert_called_once_with(newer)
        assert memory_cache.get("document")["lastUpdated"] == 2_000

    @pytest.mark.asyncio
    async def test_older_document_also_replaces(self, client, api, sample_document):
        # Any differing version wins; the remote store is authoritative
        api.fetch_menu.return_value = _wire(sample_document, 500)
        accepted = await client.sync()
        assert accepted.last_updated == 500

    @pytest.mark.asyncio
    async def test_no_content_falls_back_to_cache(self, client, api, sample_document, memory_cache):
        memory_cache.set("document", _wire(sample_document, 3_000))
        api.fetch_menu.return_value = None

        accepted = await client.sync()
        assert accepted.last_updated == 3_000

    @pytest.mark.asyncio
    async def test_network_error_falls_back_to_cache(self, client, api, sample_document, memory_cache):
        memory_cache.set("document", _wire(sample_document, 3_000))
        api.fetch_menu.side_effect = NetworkException("down")

        accepted = await client.sync()
        assert accepted.last_updated == 3_000

    @pytest.mark.asyncio
    async def test_network_error_without_cache_keeps_current(self, client, api, sample_document):
        api.fetch_menu.side_effect = NetworkException("down")

        assert await client.sync() is None
        assert client.current == sample_document

    @pytest.mark.asyncio
    async def test_malformed_remote_is_ignored(self, client, api, sample_document):
        api.fetch_menu.return_value = {"categories": [], "dishes": "nope"}

        assert await client.sync() is None
        assert client.current == sample_document

    @pytest.mark.asyncio
    async def test_stale_response_discarded(self, client, api, sample_document):
        gate = asyncio.Event()
        calls = []

        async def fetch(url):
            calls.append(url)
            if len(calls) == 1:
                await gate.wait()
                return _wire(sample_document, 2_000)
            return _wire(sample_document, 3_000)

        api.fetch_menu.side_effect = fetch

        first = asyncio.create_task(client.sync())
        await asyncio.sleep(0)
        second = await client.sync()
        gate.set()
        stale = await first

        assert second.last_updated == 3_000
        assert stale is None
        assert client.current.last_updated == 3_000

    @pytest.mark.asyncio
    async def test_no_remote_url_uses_cache_only(self, api, memory_cache, sample_document):
        memory_cache.set("document", _wire(sample_document, 7_000))
        client = SyncClient(api, memory_cache, None, initial=sample_document)

        accepted = await client.sync()

        api.fetch_menu.assert_not_called()
        assert accepted.last_updated == 7_000

    def test_initial_document_from_cache(self, api, memory_cache, sample_document):
        memory_cache.set("document", _wire(sample_document, 4_000))
        assert SyncClient(api, memory_cache).current.last_updated == 4_000

    def test_initial_document_falls_back_to_seed(self, api, memory_cache):
        client = SyncClient(api, memory_cache)
        assert client.current.last_updated is None
        assert [d.id for d in client.current.dishes] == ["d1", "d2"]

    @pytest.mark.asyncio
    async def test_listener_failure_does_not_break_sync(self, client, api, sample_document):
        client.add_listener(Mock(side_effect=RuntimeError("render crashed")))
        second = Mock()
        client.add_listener(second)
        api.fetch_menu.return_value = _wire(sample_document, 2_000)

        await client.sync()
        second.assert_called_once()

    def test_mark_known_skips_listeners(self, client, sample_document, memory_cache):
        listener = Mock()
        client.add_listener(listener)
        client.mark_known(sample_document.with_timestamp(9_000))

        listener.assert_not_called()
        assert client.current.last_updated == 9_000
        assert memory_cache.get("document")["lastUpdated"] == 9_000

    @pytest.mark.asyncio
    async def test_run_polling_until_stopped(self, client, api):
        async def fetch(url):
            if api.fetch_menu.await_count >= 3:
                client.stop()
            return None

        api.fetch_menu.side_effect = fetch
        await asyncio.wait_for(client.run_polling(interval=0), timeout=1)
        assert api.fetch_menu.await_count == 3


class TestForwardCompatibleThemes:
    @pytest.mark.asyncio
    async def test_unknown_theme_still_accepted(self, memory_cache, sample_document):
        api = Mock()
        payload = _wire(sample_document, 2_000)
        payload["theme"] = "winter"
        api.fetch_menu = AsyncMock(return_value=payload)
        client = SyncClient(api, memory_cache, MENU_URL, initial=sample_document)

        accepted = await client.sync()

        assert accepted is not None
        assert client.current.last_updated == 2_000
