import pytest
from typing import Any, Optional
from unittest.mock import Mock, AsyncMock

from core.scheduler import ManualScheduler
from models.menu import MenuDocument, Promotion, seed_document
from repositories.cache_repo import LocalCache


# =============================================================================
# Mock Fixtures - External Services
# =============================================================================


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client for the menu row."""
    client = Mock()

    table_mock = Mock()
    table_mock.select.return_value = table_mock
    table_mock.upsert.return_value = table_mock
    table_mock.eq.return_value = table_mock
    table_mock.limit.return_value = table_mock
    table_mock.execute.return_value = Mock(data=[])

    client.table.return_value = table_mock
    return client


def make_http_response(status: int = 200, json_data: Any = None, json_error: Optional[Exception] = None):
    """aiohttp-style response usable as `async with session.get(...) as resp`."""
    resp = Mock()
    resp.status = status
    if json_error is not None:
        resp.json = AsyncMock(side_effect=json_error)
    else:
        resp.json = AsyncMock(return_value=json_data)
    return resp


def make_http_session(get_response=None, post_response=None, get_error=None, post_error=None):
    """Mock aiohttp session whose get/post return async context managers."""
    session = Mock()
    for method, response, error in (
        ("get", get_response, get_error),
        ("post", post_response, post_error),
    ):
        call = Mock()
        if error is not None:
            call.return_value.__aenter__ = AsyncMock(side_effect=error)
        else:
            call.return_value.__aenter__ = AsyncMock(return_value=response)
        call.return_value.__aexit__ = AsyncMock(return_value=None)
        setattr(session, method, call)
    session.close = AsyncMock()
    return session


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def sample_document() -> MenuDocument:
    return seed_document(last_updated=1_000)


@pytest.fixture
def sample_wire(sample_document) -> dict:
    return sample_document.to_wire()


@pytest.fixture
def make_promo():
    def _make(pid: str, title: str = None, active: bool = True, duration: int = 10, frequency: int = 60):
        return Promotion(
            id=pid,
            title=title or f"Promo {pid}",
            active=active,
            duration=duration,
            frequency=frequency,
        )

    return _make


# =============================================================================
# Client State Fixtures
# =============================================================================


@pytest.fixture
def memory_cache() -> LocalCache:
    return LocalCache()


@pytest.fixture
def file_cache(tmp_path) -> LocalCache:
    return LocalCache(str(tmp_path / "client" / "cache.json"))


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def http_response():
    return make_http_response


@pytest.fixture
def http_session():
    return make_http_session
