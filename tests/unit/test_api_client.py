"""
Unit tests for MenuApiClient (aiohttp session mocked).
"""

import asyncio

import aiohttp
import pytest

from core.exceptions import (
    AuthorizationError,
    DocumentValidationError,
    InvalidCredentialsError,
    NetworkException,
    PublishFailedError,
)
from services.api_client import MenuApiClient, api_base_from_menu_url

MENU_URL = "http://board.local/api/menu"


class TestApiBase:
    @pytest.mark.parametrize(
        "menu_url, expected",
        [
            ("http://board.local/api/menu", "http://board.local/api"),
            ("http://board.local/api/menu/", "http://board.local/api"),
            ("https://x.example/custom/path", "https://x.example/api"),
        ],
    )
    def test_api_base(self, menu_url, expected):
        assert api_base_from_menu_url(menu_url) == expected


class TestFetchMenu:
    @pytest.mark.asyncio
    async def test_returns_document(self, http_session, http_response, sample_wire):
        session = http_session(get_response=http_response(200, sample_wire))
        client = MenuApiClient(session=session)

        data = await client.fetch_menu(MENU_URL)

        assert data == sample_wire
        requested = session.get.call_args[0][0]
        assert requested.startswith(f"{MENU_URL}?t=")

    @pytest.mark.asyncio
    async def test_no_content(self, http_session, http_response):
        client = MenuApiClient(session=http_session(get_response=http_response(204)))
        assert await client.fetch_menu(MENU_URL) is None

    @pytest.mark.asyncio
    async def test_server_error(self, http_session, http_response):
        client = MenuApiClient(session=http_session(get_response=http_response(500, {"detail": "read_failed"})))
        with pytest.raises(NetworkException) as exc:
            await client.fetch_menu(MENU_URL)
        assert exc.value.details["status"] == 500

    @pytest.mark.asyncio
    async def test_timeout(self, http_session):
        client = MenuApiClient(session=http_session(get_error=asyncio.TimeoutError()))
        with pytest.raises(NetworkException):
            await client.fetch_menu(MENU_URL)

    @pytest.mark.asyncio
    async def test_connection_error(self, http_session):
        client = MenuApiClient(session=http_session(get_error=aiohttp.ClientConnectionError("refused")))
        with pytest.raises(NetworkException):
            await client.fetch_menu(MENU_URL)

    @pytest.mark.asyncio
    async def test_body_not_json(self, http_session, http_response):
        client = MenuApiClient(session=http_session(get_response=http_response(200, json_error=ValueError("bad"))))
        with pytest.raises(DocumentValidationError):
            await client.fetch_menu(MENU_URL)

    @pytest.mark.asyncio
    async def test_body_not_object(self, http_session, http_response):
        client = MenuApiClient(session=http_session(get_response=http_response(200, [1, 2])))
        with pytest.raises(DocumentValidationError):
            await client.fetch_menu(MENU_URL)


class TestPublishMenu:
    @pytest.mark.asyncio
    async def test_success_returns_saved(self, http_session, http_response, sample_wire):
        saved = dict(sample_wire, lastUpdated=2_000)
        session = http_session(post_response=http_response(200, saved))
        client = MenuApiClient(session=session)

        result = await client.publish_menu(MENU_URL, sample_wire, "tok")

        assert result == saved
        kwargs = session.post.call_args.kwargs
        assert kwargs["headers"] == {"Authorization": "Bearer tok"}
        assert kwargs["json"] == sample_wire

    @pytest.mark.asyncio
    async def test_unauthorized(self, http_session, http_response, sample_wire):
        client = MenuApiClient(session=http_session(post_response=http_response(401, {"detail": "invalid_token"})))
        with pytest.raises(AuthorizationError):
            await client.publish_menu(MENU_URL, sample_wire, "tok")

    @pytest.mark.asyncio
    async def test_server_error(self, http_session, http_response, sample_wire):
        client = MenuApiClient(session=http_session(post_response=http_response(500, {"detail": "write_failed"})))
        with pytest.raises(PublishFailedError):
            await client.publish_menu(MENU_URL, sample_wire, "tok")

    @pytest.mark.asyncio
    async def test_network_failure(self, http_session, sample_wire):
        client = MenuApiClient(session=http_session(post_error=aiohttp.ClientConnectionError("down")))
        with pytest.raises(PublishFailedError):
            await client.publish_menu(MENU_URL, sample_wire, "tok")


class TestLoginAndHelpers:
    @pytest.mark.asyncio
    async def test_login(self, http_session, http_response):
        session = http_session(post_response=http_response(200, {"token": "jwt"}))
        token = await MenuApiClient(session=session).login("http://board.local/api", "pw")

        assert token == "jwt"
        assert session.post.call_args[0][0] == "http://board.local/api/login"

    @pytest.mark.asyncio
    async def test_login_rejected(self, http_session, http_response):
        client = MenuApiClient(session=http_session(post_response=http_response(401, {"detail": "invalid_password"})))
        with pytest.raises(InvalidCredentialsError):
            await client.login("http://board.local/api", "bad")

    @pytest.mark.asyncio
    async def test_upload_image(self, http_session, http_response):
        session = http_session(post_response=http_response(200, {"imageUrl": "/uploads/1-a.jpg"}))
        url = await MenuApiClient(session=session).upload_image("http://board.local/api", "data:...", "tok")

        assert url == "/uploads/1-a.jpg"
        assert session.post.call_args.kwargs["json"] == {"dataUrl": "data:..."}

    @pytest.mark.asyncio
    async def test_helpers_degrade_to_none(self, http_session, http_response):
        client = MenuApiClient(session=http_session(post_response=http_response(503, {"detail": "ai_not_configured"})))
        assert await client.generate_dish_image("http://board.local/api", "Борщ", "", "tok") is None
        assert await client.improve_description("http://board.local/api", "Борщ", "", "tok") is None

    @pytest.mark.asyncio
    async def test_helpers_swallow_network_errors(self, http_session):
        client = MenuApiClient(session=http_session(post_error=aiohttp.ClientConnectionError("down")))
        assert await client.upload_image("http://board.local/api", "data:...", None) is None

    @pytest.mark.asyncio
    async def test_close_leaves_injected_session_open(self, http_session):
        session = http_session()
        client = MenuApiClient(session=session)
        await client.close()
        session.close.assert_not_awaited()
