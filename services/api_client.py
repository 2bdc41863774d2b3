import asyncio
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

import aiohttp

from core.exceptions import (
    AuthorizationError,
    DocumentValidationError,
    InvalidCredentialsError,
    NetworkException,
    PublishFailedError,
)
from core.logger import get_logger
from core.utils import with_cache_buster

logger = get_logger(__name__)


def api_base_from_menu_url(menu_url: str) -> str:
    """
    Derives the API root from the configured menu endpoint.

    `https://host/api/menu` -> `https://host/api`; any other path falls back
    to `<origin>/api`.
    """
    url = (menu_url or "").rstrip("/")
    if url.endswith("/menu"):
        return url[: -len("/menu")]
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, "/api", "", ""))


class MenuApiClient:
    """
    HTTP client for the menu board backend (used by admin and display).

    Menu calls raise typed exceptions so the Sync Client and Publish
    Pipeline can apply their own policies. Content helpers (upload, AI)
    degrade to None on any failure.
    """

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self.timeout = aiohttp.ClientTimeout(total=30, connect=10)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout, headers={"Accept": "application/json"}
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    @staticmethod
    def _auth_headers(token: Optional[str]) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"} if token else {}

    # ------------------------------------------------------------------
    # Menu document
    # ------------------------------------------------------------------

    async def fetch_menu(self, menu_url: str) -> Optional[Dict[str, Any]]:
        """
        GET the menu with a cache-busting parameter.

        Returns:
            The document as a dict, or None when the server has no document (204)

        Raises:
            NetworkException: transport failure or non-2xx status
            DocumentValidationError: body is not a JSON object
        """
        session = await self._get_session()
        url = with_cache_buster(menu_url)
        try:
            async with session.get(url) as resp:
                if resp.status == 204:
                    return None
                if resp.status < 200 or resp.status >= 300:
                    raise NetworkException(
                        f"Menu fetch returned {resp.status}", {"url": menu_url, "status": resp.status}
                    )
                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    raise DocumentValidationError("Menu response is not JSON", {"url": menu_url}) from e
        except asyncio.TimeoutError as e:
            raise NetworkException(f"Timeout fetching {menu_url}", {"url": menu_url}) from e
        except aiohttp.ClientError as e:
            raise NetworkException(
                f"HTTP error fetching {menu_url}", {"url": menu_url, "error": str(e)}
            ) from e

        if data is None:
            return None
        if not isinstance(data, dict):
            raise DocumentValidationError("Menu response is not an object", {"url": menu_url})
        return data

    async def publish_menu(self, menu_url: str, document: Dict[str, Any], token: str) -> Dict[str, Any]:
        """
        POST the full document as a replacement.

        Raises:
            AuthorizationError: server answered 401
            PublishFailedError: any other failure (draft must be kept)
        """
        session = await self._get_session()
        try:
            async with session.post(
                menu_url, json=document, headers=self._auth_headers(token)
            ) as resp:
                if resp.status == 401:
                    raise AuthorizationError("Session rejected by server", {"status": 401})
                if resp.status < 200 or resp.status >= 300:
                    raise PublishFailedError(
                        "Server error", {"status": resp.status, "url": menu_url}
                    )
                try:
                    saved = await resp.json(content_type=None)
                except ValueError:
                    saved = None
        except (asyncio.TimeoutError, aiohttp.ClientError) as e:
            raise PublishFailedError(
                "Connection to server failed", {"url": menu_url, "error": str(e) or type(e).__name__}
            ) from e

        return saved if isinstance(saved, dict) else document

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def login(self, api_base: str, password: str) -> str:
        """
        Exchanges the admin password for a token.

        Raises:
            InvalidCredentialsError: 401 or a response without a token
            NetworkException: transport failure or server misconfiguration
        """
        session = await self._get_session()
        try:
            async with session.post(f"{api_base}/login", json={"password": password}) as resp:
                if resp.status == 401:
                    raise InvalidCredentialsError("invalid_password")
                if resp.status != 200:
                    raise NetworkException("Login failed", {"status": resp.status})
                data = await resp.json(content_type=None)
        except (asyncio.TimeoutError, aiohttp.ClientError, ValueError) as e:
            raise NetworkException("Login request failed", {"error": str(e)}) from e

        token = (data or {}).get("token") if isinstance(data, dict) else None
        if not token:
            raise InvalidCredentialsError("invalid_password", {"reason": "no token in response"})
        return token

    # ------------------------------------------------------------------
    # Content helpers (never fatal to the editing flow)
    # ------------------------------------------------------------------

    async def _post_for_field(
        self, url: str, body: Dict[str, Any], token: Optional[str], field: str, label: str
    ) -> Optional[str]:
        session = await self._get_session()
        try:
            async with session.post(url, json=body, headers=self._auth_headers(token)) as resp:
                if resp.status != 200:
                    logger.warning(f"[CLIENT] {label} failed with status {resp.status}")
                    return None
                data = await resp.json(content_type=None)
        except Exception as e:
            logger.error(f"[CLIENT] Error during {label}: {e}")
            return None
        value = data.get(field) if isinstance(data, dict) else None
        return value or None

    async def upload_image(self, api_base: str, data_url: str, token: Optional[str]) -> Optional[str]:
        return await self._post_for_field(
            f"{api_base}/uploads", {"dataUrl": data_url}, token, "imageUrl", "image upload"
        )

    async def generate_dish_image(
        self, api_base: str, name: str, description: str, token: Optional[str]
    ) -> Optional[str]:
        return await self._post_for_field(
            f"{api_base}/ai/image",
            {"name": name, "description": description},
            token,
            "imageUrl",
            "image generation",
        )

    async def improve_description(
        self, api_base: str, name: str, description: str, token: Optional[str]
    ) -> Optional[str]:
        return await self._post_for_field(
            f"{api_base}/ai/description",
            {"name": name, "description": description},
            token,
            "description",
            "description improvement",
        )
