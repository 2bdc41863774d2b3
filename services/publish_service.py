from typing import Optional

from core import constants
from core.exceptions import (
    AuthException,
    AuthorizationError,
    DocumentValidationError,
    MissingEndpointError,
    PublishFailedError,
    SessionExpiredError,
)
from core.interfaces import ILocalCache
from core.logger import get_logger
from core.performance import get_performance_monitor
from core.utils import next_timestamp
from models.menu import MenuDocument
from services.api_client import MenuApiClient, api_base_from_menu_url
from services.draft_service import DraftEditor
from services.image_service import prepare_image_for_upload
from services.sync_service import SyncClient, parse_document

logger = get_logger(__name__)


class PublishPipeline:
    """
    Sends the admin draft to the remote store as a whole-document replace.

    Preconditions (endpoint, token) are checked before any network call.
    A rejected session clears the stored token; any other failure leaves
    the draft untouched and still dirty.
    """

    def __init__(
        self,
        editor: DraftEditor,
        api: MenuApiClient,
        cache: ILocalCache,
        sync: Optional[SyncClient] = None,
    ):
        self.editor = editor
        self.api = api
        self.cache = cache
        self.sync = sync
        self.monitor = get_performance_monitor()

    async def publish(self) -> MenuDocument:
        url = self.editor.remote_url
        if not url:
            raise MissingEndpointError("Configure the server URL in settings before publishing")

        token = self.cache.get(constants.CACHE_KEY_TOKEN)
        if not token:
            self.cache.delete(constants.CACHE_KEY_TOKEN)
            raise SessionExpiredError("Session expired, please sign in again")

        revision = self.editor.revision
        stamped = self.editor.draft.with_timestamp(next_timestamp(self.editor.baseline))

        try:
            with self.monitor.measure("publish", {"url": url}):
                payload = await self.api.publish_menu(url, stamped.to_wire(), token)
        except AuthorizationError:
            self.cache.delete(constants.CACHE_KEY_TOKEN)
            logger.warning("[PUBLISH] Session rejected by server; token cleared")
            raise
        except PublishFailedError as e:
            logger.error(f"[PUBLISH] Failed, draft kept: {e}")
            raise

        try:
            saved = parse_document(payload)
        except DocumentValidationError:
            saved = stamped
        if saved.last_updated is None:
            saved = stamped

        self.editor.mark_published(saved, revision)
        if self.sync is not None:
            self.sync.mark_known(saved)
        else:
            self.cache.set(constants.CACHE_KEY_DOCUMENT, saved.to_wire())

        logger.info(
            "[PUBLISH] Menu published",
            context={"lastUpdated": saved.last_updated, "dirty": self.editor.dirty},
        )
        return saved


class AdminSession:
    """
    Admin-side facade: session token, draft editing and publishing.

    Keeps the UI-facing state the admin screen needs (`active_screen`,
    authentication) and translates pipeline exceptions into it.
    """

    SCREEN_MENU = "menu"
    SCREEN_SETTINGS = "settings"

    def __init__(self, cache: ILocalCache, api: MenuApiClient, sync: Optional[SyncClient] = None):
        self.cache = cache
        self.api = api
        self.sync = sync
        self.editor = DraftEditor(cache, sync)
        self.pipeline = PublishPipeline(self.editor, api, cache, sync)
        self.active_screen = self.SCREEN_MENU

    @property
    def token(self) -> Optional[str]:
        return self.cache.get(constants.CACHE_KEY_TOKEN)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def api_base(self) -> Optional[str]:
        url = self.editor.remote_url
        return api_base_from_menu_url(url) if url else None

    async def start(self) -> None:
        """Initial admin sync (once on start)."""
        if self.sync is not None and self.editor.remote_url:
            await self.sync.sync()

    async def login(self, password: str) -> str:
        if not self.api_base:
            self.active_screen = self.SCREEN_SETTINGS
            raise MissingEndpointError("Configure the server URL in settings before signing in")
        token = await self.api.login(self.api_base, password)
        self.cache.set(constants.CACHE_KEY_TOKEN, token)
        logger.info("[ADMIN] Signed in")
        return token

    def logout(self) -> None:
        self.cache.delete(constants.CACHE_KEY_TOKEN)

    async def publish(self) -> MenuDocument:
        try:
            return await self.pipeline.publish()
        except MissingEndpointError:
            self.active_screen = self.SCREEN_SETTINGS
            raise
        except AuthException:
            self.logout()
            raise

    async def attach_image(self, image_bytes: bytes) -> Optional[str]:
        """Prepares and uploads a photo; returns its URL or None."""
        if not self.api_base:
            return None
        data_url = prepare_image_for_upload(image_bytes)
        return await self.api.upload_image(self.api_base, data_url, self.token)

    async def generate_dish_image(self, name: str, description: str = "") -> Optional[str]:
        if not self.api_base:
            return None
        return await self.api.generate_dish_image(self.api_base, name, description, self.token)

    async def improve_description(self, name: str, description: str = "") -> Optional[str]:
        if not self.api_base:
            return None
        return await self.api.improve_description(self.api_base, name, description, self.token)
