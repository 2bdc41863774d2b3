import asyncio
from typing import Callable, List, Optional

from pydantic import ValidationError

from core import constants
from core.exceptions import DocumentValidationError, NetworkException
from core.interfaces import ILocalCache
from core.logger import get_logger
from models.menu import MenuDocument, is_menu_shape, seed_document
from services.api_client import MenuApiClient

logger = get_logger(__name__)

DocumentListener = Callable[[MenuDocument], None]


def parse_document(payload) -> MenuDocument:
    """Validates a wire payload into a MenuDocument."""
    if not is_menu_shape(payload):
        raise DocumentValidationError("invalid_payload", {"type": type(payload).__name__})
    try:
        return MenuDocument.model_validate(payload)
    except ValidationError as e:
        raise DocumentValidationError("invalid_payload", {"errors": e.error_count()}) from e


class SyncClient:
    """
    Keeps a local copy of the menu in step with the remote store.

    Reconciliation: a candidate (remote, or the cached copy on fallback) is
    accepted only if its `lastUpdated` differs from the one held. Every
    accepted document is mirrored into the local cache and handed to the
    listeners. Failures never propagate; the held document simply stays.
    """

    def __init__(
        self,
        api: MenuApiClient,
        cache: ILocalCache,
        remote_url: Optional[str] = None,
        initial: Optional[MenuDocument] = None,
    ):
        self.api = api
        self.cache = cache
        self.remote_url = remote_url
        self._epoch = 0
        self._listeners: List[DocumentListener] = []
        self._running = False
        self.current: MenuDocument = initial or self._cached_document() or seed_document()

    def add_listener(self, listener: DocumentListener) -> None:
        self._listeners.append(listener)

    def _cached_document(self) -> Optional[MenuDocument]:
        payload = self.cache.get(constants.CACHE_KEY_DOCUMENT)
        if payload is None:
            return None
        try:
            return parse_document(payload)
        except DocumentValidationError as e:
            logger.warning(f"[SYNC] Cached document unusable: {e}")
            return None

    async def _fetch_remote(self) -> Optional[MenuDocument]:
        if not self.remote_url:
            return None
        try:
            payload = await self.api.fetch_menu(self.remote_url)
        except (NetworkException, DocumentValidationError) as e:
            logger.warning(f"[SYNC] Remote fetch failed, using local cache: {e}")
            return None
        if payload is None:
            logger.debug("[SYNC] Remote has no document yet (204)")
            return None
        try:
            return parse_document(payload)
        except DocumentValidationError as e:
            logger.warning(f"[SYNC] Remote document rejected: {e}")
            return None

    async def sync(self) -> Optional[MenuDocument]:
        """
        One reconciliation round.

        Returns:
            The newly accepted document, or None when nothing changed or
            the response was superseded by a newer sync.
        """
        self._epoch += 1
        epoch = self._epoch

        candidate = await self._fetch_remote()
        if epoch != self._epoch:
            logger.debug(f"[SYNC] Discarding stale response (epoch {epoch} < {self._epoch})")
            return None

        if candidate is None:
            candidate = self._cached_document()
        if candidate is None:
            return None
        return self.apply(candidate)

    def apply(self, candidate: MenuDocument) -> Optional[MenuDocument]:
        """Accepts `candidate` unless it carries the same version as the held document."""
        if self.current is not None and candidate.last_updated == self.current.last_updated:
            return None

        previous = self.current.last_updated if self.current else None
        self.current = candidate
        self.cache.set(constants.CACHE_KEY_DOCUMENT, candidate.to_wire())
        logger.info(
            "[SYNC] Accepted menu document",
            context={"previous": previous, "lastUpdated": candidate.last_updated},
        )

        for listener in list(self._listeners):
            try:
                listener(candidate)
            except Exception as e:
                logger.error(f"[SYNC] Listener failed: {e}", exc_info=True)
        return candidate

    def mark_known(self, document: MenuDocument) -> None:
        """Records a document this client produced itself (e.g. a publish) without notifying listeners."""
        self.current = document
        self.cache.set(constants.CACHE_KEY_DOCUMENT, document.to_wire())

    async def run_polling(self, interval: float = constants.DEFAULT_SYNC_INTERVAL) -> None:
        """Syncs immediately, then every `interval` seconds until `stop()`."""
        self._running = True
        logger.info(f"[SYNC] Polling {self.remote_url} every {interval}s")
        while self._running:
            await self.sync()
            await asyncio.sleep(interval)

    def stop(self) -> None:
        self._running = False
