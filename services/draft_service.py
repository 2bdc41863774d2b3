from typing import List, Optional, Union

from core import constants
from core.exceptions import DocumentValidationError
from core.interfaces import ILocalCache
from core.logger import get_logger
from core.utils import generate_id
from models.menu import AppTheme, Category, Dish, MenuDocument, Promotion, seed_document
from services.sync_service import SyncClient, parse_document

logger = get_logger(__name__)


class DraftEditor:
    """
    The admin's working copy of the menu.

    Every edit replaces the draft, persists it under the `draft` cache key
    and marks unsaved changes. Nothing reaches the remote store until the
    publish pipeline runs. `revision` increases with every edit so a publish
    can tell whether the draft moved while its request was in flight.
    """

    def __init__(self, cache: ILocalCache, sync: Optional[SyncClient] = None):
        self.cache = cache
        self.sync = sync
        self.revision = 0
        self.pending_remote: Optional[MenuDocument] = None
        self.remote_url: Optional[str] = cache.get(constants.CACHE_KEY_REMOTE_URL) or None
        self.dirty: bool = bool(cache.get(constants.CACHE_KEY_DRAFT_DIRTY, False))
        self.draft: MenuDocument = self._load_draft()

        if sync is not None:
            if self.remote_url and not sync.remote_url:
                sync.remote_url = self.remote_url
            sync.add_listener(self.on_remote_document)

    def _load_draft(self) -> MenuDocument:
        for key in (constants.CACHE_KEY_DRAFT, constants.CACHE_KEY_DOCUMENT):
            payload = self.cache.get(key)
            if payload is None:
                continue
            try:
                return parse_document(payload)
            except DocumentValidationError as e:
                logger.warning(f"[DRAFT] Ignoring cached {key}: {e}")
        return seed_document()

    def _persist(self) -> None:
        self.cache.set(constants.CACHE_KEY_DRAFT, self.draft.to_wire())
        self.cache.set(constants.CACHE_KEY_DRAFT_DIRTY, self.dirty)

    def _commit(self, **updates) -> MenuDocument:
        self.draft = self.draft.model_copy(update=updates)
        self.dirty = True
        self.revision += 1
        self._persist()
        return self.draft

    @property
    def baseline(self) -> Optional[int]:
        """`lastUpdated` of the version this draft was derived from."""
        return self.draft.last_updated

    # ------------------------------------------------------------------
    # Remote reconciliation
    # ------------------------------------------------------------------

    def on_remote_document(self, document: MenuDocument) -> None:
        if self.dirty:
            self.pending_remote = document
            logger.info(
                "[DRAFT] Newer remote menu recorded; keeping unsaved local edits",
                context={"remote": document.last_updated, "baseline": self.baseline},
            )
            return
        self.draft = document
        self.pending_remote = None
        self._persist()

    def discard_changes(self) -> MenuDocument:
        """Drops local edits in favour of the newest known remote (or cached) document."""
        replacement = self.pending_remote or (self.sync.current if self.sync else None)
        if replacement is None:
            replacement = self._load_draft()
        self.draft = replacement
        self.dirty = False
        self.pending_remote = None
        self.revision += 1
        self._persist()
        return self.draft

    def load_document(self, document: MenuDocument) -> MenuDocument:
        """Replaces the draft content wholesale (e.g. an imported file), keeping the current baseline."""
        return self._commit(
            **{
                name: getattr(document, name)
                for name in MenuDocument.model_fields
                if name != "last_updated"
            }
        )

    def mark_published(self, saved: MenuDocument, revision: int) -> None:
        """
        Applies a successful publish.

        If nothing changed since `revision` the saved document becomes the
        draft and the dirty flag clears. Otherwise only the baseline stamp is
        adopted and the newer edits stay pending.
        """
        if self.revision == revision:
            self.draft = saved
            self.dirty = False
        else:
            self.draft = self.draft.with_timestamp(saved.last_updated)
            logger.info("[DRAFT] Draft edited during publish; changes remain unsaved")
        self.pending_remote = None
        self._persist()

    async def set_remote_url(self, url: Optional[str]) -> Optional[MenuDocument]:
        """Stores the endpoint and runs an admin sync against it."""
        url = (url or "").strip() or None
        self.remote_url = url
        if url:
            self.cache.set(constants.CACHE_KEY_REMOTE_URL, url)
        else:
            self.cache.delete(constants.CACHE_KEY_REMOTE_URL)

        if self.sync is None:
            return None
        self.sync.remote_url = url
        return await self.sync.sync()

    # ------------------------------------------------------------------
    # Dishes
    # ------------------------------------------------------------------

    def save_dish(self, dish: Dish) -> Dish:
        if not dish.id:
            dish = dish.model_copy(update={"id": generate_id()})
        dishes: List[Dish] = list(self.draft.dishes)
        for i, existing in enumerate(dishes):
            if existing.id == dish.id:
                dishes[i] = dish
                break
        else:
            dishes.append(dish)
        self._commit(dishes=dishes)
        return dish

    def delete_dish(self, dish_id: str) -> None:
        self._commit(dishes=[d for d in self.draft.dishes if d.id != dish_id])

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def add_category(self, name: str) -> Optional[Category]:
        name = (name or "").strip()
        if not name:
            return None
        category = Category(id=generate_id(), name=name, order=len(self.draft.categories) + 1)
        self._commit(categories=[*self.draft.categories, category])
        return category

    def remove_category(self, category_id: str) -> None:
        # Dishes keep their category id; the board simply stops showing them
        self._commit(categories=[c for c in self.draft.categories if c.id != category_id])

    def toggle_category_visibility(self, category_id: str) -> None:
        self._commit(
            categories=[
                c.model_copy(update={"is_visible": not c.is_visible}) if c.id == category_id else c
                for c in self.draft.categories
            ]
        )

    # ------------------------------------------------------------------
    # Promotions
    # ------------------------------------------------------------------

    def save_promotion(self, promo: Promotion) -> Optional[Promotion]:
        if not promo.title.strip():
            return None
        if not promo.id:
            promo = promo.model_copy(update={"id": generate_id()})
        promotions: List[Promotion] = list(self.draft.promotions)
        for i, existing in enumerate(promotions):
            if existing.id == promo.id:
                promotions[i] = promo
                break
        else:
            promotions.append(promo)
        self._commit(promotions=promotions)
        return promo

    def set_promotion_active(self, promo_id: str, active: bool) -> None:
        self._commit(
            promotions=[
                p.model_copy(update={"active": active}) if p.id == promo_id else p
                for p in self.draft.promotions
            ]
        )

    def delete_promotion(self, promo_id: str) -> None:
        self._commit(promotions=[p for p in self.draft.promotions if p.id != promo_id])

    # ------------------------------------------------------------------
    # Document settings
    # ------------------------------------------------------------------

    def set_theme(self, theme: Union[AppTheme, str]) -> None:
        self._commit(theme=AppTheme(theme))

    def set_footer_message(self, text: str) -> None:
        self._commit(footer_message=text or "")
