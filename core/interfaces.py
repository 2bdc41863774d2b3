"""
Protocol-based interfaces for Dependency Injection.
These interfaces define contracts for stores and services, enabling easier testing and extensibility.
"""
from typing import Protocol, Optional, Any, runtime_checkable

from models.menu import MenuDocument


@runtime_checkable
class IMenuRepository(Protocol):
    """
    Canonical menu store.

    Consistency contract: last-write-wins, whole-document replace. `put()`
    must be atomic (a concurrent `get()` sees either the old or the new
    document, never a mix) and must return the stored, stamped document.
    """

    def get(self) -> Optional[MenuDocument]:
        """Returns the stored document, or None if nothing was published yet."""
        ...

    def put(self, doc: MenuDocument) -> MenuDocument:
        """Replaces the stored document. Stamps a strictly newer `lastUpdated`."""
        ...

    def health_check(self) -> bool:
        ...


@runtime_checkable
class ILocalCache(Protocol):
    """Client-side persisted key-value state (resolved document, draft, token, endpoint)."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


@runtime_checkable
class IAIService(Protocol):
    """Interface for AI content generation."""

    def is_enabled(self) -> bool:
        ...

    async def generate_dish_image(self, name: str, description: str = "") -> str:
        """Generates a dish photo. Returns an image URL (stored or data URL)."""
        ...

    async def improve_description(self, name: str, description: str = "") -> str:
        """Rewrites the dish description."""
        ...


@runtime_checkable
class IImageStore(Protocol):
    """Stores image bytes and returns a stable URL."""

    def save_bytes(self, data: bytes, mime_type: str) -> str:
        ...

    def save_data_url(self, data_url: str) -> str:
        ...
