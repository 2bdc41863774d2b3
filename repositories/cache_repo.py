import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from core.logger import get_logger

logger = get_logger(__name__)


class LocalCache:
    """
    Client-side persisted key-value state.

    Holds what a browser client would keep in local storage: the last
    resolved document, the admin draft, the remote endpoint and the
    session token. With `path=None` it is memory-only.

    The display and the admin CLI may share one file. Every write re-reads
    the file and applies only its own key on top, so keys written by the
    other process survive.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path or not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, json.JSONDecodeError) as e:
            # A corrupt cache only costs the instant first render
            logger.warning(f"[CACHE] Ignoring unreadable cache {self.path}: {e}")
            return {}

    def _flush(self) -> None:
        if not self.path:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".cache-", dir=str(self.path.parent))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.warning(f"[CACHE] Failed to persist cache: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def _refresh(self) -> None:
        if self.path:
            self._data = self._load()

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._refresh()
            self._data[key] = value
            self._flush()

    def delete(self, key: str) -> None:
        with self._lock:
            self._refresh()
            if key in self._data:
                del self._data[key]
                self._flush()

    def keys(self):
        return list(self._data.keys())
