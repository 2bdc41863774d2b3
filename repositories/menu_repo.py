import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from supabase import Client

from core import constants
from core.exceptions import DocumentValidationError, StorageReadError, StorageWriteError
from core.logger import get_logger
from core.performance import get_performance_monitor
from core.utils import next_timestamp
from models.menu import MenuDocument

logger = get_logger(__name__)


class FileMenuRepository:
    """
    Menu store backed by a single JSON file.

    Writes go to a temp file in the same directory and are swapped in with
    `os.replace`, so readers observe either the previous or the new document.
    A process-wide lock serializes concurrent publishes (last writer wins).
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()
        self.monitor = get_performance_monitor()

    def _read_raw(self) -> Optional[dict]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            raise StorageReadError(
                "Failed to read menu file", {"path": str(self.path), "error": str(e)}
            ) from e

    def get(self) -> Optional[MenuDocument]:
        with self.monitor.measure("menu_store.read", {"backend": "file"}):
            raw = self._read_raw()
        if raw is None:
            return None
        try:
            return MenuDocument.model_validate(raw)
        except ValidationError as e:
            raise StorageReadError(
                "Stored menu document is corrupt", {"path": str(self.path), "error": str(e)}
            ) from e

    def put(self, doc: MenuDocument) -> MenuDocument:
        if not isinstance(doc, MenuDocument):
            raise DocumentValidationError("put() expects a MenuDocument")

        with self._lock, self.monitor.measure("menu_store.write", {"backend": "file"}):
            previous = self._previous_stamp()
            saved = doc.with_timestamp(next_timestamp(previous))
            self._atomic_write(saved)

        logger.info(
            "[STORE] Menu document replaced",
            context={"lastUpdated": saved.last_updated, "dishes": len(saved.dishes)},
        )
        return saved

    def _previous_stamp(self) -> Optional[int]:
        try:
            raw = self._read_raw()
        except StorageReadError:
            logger.warning("[STORE] Existing menu unreadable, overwriting")
            return None
        if not raw:
            return None
        stamp = raw.get("lastUpdated")
        return stamp if isinstance(stamp, int) else None

    def _atomic_write(self, doc: MenuDocument) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=".menu-", suffix=".json", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(doc.to_wire(), f, ensure_ascii=False, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageWriteError(
                "Failed to write menu file", {"path": str(self.path), "error": str(e)}
            ) from e

    def health_check(self) -> bool:
        try:
            self._read_raw()
            return True
        except StorageReadError as e:
            logger.error(f"Menu store health check failed: {e}")
            return False


class SupabaseMenuRepository:
    """
    Menu store backed by one Supabase row (`menu_documents`, id='current').

    The upsert replaces the row as a whole, which gives the same
    last-write-wins, whole-document semantics as the file store.
    """

    def __init__(self, client: Client):
        self.db = client
        self.table = constants.SUPABASE_MENU_TABLE
        self.row_id = constants.SUPABASE_MENU_ROW_ID
        self.monitor = get_performance_monitor()

    def _fetch_row(self) -> Optional[dict]:
        try:
            response = (
                self.db.table(self.table)
                .select("data, last_updated")
                .eq("id", self.row_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise StorageReadError("Failed to read menu row", {"error": str(e)}) from e
        return response.data[0] if response.data else None

    def get(self) -> Optional[MenuDocument]:
        with self.monitor.measure("menu_store.read", {"backend": "supabase"}):
            row = self._fetch_row()
        if not row or not row.get("data"):
            return None
        data = row["data"]
        if isinstance(data, str):
            data = json.loads(data)
        try:
            return MenuDocument.model_validate(data)
        except ValidationError as e:
            raise StorageReadError("Stored menu document is corrupt", {"error": str(e)}) from e

    def put(self, doc: MenuDocument) -> MenuDocument:
        with self.monitor.measure("menu_store.write", {"backend": "supabase"}):
            row = self._fetch_row()
            previous = row.get("last_updated") if row else None
            saved = doc.with_timestamp(next_timestamp(previous))
            try:
                self.db.table(self.table).upsert(
                    {
                        "id": self.row_id,
                        "data": saved.to_wire(),
                        "last_updated": saved.last_updated,
                    }
                ).execute()
            except Exception as e:
                raise StorageWriteError("Failed to write menu row", {"error": str(e)}) from e

        logger.info(
            "[STORE] Menu document replaced (supabase)",
            context={"lastUpdated": saved.last_updated},
        )
        return saved

    def health_check(self) -> bool:
        try:
            self._fetch_row()
            return True
        except StorageReadError as e:
            logger.error(f"Menu store health check failed: {e}")
            return False


def create_menu_repository(backend: str, data_path: str):
    """Builds the store selected by `MENU_STORE`."""
    if backend == "supabase":
        from core.database import Database

        return SupabaseMenuRepository(Database.get_client())
    return FileMenuRepository(data_path)
