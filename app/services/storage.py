"""Key-value storage backends for document collections.

Every collection (``documents``, ``personalInfo``, ...) lives under a fixed
key as a JSON array of plain records. Values are copied on the way in and on
the way out, so a caller that changes a record must write the list back with
``set``.
"""
import copy
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.sessions import SessionLocal
from app.models.storage_entry import StorageEntry

logger = logging.getLogger(__name__)

_MISSING = object()


class KeyValueStore(ABC):
    """Storage port used by the document service."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @contextmanager
    def transaction(self) -> Iterator[None]:
        yield

    def ensure_collections(self, keys: Iterable[str]) -> None:
        """Initialize every missing collection key to an empty list."""
        for key in keys:
            if self.get(key) is None:
                self.set(key, [])


class MemoryStore(KeyValueStore):
    """Process-local store backed by a plain dict."""

    def __init__(self, data: Optional[dict] = None):
        self._data: dict[str, Any] = copy.deepcopy(data) if data else {}
        # Undo log of the transaction open on the current thread
        self._local = threading.local()

    def _undo_log(self) -> Optional[dict]:
        return getattr(self._local, "undo", None)

    def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        undo = self._undo_log()
        if undo is not None and key not in undo:
            undo[key] = self._data.get(key, _MISSING)
        self._data[key] = copy.deepcopy(value)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Undo the keys written inside the block if it raises.

        Only those keys are restored; writes made by other threads to other
        keys in the meantime survive. Writes racing on the same key are not
        guarded.
        """
        if self._undo_log() is not None:
            yield
            return

        undo: dict[str, Any] = {}
        self._local.undo = undo
        try:
            yield
        except Exception:
            logger.warning("Rolling back in-memory keys: %s", ", ".join(undo))
            for key, previous in undo.items():
                if previous is _MISSING:
                    self._data.pop(key, None)
                else:
                    self._data[key] = previous
            raise
        finally:
            self._local.undo = None

    def clear(self) -> None:
        self._data.clear()


class DatabaseStore(KeyValueStore):
    """Store that keeps one ``storage_entries`` row per key."""

    def __init__(self, db: Session):
        self.db = db
        self._in_transaction = False

    def get(self, key: str) -> Optional[Any]:
        entry = self.db.get(StorageEntry, key)
        if entry is None:
            return None
        return copy.deepcopy(entry.value)

    def set(self, key: str, value: Any) -> None:
        entry = self.db.get(StorageEntry, key)
        if entry is None:
            entry = StorageEntry(key=key, value=copy.deepcopy(value))
            self.db.add(entry)
        else:
            entry.value = copy.deepcopy(value)

        # Pending rows must be visible to the next get() inside a transaction
        self.db.flush()
        if not self._in_transaction:
            self.db.commit()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._in_transaction:
            yield
            return

        self._in_transaction = True
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        finally:
            self._in_transaction = False


# Shared by every request when STORAGE_BACKEND is "memory"
memory_store = MemoryStore()


def get_store():
    """Dependency yielding the configured storage backend."""
    if settings.STORAGE_BACKEND == "database":
        db = SessionLocal()
        try:
            yield DatabaseStore(db)
        finally:
            db.close()
    else:
        yield memory_store
