"""Key/value blob stores used to keep the catalog between sessions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from catalog_scan.errors import PersistError


# Roughly what a browser grants one origin in localStorage
DEFAULT_MAX_BYTES = 5 * 1024 * 1024


class BlobStore(ABC):
    """Minimal get/set/delete boundary for persisted blobs."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        ...

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """Store value under key. Raises PersistError when the write fails."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present. Raises PersistError when the delete fails."""
        ...


class MemoryBlobStore(BlobStore):
    """Process-local store, used for headless runs and tests."""

    def __init__(self, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        self._data: dict[str, bytes] = {}
        self._max_bytes = max_bytes

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        if len(value) > self._max_bytes:
            raise PersistError(
                f"Value for {key!r} is {len(value)} bytes; limit is {self._max_bytes}"
            )
        self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SqlBlobStore(BlobStore):
    """Blob store backed by the blob_entry table.

    Must be used inside a Flask application context.
    """

    def __init__(self, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        self._max_bytes = max_bytes

    def get(self, key: str) -> Optional[bytes]:
        from catalog_scan import db
        from catalog_scan.models import BlobEntry

        entry = db.session.get(BlobEntry, key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: bytes) -> None:
        from catalog_scan import db
        from catalog_scan.models import BlobEntry

        if len(value) > self._max_bytes:
            raise PersistError(
                f"Value for {key!r} is {len(value)} bytes; limit is {self._max_bytes}"
            )

        try:
            entry = db.session.get(BlobEntry, key)
            if entry is None:
                db.session.add(BlobEntry(key=key, value=value))
            else:
                entry.value = value
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise PersistError(f"Could not write {key!r}: {e}") from e

    def delete(self, key: str) -> None:
        from catalog_scan import db
        from catalog_scan.models import BlobEntry

        try:
            entry = db.session.get(BlobEntry, key)
            if entry is not None:
                db.session.delete(entry)
                db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise PersistError(f"Could not delete {key!r}: {e}") from e
