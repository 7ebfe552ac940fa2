"""
Key-value persistence collaborator.

The engine only ever needs `load(key) -> bytes | None` and `save(key, bytes)`.
Two implementations:

  MemoryKeyValueStore  — dict-backed, per process (tests, ephemeral sessions)
  SqlKeyValueStore     — one row per key in `kv_store`, short-lived session per call
"""
from __future__ import annotations

from typing import Callable, Optional, Protocol

from sqlalchemy.orm import Session

from sipsense.models.kv_record import KeyValueRecord


class KeyValueStore(Protocol):
    def load(self, key: str) -> Optional[bytes]: ...

    def save(self, key: str, value: bytes) -> None: ...


class MemoryKeyValueStore:
    def __init__(self, initial: Optional[dict[str, bytes]] = None):
        self._data: dict[str, bytes] = dict(initial or {})

    def load(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def save(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)


class SqlKeyValueStore:
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def load(self, key: str) -> Optional[bytes]:
        db = self._session_factory()
        try:
            row = db.get(KeyValueRecord, key)
            return bytes(row.value) if row is not None else None
        finally:
            db.close()

    def save(self, key: str, value: bytes) -> None:
        db = self._session_factory()
        try:
            row = db.get(KeyValueRecord, key)
            if row is None:
                db.add(KeyValueRecord(key=key, value=value))
            else:
                row.value = value
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
