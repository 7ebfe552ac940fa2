"""
KeyValueRecord — backing table for the engine's opaque key-value store.

One row per key; `value` is whatever bytes the engine serialized
(JSON-encoded behavior logs, raw model parameters, privacy mode).
"""
from datetime import datetime
from sqlalchemy import String, LargeBinary, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from sipsense.db.base import Base


class KeyValueRecord(Base):
    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
