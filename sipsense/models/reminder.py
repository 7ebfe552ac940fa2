from datetime import datetime
from sqlalchemy import Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from sipsense.db.base import Base


class ReminderSource(str, enum.Enum):
    manual = "manual"
    ai_suggestion = "ai_suggestion"


class Reminder(Base):
    """A persisted daily reminder, promoted from an accepted suggestion or added by hand."""

    __tablename__ = "reminders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    hour: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    minute: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    message: Mapped[str] = mapped_column(String(256), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_adaptive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    skip_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ReminderSource.manual.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
