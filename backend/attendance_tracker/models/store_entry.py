from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from attendance_tracker.db.base import Base


class StoreKey(str, Enum):
    subjects = "subjects"
    slots = "slots"
    attendance = "attendance"
    slot_overrides = "slotOverrides"
    holidays = "holidays"
    settings = "settings"
    first_launch = "firstLaunch"


class StoreEntry(Base):
    __tablename__ = "store_entries"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
