from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from attendance_tracker.schemas.attendance import AttendanceLog
from attendance_tracker.schemas.holiday import Holiday
from attendance_tracker.schemas.settings import TrackerSettings
from attendance_tracker.schemas.subject import Subject
from attendance_tracker.schemas.timetable import SlotOverride, TimetableSlot


class ExportBundle(BaseModel):
    """Full tracker state as written by export and accepted by import."""

    subjects: list[Subject] = Field(default_factory=list)
    slots: list[TimetableSlot] = Field(default_factory=list)
    attendance_logs: list[AttendanceLog] = Field(default_factory=list, alias="attendanceLogs")
    slot_overrides: list[SlotOverride] = Field(default_factory=list, alias="slotOverrides")
    holidays: list[Holiday] | None = None
    settings: TrackerSettings
    exported_at: datetime | None = Field(default=None, alias="exportedAt")

    model_config = ConfigDict(populate_by_name=True)


class ImportResult(BaseModel):
    subjects: int
    slots: int
    attendance_logs: int = Field(alias="attendanceLogs")
    slot_overrides: int = Field(alias="slotOverrides")
    holidays: int

    model_config = ConfigDict(populate_by_name=True)
