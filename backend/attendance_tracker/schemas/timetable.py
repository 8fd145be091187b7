from __future__ import annotations

import re
import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def get_day_label(day_of_week: int) -> str:
    if 0 <= day_of_week < len(DAY_LABELS):
        return DAY_LABELS[day_of_week]
    return "Day"


def _validate_time(value: str | None) -> str | None:
    if value is not None and not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    return value


class OverrideType(str, Enum):
    cancelled = "cancelled"
    modified = "modified"
    added = "added"


class TimetableSlot(BaseModel):
    """A recurring weekly session of one subject."""

    id: str = Field(min_length=1, max_length=100)
    subject_id: str = Field(alias="subjectId", min_length=1, max_length=50)
    day_of_week: int = Field(alias="dayOfWeek", ge=0, le=6)
    start_time: str = Field(alias="startTime")
    duration_minutes: int = Field(alias="durationMinutes", gt=0, le=24 * 60)
    room: str = Field(default="", max_length=100)
    created_at: dt.datetime | None = Field(default=None, alias="createdAt")
    updated_at: dt.datetime | None = Field(default=None, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, value: str) -> str:
        return _validate_time(value)


class SlotCreate(BaseModel):
    subject_id: str = Field(alias="subjectId", min_length=1, max_length=50)
    day_of_week: int = Field(alias="dayOfWeek")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    room: str | None = Field(default=None, max_length=100)

    model_config = ConfigDict(populate_by_name=True)


class SlotUpdate(BaseModel):
    subject_id: str | None = Field(default=None, alias="subjectId", min_length=1, max_length=50)
    day_of_week: int | None = Field(default=None, alias="dayOfWeek")
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")
    room: str | None = Field(default=None, max_length=100)

    model_config = ConfigDict(populate_by_name=True)


class SlotOverrideBase(BaseModel):
    date: dt.date
    type: OverrideType
    original_slot_id: str | None = Field(default=None, alias="originalSlotId")
    subject_id: str | None = Field(default=None, alias="subjectId")
    start_time: str | None = Field(default=None, alias="startTime")
    duration_minutes: int | None = Field(default=None, alias="durationMinutes", gt=0, le=24 * 60)
    room: str | None = Field(default=None, max_length=100)

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, value: str | None) -> str | None:
        return _validate_time(value)

    @model_validator(mode="after")
    def validate_type_fields(self):
        if self.type in (OverrideType.cancelled, OverrideType.modified) and not self.original_slot_id:
            raise ValueError(f"A {self.type.value} override needs originalSlotId")
        if self.type == OverrideType.added:
            missing = [
                alias
                for alias, value in (
                    ("subjectId", self.subject_id),
                    ("startTime", self.start_time),
                    ("durationMinutes", self.duration_minutes),
                )
                if value is None
            ]
            if missing:
                raise ValueError(f"An added override needs {', '.join(missing)}")
        return self


class SlotOverrideCreate(SlotOverrideBase):
    model_config = ConfigDict(populate_by_name=True)


class SlotOverride(SlotOverrideBase):
    """A single-date exception to the weekly timetable."""

    id: str = Field(min_length=1, max_length=100)

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class EffectiveSlot(BaseModel):
    """A session that actually happens on one date once overrides are applied."""

    id: str
    subject_id: str = Field(alias="subjectId")
    day_of_week: int = Field(alias="dayOfWeek")
    start_time: str = Field(alias="startTime")
    duration_minutes: int = Field(alias="durationMinutes")
    room: str = ""
    is_overridden: bool = Field(default=False, alias="isOverridden")
    override_type: OverrideType | None = Field(default=None, alias="overrideType")
    override_id: str | None = Field(default=None, alias="overrideId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def from_slot(cls, slot: TimetableSlot) -> "EffectiveSlot":
        return cls(
            id=slot.id,
            subject_id=slot.subject_id,
            day_of_week=slot.day_of_week,
            start_time=slot.start_time,
            duration_minutes=slot.duration_minutes,
            room=slot.room,
        )

    @property
    def end_minutes(self) -> int:
        return parse_time_to_minutes(self.start_time) + self.duration_minutes


class CancelSlotRequest(BaseModel):
    date: dt.date


class RescheduleSlotRequest(BaseModel):
    from_date: dt.date = Field(alias="fromDate")
    to_date: dt.date = Field(alias="toDate")
    start_time: str = Field(alias="startTime")
    room: str | None = Field(default=None, max_length=100)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, value: str) -> str:
        return _validate_time(value)


class DayScheduleEntry(EffectiveSlot):
    subject_name: str | None = Field(default=None, alias="subjectName")
    end_time: str = Field(alias="endTime")
    attendance_status: str | None = Field(default=None, alias="attendanceStatus")


class DayScheduleOut(BaseModel):
    date: dt.date
    day_label: str = Field(alias="dayLabel")
    is_holiday: bool = Field(alias="isHoliday")
    holiday_name: str | None = Field(default=None, alias="holidayName")
    is_before_semester: bool = Field(alias="isBeforeSemester")
    span_hours: float = Field(alias="spanHours")
    sessions: list[DayScheduleEntry] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
