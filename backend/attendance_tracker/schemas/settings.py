from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class UnmarkedPolicy(str, Enum):
    """How a past session with no attendance log counts towards projections."""

    absent = "absent"
    present = "present"
    ignore = "ignore"


class TrackerSettings(BaseModel):
    semester_start_date: date = Field(default_factory=date.today, alias="semesterStartDate")
    semester_weeks: int | None = Field(default=None, alias="semesterWeeks", ge=1, le=104)
    semester_end_date: date | None = Field(default=None, alias="semesterEndDate")
    min_attendance_threshold: float = Field(default=0.8, alias="minAttendanceThreshold", ge=0, le=1)
    unmarked_past_policy: UnmarkedPolicy = Field(default=UnmarkedPolicy.absent, alias="unmarkedPastPolicy")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="after")
    def validate_range(self) -> "TrackerSettings":
        if self.semester_end_date is not None and self.semester_end_date < self.semester_start_date:
            raise ValueError("Semester end date must not be before the start date")
        return self


class TrackerSettingsUpdate(BaseModel):
    semester_start_date: date | None = Field(default=None, alias="semesterStartDate")
    semester_weeks: int | None = Field(default=None, alias="semesterWeeks", ge=1, le=104)
    semester_end_date: date | None = Field(default=None, alias="semesterEndDate")
    min_attendance_threshold: float | None = Field(default=None, alias="minAttendanceThreshold", ge=0, le=1)
    unmarked_past_policy: UnmarkedPolicy | None = Field(default=None, alias="unmarkedPastPolicy")

    model_config = ConfigDict(populate_by_name=True)
