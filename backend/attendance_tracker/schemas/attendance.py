from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AttendanceStatus(str, Enum):
    present = "present"
    absent = "absent"


class MarkSource(str, Enum):
    manual = "manual"
    auto = "auto"


@dataclass(frozen=True)
class LogKey:
    """Identity of an attendance log: one session on one date."""

    slot_id: str
    date: dt.date

    def as_id(self) -> str:
        return f"{self.slot_id}-{self.date.isoformat()}"


class AttendanceLog(BaseModel):
    id: str = Field(min_length=1)
    date: dt.date
    subject_id: str = Field(alias="subjectId")
    slot_id: str = Field(alias="slotId")
    status: AttendanceStatus
    marked_at: dt.datetime = Field(alias="markedAt")
    source: MarkSource = MarkSource.manual

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("marked_at")
    @classmethod
    def localize_marked_at(cls, value: dt.datetime) -> dt.datetime:
        # Naive stamps are local wall-clock time.
        return value if value.tzinfo is not None else value.astimezone()

    @classmethod
    def for_key(
        cls,
        key: LogKey,
        *,
        subject_id: str,
        status: AttendanceStatus,
        marked_at: dt.datetime,
        source: MarkSource = MarkSource.manual,
    ) -> "AttendanceLog":
        return cls(
            id=key.as_id(),
            date=key.date,
            subject_id=subject_id,
            slot_id=key.slot_id,
            status=status,
            marked_at=marked_at,
            source=source,
        )

    @property
    def key(self) -> LogKey:
        return LogKey(self.slot_id, self.date)


class MarkAttendanceRequest(BaseModel):
    slot_id: str = Field(alias="slotId", min_length=1)
    subject_id: str = Field(alias="subjectId", min_length=1)
    status: AttendanceStatus
    date: dt.date | None = None

    model_config = ConfigDict(populate_by_name=True)


class AutoMarkRequest(BaseModel):
    now: dt.datetime | None = None


class AutoMarkResult(BaseModel):
    created: int
    logs: list[AttendanceLog] = Field(default_factory=list)


class AttendanceSummary(BaseModel):
    present: int
    total: int
    percentage: float
    is_below_threshold: bool = Field(alias="isBelowThreshold")

    model_config = ConfigDict(populate_by_name=True)


class SafeToMiss(BaseModel):
    total_projected: int = Field(alias="totalProjected")
    min_required: int = Field(alias="minRequired")
    max_missable: int = Field(alias="maxMissable")
    already_missed: int = Field(alias="alreadyMissed")
    safe_to_miss: int = Field(alias="safeToMiss")

    model_config = ConfigDict(populate_by_name=True)


class SubjectStats(BaseModel):
    subject_id: str = Field(alias="subjectId")
    total_classes: int = Field(alias="totalClasses")
    attended_classes: int = Field(alias="attendedClasses")
    total_hours: float = Field(alias="totalHours")
    attended_hours: float = Field(alias="attendedHours")
    percentage: float
    projected_total_hours: float = Field(alias="projectedTotalHours")
    projected_absent_hours: float = Field(alias="projectedAbsentHours")

    model_config = ConfigDict(populate_by_name=True)


class HistoryEntry(BaseModel):
    id: str
    date: dt.date
    time: str
    status: str

    model_config = ConfigDict(frozen=True)


class SubjectAttendanceOut(BaseModel):
    subject_id: str = Field(alias="subjectId")
    summary: AttendanceSummary
    safe_to_miss: SafeToMiss = Field(alias="safeToMiss")
    stats: SubjectStats

    model_config = ConfigDict(populate_by_name=True)
