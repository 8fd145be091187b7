"""Stateful shell around the pure scheduling core.

Every collection lives under a fixed key in the ``store_entries`` table as the
camelCase JSON of its entities. Each mutation is a whole-collection
read-modify-write, serialized by one process-wide lock shared with the
background sweep.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from threading import Lock
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from attendance_tracker.core.config import Settings, get_settings
from attendance_tracker.core.exceptions import (
    DuplicateResourceError,
    PersistenceError,
    ResourceNotFoundError,
    ValidationError,
)
from attendance_tracker.models.store_entry import StoreEntry, StoreKey
from attendance_tracker.schemas.attendance import (
    AttendanceLog,
    LogKey,
    MarkAttendanceRequest,
    MarkSource,
)
from attendance_tracker.schemas.backup import ExportBundle, ImportResult
from attendance_tracker.schemas.holiday import Holiday
from attendance_tracker.schemas.settings import TrackerSettings, TrackerSettingsUpdate
from attendance_tracker.schemas.subject import Subject, SubjectCreate, SubjectUpdate
from attendance_tracker.schemas.timetable import (
    TIME_PATTERN,
    OverrideType,
    RescheduleSlotRequest,
    SlotCreate,
    SlotOverride,
    SlotOverrideCreate,
    SlotUpdate,
    TimetableSlot,
    parse_time_to_minutes,
)
from attendance_tracker.services.sweeper import auto_mark_present_lectures

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_write_lock = Lock()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dump(items: Sequence[BaseModel]) -> list[dict]:
    return [item.model_dump(mode="json", by_alias=True) for item in items]


@dataclass(frozen=True)
class TrackerSnapshot:
    subjects: list[Subject]
    slots: list[TimetableSlot]
    overrides: list[SlotOverride]
    holidays: list[Holiday]
    logs: list[AttendanceLog]
    settings: TrackerSettings


class TrackerStore:
    def __init__(self, db: Session, config: Settings | None = None) -> None:
        self.db = db
        self.config = config or get_settings()

    # Raw key-value access

    def _read(self, key: StoreKey) -> Any:
        try:
            entry = self.db.get(StoreEntry, key.value)
        except SQLAlchemyError as exc:
            logger.exception("Failed to read %s from the store", key.value)
            raise PersistenceError("Could not load your data. Please try again.") from exc
        return None if entry is None else entry.value

    def _write(self, values: dict[StoreKey, Any]) -> None:
        try:
            for key, value in values.items():
                entry = self.db.get(StoreEntry, key.value)
                if entry is None:
                    self.db.add(StoreEntry(key=key.value, value=value))
                else:
                    entry.value = value
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to persist %s", ", ".join(key.value for key in values))
            raise PersistenceError() from exc

    def _load_list(self, key: StoreKey, model: type[ModelT]) -> list[ModelT]:
        raw = self._read(key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Stored %s is not a list; treating it as empty", key.value)
            return []
        items: list[ModelT] = []
        for item in raw:
            try:
                items.append(model.model_validate(item))
            except SchemaValidationError:
                logger.warning("Skipping malformed %s entry: %r", key.value, item)
        return items

    # Snapshots

    def subjects(self) -> list[Subject]:
        return self._load_list(StoreKey.subjects, Subject)

    def slots(self) -> list[TimetableSlot]:
        return self._load_list(StoreKey.slots, TimetableSlot)

    def overrides(self) -> list[SlotOverride]:
        return self._load_list(StoreKey.slot_overrides, SlotOverride)

    def holidays(self) -> list[Holiday]:
        return sorted(self._load_list(StoreKey.holidays, Holiday), key=lambda holiday: holiday.date)

    def logs(self) -> list[AttendanceLog]:
        return self._load_list(StoreKey.attendance, AttendanceLog)

    def default_settings(self) -> TrackerSettings:
        return TrackerSettings(
            semester_weeks=self.config.default_semester_weeks,
            min_attendance_threshold=self.config.default_min_attendance,
        )

    def get_settings(self) -> TrackerSettings:
        raw = self._read(StoreKey.settings)
        if raw is None:
            return self.default_settings()
        try:
            return TrackerSettings.model_validate(raw)
        except SchemaValidationError:
            logger.warning("Stored settings are malformed; using defaults")
            return self.default_settings()

    def snapshot(self) -> TrackerSnapshot:
        return TrackerSnapshot(
            subjects=self.subjects(),
            slots=self.slots(),
            overrides=self.overrides(),
            holidays=self.holidays(),
            logs=self.logs(),
            settings=self.get_settings(),
        )

    def ensure_initialized(self) -> bool:
        """Write empty collections on first launch. Returns True if it did."""
        with _write_lock:
            if self._read(StoreKey.first_launch) is False:
                return False
            values: dict[StoreKey, Any] = {StoreKey.first_launch: False}
            for key in (StoreKey.subjects, StoreKey.slots, StoreKey.attendance, StoreKey.slot_overrides, StoreKey.holidays):
                if self._read(key) is None:
                    values[key] = []
            if self._read(StoreKey.settings) is None:
                values[StoreKey.settings] = self.default_settings().model_dump(mode="json", by_alias=True)
            self._write(values)
        logger.info("Initialized an empty attendance store")
        return True

    # Subjects

    def get_subject(self, subject_id: str) -> Subject:
        for subject in self.subjects():
            if subject.id == subject_id:
                return subject
        raise ResourceNotFoundError("Subject", subject_id)

    def add_subject(self, payload: SubjectCreate) -> Subject:
        with _write_lock:
            subjects = self.subjects()
            if any(subject.id == payload.id for subject in subjects):
                raise DuplicateResourceError("Subject", payload.id)
            subject = Subject(**payload.model_dump(), created_at=_utcnow())
            self._write({StoreKey.subjects: _dump([*subjects, subject])})
        return subject

    def update_subject(self, subject_id: str, payload: SubjectUpdate) -> Subject:
        data = payload.model_dump(exclude_unset=True)
        if data.get("name", "") is None:
            data.pop("name")
        with _write_lock:
            subjects = self.subjects()
            for index, subject in enumerate(subjects):
                if subject.id == subject_id:
                    updated = subject.model_copy(update=data)
                    subjects[index] = updated
                    self._write({StoreKey.subjects: _dump(subjects)})
                    return updated
        raise ResourceNotFoundError("Subject", subject_id)

    def delete_subject(self, subject_id: str) -> None:
        """Remove a subject and its weekly slots. Logged history is kept."""
        with _write_lock:
            subjects = self.subjects()
            remaining = [subject for subject in subjects if subject.id != subject_id]
            if len(remaining) == len(subjects):
                raise ResourceNotFoundError("Subject", subject_id)
            slots = [slot for slot in self.slots() if slot.subject_id != subject_id]
            self._write({StoreKey.subjects: _dump(remaining), StoreKey.slots: _dump(slots)})

    # Weekly slots

    @staticmethod
    def _validate_slot_fields(subjects: Sequence[Subject], subject_id: str, day_of_week: int, start_time: str, end_time: str) -> int:
        if not any(subject.id == subject_id for subject in subjects):
            raise ValidationError("Select a valid subject.")
        if not 0 <= day_of_week <= 6:
            raise ValidationError("Choose a valid day of week.")
        if not TIME_PATTERN.match(start_time) or not TIME_PATTERN.match(end_time):
            raise ValidationError("Use HH:MM 24h format for time.")
        duration = parse_time_to_minutes(end_time) - parse_time_to_minutes(start_time)
        if duration <= 0:
            raise ValidationError("End time must be after start time.")
        return duration

    def add_slot(self, payload: SlotCreate) -> TimetableSlot:
        with _write_lock:
            subjects = self.subjects()
            duration = self._validate_slot_fields(
                subjects, payload.subject_id, payload.day_of_week, payload.start_time, payload.end_time
            )
            slot_id = f"{payload.subject_id}-{payload.day_of_week}-{payload.start_time.replace(':', '')}"
            slots = self.slots()
            if any(slot.id == slot_id for slot in slots):
                raise DuplicateResourceError("Slot", slot_id)
            subject = next(subject for subject in subjects if subject.id == payload.subject_id)
            room = payload.room.strip() if payload.room is not None else (subject.default_room or "")
            now = _utcnow()
            slot = TimetableSlot(
                id=slot_id,
                subject_id=payload.subject_id,
                day_of_week=payload.day_of_week,
                start_time=payload.start_time,
                duration_minutes=duration,
                room=room,
                created_at=now,
                updated_at=now,
            )
            self._write({StoreKey.slots: _dump([*slots, slot])})
        return slot

    def update_slot(self, slot_id: str, payload: SlotUpdate) -> TimetableSlot:
        with _write_lock:
            slots = self.slots()
            index = next((i for i, slot in enumerate(slots) if slot.id == slot_id), None)
            if index is None:
                raise ResourceNotFoundError("Slot", slot_id)
            current = slots[index]

            subject_id = payload.subject_id or current.subject_id
            day_of_week = current.day_of_week if payload.day_of_week is None else payload.day_of_week
            start_time = payload.start_time or current.start_time
            end_time = payload.end_time
            if end_time is None:
                if not TIME_PATTERN.match(start_time):
                    raise ValidationError("Use HH:MM 24h format for time.")
                end_minutes = parse_time_to_minutes(start_time) + current.duration_minutes
                if end_minutes >= 24 * 60:
                    raise ValidationError("End time must be after start time.")
                end_time = f"{end_minutes // 60:02d}:{end_minutes % 60:02d}"
            duration = self._validate_slot_fields(self.subjects(), subject_id, day_of_week, start_time, end_time)

            updated = current.model_copy(
                update={
                    "subject_id": subject_id,
                    "day_of_week": day_of_week,
                    "start_time": start_time,
                    "duration_minutes": duration,
                    "room": current.room if payload.room is None else payload.room.strip(),
                    "updated_at": _utcnow(),
                }
            )
            slots[index] = updated
            self._write({StoreKey.slots: _dump(slots)})
        return updated

    def delete_slot(self, slot_id: str) -> None:
        with _write_lock:
            slots = self.slots()
            remaining = [slot for slot in slots if slot.id != slot_id]
            if len(remaining) == len(slots):
                raise ResourceNotFoundError("Slot", slot_id)
            self._write({StoreKey.slots: _dump(remaining)})

    # Overrides

    def _new_override(self, payload: SlotOverrideCreate) -> SlotOverride:
        return SlotOverride(id=uuid.uuid4().hex, **payload.model_dump())

    def add_override(self, payload: SlotOverrideCreate) -> SlotOverride:
        with _write_lock:
            if payload.type == OverrideType.added and not any(
                subject.id == payload.subject_id for subject in self.subjects()
            ):
                raise ValidationError("Select a valid subject.")
            override = self._new_override(payload)
            self._write({StoreKey.slot_overrides: _dump([*self.overrides(), override])})
        return override

    def delete_override(self, override_id: str) -> None:
        with _write_lock:
            overrides = self.overrides()
            remaining = [override for override in overrides if override.id != override_id]
            if len(remaining) == len(overrides):
                raise ResourceNotFoundError("Override", override_id)
            self._write({StoreKey.slot_overrides: _dump(remaining)})

    def _find_session_source(self, slot_id: str, overrides: Sequence[SlotOverride]) -> tuple[str, int, str]:
        """Subject, duration and room of a weekly slot or a one-off added session."""
        for slot in self.slots():
            if slot.id == slot_id:
                return slot.subject_id, slot.duration_minutes, slot.room
        for override in overrides:
            if override.id == slot_id and override.type == OverrideType.added:
                return override.subject_id, override.duration_minutes, override.room or ""
        raise ResourceNotFoundError("Slot", slot_id)

    def cancel_slot(self, slot_id: str, on_date: date) -> SlotOverride:
        with _write_lock:
            overrides = self.overrides()
            self._find_session_source(slot_id, overrides)
            override = self._new_override(
                SlotOverrideCreate(date=on_date, type=OverrideType.cancelled, original_slot_id=slot_id)
            )
            self._write({StoreKey.slot_overrides: _dump([*overrides, override])})
        return override

    def reschedule_slot(self, slot_id: str, payload: RescheduleSlotRequest) -> list[SlotOverride]:
        """Move one occurrence: cancel it on ``from_date`` and add it on ``to_date``."""
        with _write_lock:
            overrides = self.overrides()
            subject_id, duration, room = self._find_session_source(slot_id, overrides)
            cancelled = self._new_override(
                SlotOverrideCreate(date=payload.from_date, type=OverrideType.cancelled, original_slot_id=slot_id)
            )
            added = self._new_override(
                SlotOverrideCreate(
                    date=payload.to_date,
                    type=OverrideType.added,
                    original_slot_id=slot_id,
                    subject_id=subject_id,
                    start_time=payload.start_time,
                    duration_minutes=duration,
                    room=room if payload.room is None else payload.room,
                )
            )
            self._write({StoreKey.slot_overrides: _dump([*overrides, cancelled, added])})
        return [cancelled, added]

    # Holidays

    def add_holiday(self, holiday: Holiday) -> Holiday:
        with _write_lock:
            holidays = [item for item in self.holidays() if item.date != holiday.date]
            holidays.append(holiday)
            self._write({StoreKey.holidays: _dump(sorted(holidays, key=lambda item: item.date))})
        return holiday

    def remove_holiday(self, on_date: date) -> None:
        with _write_lock:
            holidays = self.holidays()
            remaining = [item for item in holidays if item.date != on_date]
            if len(remaining) == len(holidays):
                raise ResourceNotFoundError("Holiday", on_date.isoformat())
            self._write({StoreKey.holidays: _dump(remaining)})

    # Attendance

    def list_logs(self, subject_id: str | None = None, on_date: date | None = None) -> list[AttendanceLog]:
        logs = self.logs()
        if subject_id is not None:
            logs = [log for log in logs if log.subject_id == subject_id]
        if on_date is not None:
            logs = [log for log in logs if log.date == on_date]
        return sorted(logs, key=lambda log: (log.date, log.slot_id))

    def mark_attendance(self, payload: MarkAttendanceRequest, source: MarkSource = MarkSource.manual) -> AttendanceLog:
        """Record a status for one session, replacing any earlier mark for it."""
        key = LogKey(payload.slot_id, payload.date or date.today())
        log = AttendanceLog.for_key(
            key,
            subject_id=payload.subject_id,
            status=payload.status,
            marked_at=_utcnow(),
            source=source,
        )
        with _write_lock:
            if not any(subject.id == payload.subject_id for subject in self.subjects()):
                raise ValidationError("Select a valid subject.")
            logs = [existing for existing in self.logs() if existing.key != key]
            self._write({StoreKey.attendance: _dump([*logs, log])})
        return log

    def unmark_attendance(self, slot_id: str, on_date: date) -> None:
        key = LogKey(slot_id, on_date)
        with _write_lock:
            logs = self.logs()
            remaining = [log for log in logs if log.key != key]
            if len(remaining) == len(logs):
                raise ResourceNotFoundError("Attendance log", key.as_id())
            self._write({StoreKey.attendance: _dump(remaining)})

    def run_auto_attendance(self, now: datetime | None = None) -> list[AttendanceLog]:
        """Sweep recent sessions and default unmarked ones to present.

        Runs under the write lock against freshly read logs and only inserts,
        so a mark made by the user is never replaced.
        """
        if not self.config.auto_mark_enabled:
            return []
        with _write_lock:
            snapshot = self.snapshot()
            existing = {log.key for log in snapshot.logs}
            created = [
                log
                for log in auto_mark_present_lectures(
                    snapshot.slots,
                    snapshot.overrides,
                    snapshot.logs,
                    snapshot.settings,
                    now=now,
                    holidays=snapshot.holidays,
                    grace_hours=self.config.auto_mark_after_hours,
                    lookback_days=self.config.auto_mark_lookback_days,
                )
                if log.key not in existing
            ]
            if created:
                self._write({StoreKey.attendance: _dump([*snapshot.logs, *created])})
        return created

    # Settings

    def update_settings(self, payload: TrackerSettingsUpdate) -> TrackerSettings:
        with _write_lock:
            merged = self.get_settings().model_dump()
            merged.update(payload.model_dump(exclude_unset=True))
            try:
                settings = TrackerSettings.model_validate(merged)
            except SchemaValidationError as exc:
                raise ValidationError("Invalid settings", details={"errors": [error["msg"] for error in exc.errors()]}) from exc
            self._write({StoreKey.settings: settings.model_dump(mode="json", by_alias=True)})
        return settings

    # Backup

    def export_bundle(self) -> ExportBundle:
        snapshot = self.snapshot()
        return ExportBundle(
            subjects=snapshot.subjects,
            slots=snapshot.slots,
            attendance_logs=snapshot.logs,
            slot_overrides=snapshot.overrides,
            holidays=snapshot.holidays,
            settings=snapshot.settings,
            exported_at=_utcnow(),
        )

    def import_bundle(self, bundle: ExportBundle) -> ImportResult:
        """Replace the stored state with ``bundle``.

        Logs sharing a key collapse to the last one. Holidays are kept when the
        bundle carries none.
        """
        logs_by_key: dict[LogKey, AttendanceLog] = {}
        for log in bundle.attendance_logs:
            logs_by_key.pop(log.key, None)
            logs_by_key[log.key] = log

        with _write_lock:
            holidays = bundle.holidays if bundle.holidays is not None else self.holidays()
            self._write(
                {
                    StoreKey.subjects: _dump(bundle.subjects),
                    StoreKey.slots: _dump(bundle.slots),
                    StoreKey.attendance: _dump(list(logs_by_key.values())),
                    StoreKey.slot_overrides: _dump(bundle.slot_overrides),
                    StoreKey.holidays: _dump(holidays),
                    StoreKey.settings: bundle.settings.model_dump(mode="json", by_alias=True),
                    StoreKey.first_launch: False,
                }
            )
        logger.info(
            "Imported %d subject(s), %d slot(s), %d log(s)", len(bundle.subjects), len(bundle.slots), len(logs_by_key)
        )
        return ImportResult(
            subjects=len(bundle.subjects),
            slots=len(bundle.slots),
            attendance_logs=len(logs_by_key),
            slot_overrides=len(bundle.slot_overrides),
            holidays=len(holidays),
        )
