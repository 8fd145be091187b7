"""Attendance statistics built from logs and the resolved timetable."""
from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import date, timedelta

from attendance_tracker.schemas.attendance import (
    AttendanceLog,
    AttendanceStatus,
    AttendanceSummary,
    HistoryEntry,
    LogKey,
    SafeToMiss,
    SubjectStats,
)
from attendance_tracker.schemas.holiday import Holiday
from attendance_tracker.schemas.settings import TrackerSettings, UnmarkedPolicy
from attendance_tracker.schemas.subject import Subject
from attendance_tracker.schemas.timetable import OverrideType, SlotOverride, TimetableSlot
from attendance_tracker.services.calendar_utils import calculate_semester_end_date, iter_dates
from attendance_tracker.services.projector import project_semester_count
from attendance_tracker.services.resolver import get_sessions_on

DEFAULT_SEMESTER_DAYS = 150


def resolve_semester_end(settings: TrackerSettings, default_days: int = DEFAULT_SEMESTER_DAYS) -> date:
    if settings.semester_end_date is not None:
        return settings.semester_end_date
    if settings.semester_weeks:
        return date.fromisoformat(calculate_semester_end_date(settings.semester_start_date, settings.semester_weeks))
    return settings.semester_start_date + timedelta(days=default_days)


def compute_attendance(
    logs: Sequence[AttendanceLog],
    subject_id: str,
    min_attendance: float = 0.8,
) -> AttendanceSummary:
    filtered = [log for log in logs if log.subject_id == subject_id]
    present = sum(1 for log in filtered if log.status == AttendanceStatus.present)
    total = len(filtered)
    # Nothing logged yet reads as full attendance.
    percentage = 100.0 if total == 0 else present / total * 100
    return AttendanceSummary(
        present=present,
        total=total,
        percentage=percentage,
        is_below_threshold=percentage < min_attendance * 100,
    )


def calculate_subject_stats(
    subject: Subject,
    slots: Sequence[TimetableSlot],
    logs: Sequence[AttendanceLog],
    overrides: Sequence[SlotOverride],
    settings: TrackerSettings,
    today: date | None = None,
    holidays: Sequence[Holiday] = (),
) -> SubjectStats:
    """Walk the whole semester and classify every session of ``subject``.

    Sessions up to and including ``today`` are history: attended when logged
    present, missed when logged absent, and counted according to
    ``settings.unmarked_past_policy`` when nothing was logged. Every session,
    past or future, adds to the projected semester hours.
    """
    today = today or date.today()
    start = settings.semester_start_date
    end = resolve_semester_end(settings)

    statuses = {log.key: log.status for log in logs if log.subject_id == subject.id}
    policy = settings.unmarked_past_policy

    total_classes = 0
    attended_classes = 0
    total_hours = 0.0
    attended_hours = 0.0
    projected_total_hours = 0.0
    projected_absent_hours = 0.0

    for day in iter_dates(start, end):
        for session in get_sessions_on(day, slots, overrides, holidays):
            if session.subject_id != subject.id:
                continue
            hours = session.duration_minutes / 60
            projected_total_hours += hours
            if day > today:
                continue

            status = statuses.get(LogKey(session.id, day))
            if status is None and policy == UnmarkedPolicy.ignore:
                continue
            total_classes += 1
            total_hours += hours
            if status == AttendanceStatus.present or (status is None and policy == UnmarkedPolicy.present):
                attended_classes += 1
                attended_hours += hours
            else:
                projected_absent_hours += hours

    return SubjectStats(
        subject_id=subject.id,
        total_classes=total_classes,
        attended_classes=attended_classes,
        total_hours=total_hours,
        attended_hours=attended_hours,
        percentage=attended_hours / total_hours * 100 if total_hours > 0 else 100.0,
        projected_total_hours=projected_total_hours,
        projected_absent_hours=projected_absent_hours,
    )


def calculate_all_stats(
    subjects: Sequence[Subject],
    slots: Sequence[TimetableSlot],
    logs: Sequence[AttendanceLog],
    overrides: Sequence[SlotOverride],
    settings: TrackerSettings,
    today: date | None = None,
    holidays: Sequence[Holiday] = (),
) -> dict[str, SubjectStats]:
    return {
        subject.id: calculate_subject_stats(subject, slots, logs, overrides, settings, today, holidays)
        for subject in subjects
    }


def compute_safe_to_miss(
    subject_id: str,
    logs: Sequence[AttendanceLog],
    slots: Sequence[TimetableSlot],
    overrides: Sequence[SlotOverride],
    settings: TrackerSettings,
    lecture_limit: int | None = None,
) -> SafeToMiss:
    """How many more sessions can be skipped while staying at the threshold.

    A negative ``safe_to_miss`` means the budget is already overdrawn.
    """
    total_projected = project_semester_count(
        subject_id,
        slots,
        overrides,
        settings.semester_start_date,
        resolve_semester_end(settings),
        lecture_limit=lecture_limit,
    )
    summary = compute_attendance(logs, subject_id, settings.min_attendance_threshold)
    # Round away float noise such as 15 * 0.8 landing a hair above 12.
    min_required = math.ceil(round(total_projected * settings.min_attendance_threshold, 9))
    max_missable = total_projected - min_required
    already_missed = summary.total - summary.present
    return SafeToMiss(
        total_projected=total_projected,
        min_required=min_required,
        max_missable=max_missable,
        already_missed=already_missed,
        safe_to_miss=max_missable - already_missed,
    )


def subject_history(
    subject_id: str,
    logs: Sequence[AttendanceLog],
    slots: Sequence[TimetableSlot],
    overrides: Sequence[SlotOverride],
    today: date | None = None,
) -> list[HistoryEntry]:
    """Logged sessions and past cancellations of a subject, newest first."""
    today = today or date.today()
    slots_by_id = {slot.id: slot for slot in slots}
    overrides_by_id = {override.id: override for override in overrides}

    entries: list[HistoryEntry] = []
    for log in logs:
        if log.subject_id != subject_id:
            continue
        time = "00:00"
        if log.slot_id in slots_by_id:
            time = slots_by_id[log.slot_id].start_time
        elif log.slot_id in overrides_by_id and overrides_by_id[log.slot_id].start_time:
            time = overrides_by_id[log.slot_id].start_time
        entries.append(HistoryEntry(id=log.id, date=log.date, time=time, status=log.status.value))

    for override in overrides:
        if override.type != OverrideType.cancelled or override.date >= today:
            continue
        slot = slots_by_id.get(override.original_slot_id or "")
        if slot is None or slot.subject_id != subject_id:
            continue
        entries.append(HistoryEntry(id=override.id, date=override.date, time=slot.start_time, status="cancelled"))

    return sorted(entries, key=lambda entry: (entry.date, entry.time), reverse=True)
