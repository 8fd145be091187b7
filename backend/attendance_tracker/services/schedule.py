from __future__ import annotations

from collections.abc import Sequence

from attendance_tracker.schemas.attendance import AttendanceLog
from attendance_tracker.schemas.holiday import Holiday
from attendance_tracker.schemas.subject import Subject
from attendance_tracker.schemas.timetable import (
    DayScheduleEntry,
    DayScheduleOut,
    EffectiveSlot,
    SlotOverride,
    TimetableSlot,
    get_day_label,
)
from attendance_tracker.services.calendar_utils import DateLike, parse_date
from attendance_tracker.services.projector import has_reached_lecture_limit
from attendance_tracker.services.resolver import get_effective_slots, get_holiday


def get_day_schedule(
    target_date: DateLike,
    base_slots: Sequence[TimetableSlot],
    overrides: Sequence[SlotOverride],
    holidays: Sequence[Holiday] = (),
    subjects: Sequence[Subject] = (),
    semester_start: DateLike | None = None,
) -> list[EffectiveSlot]:
    """Sessions a student should expect on a date.

    Holidays and days before the semester have nothing scheduled. A subject
    that already held its full lecture allowance before this date is left out.
    """
    day = parse_date(target_date)
    if day is None or get_holiday(day, holidays) is not None:
        return []
    start = parse_date(semester_start)
    if start is not None and day < start:
        return []

    sessions = get_effective_slots(day, base_slots, overrides)
    if start is None:
        return sessions

    subjects_by_id = {subject.id: subject for subject in subjects}
    capped: dict[str, bool] = {}
    result: list[EffectiveSlot] = []
    for session in sessions:
        subject = subjects_by_id.get(session.subject_id)
        if subject is None or subject.lecture_limit is None:
            result.append(session)
            continue
        if session.subject_id not in capped:
            capped[session.subject_id] = has_reached_lecture_limit(
                subject, base_slots, overrides, start, day, holidays
            )
        if not capped[session.subject_id]:
            result.append(session)
    return result


def _format_minutes(total: int) -> str:
    total %= 24 * 60
    return f"{total // 60:02d}:{total % 60:02d}"


def day_span_hours(sessions: Sequence[EffectiveSlot]) -> float:
    """Hours from the first start to the last end, rounded to one decimal."""
    if not sessions:
        return 0
    first_start = min(session.end_minutes - session.duration_minutes for session in sessions)
    last_end = max(session.end_minutes for session in sessions)
    if last_end <= first_start:
        return 0
    return round((last_end - first_start) / 60, 1)


def build_day_schedule(
    target_date: DateLike,
    base_slots: Sequence[TimetableSlot],
    overrides: Sequence[SlotOverride],
    holidays: Sequence[Holiday],
    subjects: Sequence[Subject],
    logs: Sequence[AttendanceLog],
    semester_start: DateLike | None,
) -> DayScheduleOut:
    day = parse_date(target_date)
    if day is None:
        raise ValueError(f"Invalid date: {target_date!r}")
    start = parse_date(semester_start)
    holiday = get_holiday(day, holidays)
    sessions = get_day_schedule(day, base_slots, overrides, holidays, subjects, start)

    names = {subject.id: subject.name for subject in subjects}
    statuses = {log.slot_id: log.status.value for log in logs if log.date == day}
    entries = [
        DayScheduleEntry(
            **session.model_dump(),
            subject_name=names.get(session.subject_id),
            end_time=_format_minutes(session.end_minutes),
            attendance_status=statuses.get(session.id),
        )
        for session in sessions
    ]
    return DayScheduleOut(
        date=day,
        day_label=get_day_label(day.weekday()),
        is_holiday=holiday is not None,
        holiday_name=holiday.name if holiday else None,
        is_before_semester=start is not None and day < start,
        span_hours=day_span_hours(sessions),
        sessions=entries,
    )
