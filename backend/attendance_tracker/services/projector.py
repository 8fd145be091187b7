"""Session counts for one subject over a range of dates."""
from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import date, timedelta

from attendance_tracker.schemas.holiday import Holiday
from attendance_tracker.schemas.subject import Subject
from attendance_tracker.schemas.timetable import OverrideType, SlotOverride, TimetableSlot
from attendance_tracker.services.calendar_utils import DateLike, iter_dates, parse_date
from attendance_tracker.services.resolver import get_sessions_on


def _resolve_range(
    start_date: DateLike | None,
    end_date: DateLike | None,
    until_date: DateLike | None,
) -> tuple[date, date] | None:
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        return None
    until = parse_date(until_date)
    if until is not None and until < end:
        end = until
    if start > end:
        return None
    return start, end


def project_semester_count(
    subject_id: str,
    base_slots: Sequence[TimetableSlot],
    overrides: Sequence[SlotOverride],
    start_date: DateLike | None,
    end_date: DateLike | None,
    until_date: DateLike | None = None,
    lecture_limit: int | None = None,
) -> int:
    """Count the sessions of ``subject_id`` held in ``[start, min(end, until)]``.

    Only cancellations and additions change the count, so this skips the full
    resolver. Bad or inverted bounds count as an empty range.
    """
    bounds = _resolve_range(start_date, end_date, until_date)
    if bounds is None:
        return 0
    start, end = bounds

    subject_slots = [slot for slot in base_slots if slot.subject_id == subject_id]
    overrides_by_date: dict[date, list[SlotOverride]] = defaultdict(list)
    for override in overrides:
        if start <= override.date <= end:
            overrides_by_date[override.date].append(override)

    count = 0
    for day in iter_dates(start, end):
        day_of_week = day.weekday()
        day_overrides = overrides_by_date.get(day, [])
        cancelled = {
            override.original_slot_id
            for override in day_overrides
            if override.type == OverrideType.cancelled and override.original_slot_id
        }
        count += sum(1 for slot in subject_slots if slot.day_of_week == day_of_week and slot.id not in cancelled)
        count += sum(
            1
            for override in day_overrides
            if override.type == OverrideType.added
            and override.subject_id == subject_id
            and override.id not in cancelled
        )

    if lecture_limit is not None:
        return min(count, lecture_limit)
    return count


def count_actual_lectures(
    subject_id: str,
    base_slots: Sequence[TimetableSlot],
    overrides: Sequence[SlotOverride],
    start_date: DateLike | None,
    end_date: DateLike | None,
    holidays: Sequence[Holiday] = (),
    until_date: DateLike | None = None,
) -> int:
    bounds = _resolve_range(start_date, end_date, until_date)
    if bounds is None:
        return 0
    start, end = bounds
    return sum(
        1
        for day in iter_dates(start, end)
        for session in get_sessions_on(day, base_slots, overrides, holidays)
        if session.subject_id == subject_id
    )


def has_reached_lecture_limit(
    subject: Subject,
    base_slots: Sequence[TimetableSlot],
    overrides: Sequence[SlotOverride],
    semester_start: DateLike | None,
    on_date: DateLike,
    holidays: Sequence[Holiday] = (),
) -> bool:
    """True when the subject held its full allowance on days before ``on_date``."""
    if subject.lecture_limit is None:
        return False
    day = parse_date(on_date)
    if day is None:
        return False
    held = count_actual_lectures(
        subject.id, base_slots, overrides, semester_start, day - timedelta(days=1), holidays
    )
    return held >= subject.lecture_limit
