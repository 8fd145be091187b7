"""Opt-out attendance: past sessions nobody marked default to present.

A session qualifies once ``grace_hours`` have passed since it ended and it
still has no log. The walk covers the trailing ``lookback_days`` clamped to
the semester.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, time, timedelta

from attendance_tracker.schemas.attendance import AttendanceLog, AttendanceStatus, LogKey, MarkSource
from attendance_tracker.schemas.holiday import Holiday
from attendance_tracker.schemas.settings import TrackerSettings
from attendance_tracker.schemas.timetable import SlotOverride, TimetableSlot, parse_time_to_minutes
from attendance_tracker.services.aggregator import resolve_semester_end
from attendance_tracker.services.calendar_utils import iter_dates
from attendance_tracker.services.resolver import get_sessions_on

logger = logging.getLogger(__name__)

AUTO_MARK_AFTER_HOURS = 6
LOOKBACK_DAYS = 7


def auto_mark_present_lectures(
    slots: Sequence[TimetableSlot],
    overrides: Sequence[SlotOverride],
    logs: Sequence[AttendanceLog],
    settings: TrackerSettings,
    now: datetime | None = None,
    holidays: Sequence[Holiday] = (),
    grace_hours: int = AUTO_MARK_AFTER_HOURS,
    lookback_days: int = LOOKBACK_DAYS,
) -> list[AttendanceLog]:
    """Return the ``present`` logs to add. ``logs`` is left untouched.

    ``now`` is local wall-clock time; an aware value is converted to the local
    zone and compared naively. Logs are stamped with the aware local time.
    """
    now = now or datetime.now()
    if now.tzinfo is not None:
        now = now.astimezone().replace(tzinfo=None)
    marked_at = now.astimezone()
    cutoff = now - timedelta(hours=grace_hours)

    start = max((now - timedelta(days=lookback_days)).date(), settings.semester_start_date)
    end = min(now.date(), resolve_semester_end(settings))

    logged = {(log.key, log.subject_id) for log in logs}
    created: list[AttendanceLog] = []
    for day in iter_dates(start, end):
        midnight = datetime.combine(day, time())
        for session in get_sessions_on(day, slots, overrides, holidays):
            lecture_end = midnight + timedelta(
                minutes=parse_time_to_minutes(session.start_time) + session.duration_minutes
            )
            if lecture_end >= cutoff:
                continue
            key = LogKey(session.id, day)
            if (key, session.subject_id) in logged:
                continue
            logged.add((key, session.subject_id))
            created.append(
                AttendanceLog.for_key(
                    key,
                    subject_id=session.subject_id,
                    status=AttendanceStatus.present,
                    marked_at=marked_at,
                    source=MarkSource.auto,
                )
            )

    if created:
        logger.info("Auto-marked %d session(s) present between %s and %s", len(created), start, end)
    return created
