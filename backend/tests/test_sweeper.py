from datetime import date, datetime

from attendance_tracker.schemas.attendance import AttendanceLog, AttendanceStatus, LogKey, MarkSource
from attendance_tracker.schemas.holiday import Holiday
from attendance_tracker.schemas.settings import TrackerSettings
from attendance_tracker.schemas.timetable import OverrideType, SlotOverride, TimetableSlot
from attendance_tracker.services.sweeper import auto_mark_present_lectures

SETTINGS = TrackerSettings(semester_start_date=date(2026, 1, 12), semester_weeks=15)
SLOTS = [
    TimetableSlot(id="fm-mon", subject_id="FM", day_of_week=0, start_time="08:00", duration_minutes=60),
    TimetableSlot(id="ai-mon", subject_id="AI", day_of_week=0, start_time="09:00", duration_minutes=60),
    TimetableSlot(id="atsa-mon", subject_id="ATSA", day_of_week=0, start_time="11:00", duration_minutes=90),
]
NOW = datetime(2026, 1, 12, 17, 0)


def test_marks_sessions_past_the_grace_period():
    created = auto_mark_present_lectures(SLOTS, [], [], SETTINGS, now=NOW)

    # 11:00 cutoff: the 11:00-12:30 session is still too recent.
    assert sorted(log.slot_id for log in created) == ["ai-mon", "fm-mon"]
    for log in created:
        assert log.status == AttendanceStatus.present
        assert log.source == MarkSource.auto
        assert log.date == date(2026, 1, 12)
        assert log.marked_at.tzinfo is not None
        assert log.marked_at == NOW.astimezone()
        assert log.id == f"{log.slot_id}-2026-01-12"


def test_existing_logs_are_never_replaced():
    existing = AttendanceLog.for_key(
        LogKey("ai-mon", date(2026, 1, 12)),
        subject_id="AI",
        status=AttendanceStatus.absent,
        marked_at=datetime(2026, 1, 12, 10, 0),
    )

    created = auto_mark_present_lectures(SLOTS, [], [existing], SETTINGS, now=NOW)

    assert [log.slot_id for log in created] == ["fm-mon"]


def test_second_sweep_creates_nothing():
    first = auto_mark_present_lectures(SLOTS, [], [], SETTINGS, now=NOW)
    second = auto_mark_present_lectures(SLOTS, [], first, SETTINGS, now=NOW)

    assert len(first) == 2
    assert second == []


def test_nothing_before_semester_start():
    created = auto_mark_present_lectures(SLOTS, [], [], SETTINGS, now=datetime(2026, 1, 11, 23, 0))

    assert created == []


def test_nothing_after_semester_end():
    short = TrackerSettings(semester_start_date=date(2026, 1, 12), semester_end_date=date(2026, 1, 12))

    created = auto_mark_present_lectures(SLOTS, [], [], short, now=datetime(2026, 1, 16, 9, 0))

    assert sorted(log.slot_id for log in created) == ["ai-mon", "atsa-mon", "fm-mon"]
    assert {log.date for log in created} == {date(2026, 1, 12)}


def test_lookback_window_bounds_the_walk():
    long_gap = datetime(2026, 2, 16, 20, 0)

    created = auto_mark_present_lectures(SLOTS, [], [], SETTINGS, now=long_gap, lookback_days=7)

    assert {log.date for log in created} == {date(2026, 2, 9), date(2026, 2, 16)}


def test_holidays_and_overrides_are_respected():
    holidays = [Holiday(date=date(2026, 1, 19), name="Holiday")]
    overrides = [
        SlotOverride(id="c1", date=date(2026, 1, 12), type=OverrideType.cancelled, original_slot_id="fm-mon"),
        SlotOverride(
            id="a1",
            date=date(2026, 1, 14),
            type=OverrideType.added,
            subject_id="FM",
            start_time="08:00",
            duration_minutes=60,
        ),
    ]

    created = auto_mark_present_lectures(
        SLOTS, overrides, [], SETTINGS, now=datetime(2026, 1, 19, 23, 0), holidays=holidays
    )

    keys = {(log.slot_id, log.date) for log in created}
    assert keys == {
        ("ai-mon", date(2026, 1, 12)),
        ("atsa-mon", date(2026, 1, 12)),
        ("a1", date(2026, 1, 14)),
    }


def test_input_logs_are_not_mutated():
    logs: list[AttendanceLog] = []

    auto_mark_present_lectures(SLOTS, [], logs, SETTINGS, now=NOW)

    assert logs == []
