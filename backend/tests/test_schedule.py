from datetime import date, datetime

from attendance_tracker.schemas.attendance import AttendanceLog, AttendanceStatus
from attendance_tracker.schemas.holiday import Holiday
from attendance_tracker.schemas.subject import Subject
from attendance_tracker.schemas.timetable import OverrideType, SlotOverride, TimetableSlot
from attendance_tracker.services.schedule import build_day_schedule, day_span_hours, get_day_schedule
from attendance_tracker.services.resolver import get_effective_slots

SEMESTER_START = date(2026, 1, 5)

SUBJECTS = [
    Subject(id="AI", name="Artificial Intelligence"),
    Subject(id="CAP", name="Capstone Seminar", lecture_limit=2),
]
SLOTS = [
    TimetableSlot(id="ai-mon", subject_id="AI", day_of_week=0, start_time="09:00", duration_minutes=60, room="LH-1"),
    TimetableSlot(id="cap-mon", subject_id="CAP", day_of_week=0, start_time="11:00", duration_minutes=90, room="LH-4"),
]


def test_day_schedule_before_semester_is_empty():
    assert get_day_schedule(date(2025, 12, 29), SLOTS, [], (), SUBJECTS, SEMESTER_START) == []


def test_day_schedule_on_holiday_is_empty():
    holidays = [Holiday(date=date(2026, 1, 12), name="Pongal")]

    assert get_day_schedule(date(2026, 1, 12), SLOTS, [], holidays, SUBJECTS, SEMESTER_START) == []


def test_day_schedule_drops_subjects_past_their_allowance():
    on_second_week = get_day_schedule(date(2026, 1, 12), SLOTS, [], (), SUBJECTS, SEMESTER_START)
    on_third_week = get_day_schedule(date(2026, 1, 19), SLOTS, [], (), SUBJECTS, SEMESTER_START)

    assert [session.subject_id for session in on_second_week] == ["AI", "CAP"]
    assert [session.subject_id for session in on_third_week] == ["AI"]


def test_day_schedule_without_semester_start_is_plain_resolution():
    assert get_day_schedule(date(2026, 3, 2), SLOTS, [], (), SUBJECTS) == get_effective_slots(
        date(2026, 3, 2), SLOTS, []
    )


def test_day_span_hours():
    sessions = get_effective_slots(date(2026, 1, 5), SLOTS, [])

    assert day_span_hours(sessions) == 3.5
    assert day_span_hours([]) == 0


def test_build_day_schedule_decorates_sessions():
    logs = [
        AttendanceLog(
            id="ai-mon-2026-01-05",
            date=date(2026, 1, 5),
            subject_id="AI",
            slot_id="ai-mon",
            status=AttendanceStatus.absent,
            marked_at=datetime(2026, 1, 5, 10, 5),
        )
    ]
    overrides = [
        SlotOverride(id="m1", date=date(2026, 1, 5), type=OverrideType.modified, original_slot_id="cap-mon", room="LH-9")
    ]

    schedule = build_day_schedule(date(2026, 1, 5), SLOTS, overrides, [], SUBJECTS, logs, SEMESTER_START)

    assert schedule.day_label == "Mon"
    assert not schedule.is_holiday
    assert not schedule.is_before_semester
    ai, cap = schedule.sessions
    assert ai.subject_name == "Artificial Intelligence"
    assert ai.end_time == "10:00"
    assert ai.attendance_status == "absent"
    assert cap.end_time == "12:30"
    assert cap.room == "LH-9"
    assert cap.attendance_status is None


def test_build_day_schedule_reports_holiday_name():
    holidays = [Holiday(date=date(2026, 1, 26), name="Republic Day")]

    schedule = build_day_schedule(date(2026, 1, 26), SLOTS, [], holidays, SUBJECTS, [], SEMESTER_START)

    assert schedule.is_holiday
    assert schedule.holiday_name == "Republic Day"
    assert schedule.sessions == []
    assert schedule.span_hours == 0
