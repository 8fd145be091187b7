from datetime import date, datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError

from attendance_tracker.core.config import Settings
from attendance_tracker.core.exceptions import (
    DuplicateResourceError,
    PersistenceError,
    ResourceNotFoundError,
    ValidationError,
)
from attendance_tracker.models.store_entry import StoreEntry, StoreKey
from attendance_tracker.schemas.attendance import AttendanceStatus, MarkAttendanceRequest, MarkSource
from attendance_tracker.schemas.backup import ExportBundle
from attendance_tracker.schemas.holiday import Holiday
from attendance_tracker.schemas.settings import TrackerSettingsUpdate
from attendance_tracker.schemas.subject import SubjectCreate, SubjectUpdate
from attendance_tracker.schemas.timetable import (
    OverrideType,
    RescheduleSlotRequest,
    SlotCreate,
    SlotOverrideCreate,
    SlotUpdate,
)
from attendance_tracker.services.resolver import get_effective_slots
from attendance_tracker.services.tracker_store import TrackerStore

SWEEP_TIME = datetime(2026, 1, 12, 17, 0)


@pytest.fixture()
def store(db_session):
    return TrackerStore(db_session, Settings())


@pytest.fixture()
def seeded_store(store):
    store.update_settings(TrackerSettingsUpdate(semester_start_date=date(2026, 1, 12), semester_weeks=15))
    store.add_subject(SubjectCreate(id="ai", name="Artificial Intelligence", default_room="LH-1"))
    store.add_subject(SubjectCreate(id="FM", name="Financial Markets"))
    store.add_slot(SlotCreate(subject_id="AI", day_of_week=0, start_time="09:00", end_time="10:00"))
    store.add_slot(SlotCreate(subject_id="FM", day_of_week=0, start_time="08:00", end_time="09:00", room="B-2"))
    return store


def test_ensure_initialized_only_runs_once(store):
    assert store.ensure_initialized() is True
    assert store.ensure_initialized() is False
    assert store.subjects() == []
    assert store.get_settings().min_attendance_threshold == 0.8


def test_subject_codes_are_normalized_and_unique(seeded_store):
    assert [subject.id for subject in seeded_store.subjects()] == ["AI", "FM"]

    with pytest.raises(DuplicateResourceError):
        seeded_store.add_subject(SubjectCreate(id=" ai ", name="Again"))


def test_update_subject_keeps_untouched_fields(seeded_store):
    updated = seeded_store.update_subject("AI", SubjectUpdate(lecture_limit=10))

    assert updated.lecture_limit == 10
    assert updated.default_room == "LH-1"
    assert seeded_store.get_subject("AI").lecture_limit == 10


def test_delete_subject_removes_its_slots(seeded_store):
    seeded_store.delete_subject("AI")

    assert [slot.subject_id for slot in seeded_store.slots()] == ["FM"]
    with pytest.raises(ResourceNotFoundError):
        seeded_store.get_subject("AI")


def test_add_slot_derives_id_duration_and_room(seeded_store):
    slot = next(slot for slot in seeded_store.slots() if slot.subject_id == "AI")

    assert slot.id == "AI-0-0900"
    assert slot.duration_minutes == 60
    assert slot.room == "LH-1"


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        (SlotCreate(subject_id="XX", day_of_week=0, start_time="09:00", end_time="10:00"), "Select a valid subject."),
        (SlotCreate(subject_id="AI", day_of_week=7, start_time="09:00", end_time="10:00"), "Choose a valid day of week."),
        (SlotCreate(subject_id="AI", day_of_week=1, start_time="9am", end_time="10:00"), "Use HH:MM 24h format for time."),
        (SlotCreate(subject_id="AI", day_of_week=1, start_time="10:00", end_time="10:00"), "End time must be after start time."),
    ],
)
def test_add_slot_rejects_bad_input(seeded_store, payload, message):
    with pytest.raises(ValidationError, match=message):
        seeded_store.add_slot(payload)


def test_duplicate_slot_is_rejected(seeded_store):
    with pytest.raises(DuplicateResourceError):
        seeded_store.add_slot(SlotCreate(subject_id="AI", day_of_week=0, start_time="09:00", end_time="11:00"))


def test_update_slot_keeps_duration_when_only_start_moves(seeded_store):
    updated = seeded_store.update_slot("AI-0-0900", SlotUpdate(start_time="14:00"))

    assert updated.id == "AI-0-0900"
    assert updated.start_time == "14:00"
    assert updated.duration_minutes == 60


def test_added_override_needs_a_known_subject(seeded_store):
    with pytest.raises(ValidationError):
        seeded_store.add_override(
            SlotOverrideCreate(
                date=date(2026, 1, 14),
                type=OverrideType.added,
                subject_id="NOPE",
                start_time="10:00",
                duration_minutes=60,
            )
        )


def test_reschedule_moves_one_occurrence(seeded_store):
    cancelled, added = seeded_store.reschedule_slot(
        "AI-0-0900",
        RescheduleSlotRequest(from_date=date(2026, 1, 12), to_date=date(2026, 1, 14), start_time="11:00"),
    )

    assert cancelled.type == OverrideType.cancelled
    assert added.type == OverrideType.added
    assert added.original_slot_id == "AI-0-0900"
    assert added.duration_minutes == 60
    assert added.room == "LH-1"

    slots, overrides = seeded_store.slots(), seeded_store.overrides()
    assert "AI-0-0900" not in [s.id for s in get_effective_slots(date(2026, 1, 12), slots, overrides)]
    assert [s.id for s in get_effective_slots(date(2026, 1, 14), slots, overrides)] == [added.id]


def test_cancel_unknown_slot_is_not_found(seeded_store):
    with pytest.raises(ResourceNotFoundError):
        seeded_store.cancel_slot("ghost", date(2026, 1, 12))


def test_holidays_upsert_by_date(seeded_store):
    seeded_store.add_holiday(Holiday(date=date(2026, 1, 26)))
    seeded_store.add_holiday(Holiday(date=date(2026, 1, 26), name="Republic Day"))

    assert seeded_store.holidays() == [Holiday(date=date(2026, 1, 26), name="Republic Day")]

    seeded_store.remove_holiday(date(2026, 1, 26))
    with pytest.raises(ResourceNotFoundError):
        seeded_store.remove_holiday(date(2026, 1, 26))


def test_marking_twice_replaces_the_log(seeded_store):
    request = MarkAttendanceRequest(
        slot_id="AI-0-0900", subject_id="AI", status=AttendanceStatus.present, date=date(2026, 1, 12)
    )
    seeded_store.mark_attendance(request)
    seeded_store.mark_attendance(request.model_copy(update={"status": AttendanceStatus.absent}))

    logs = seeded_store.list_logs()
    assert len(logs) == 1
    assert logs[0].id == "AI-0-0900-2026-01-12"
    assert logs[0].status == AttendanceStatus.absent


def test_unmark_missing_log_is_not_found(seeded_store):
    with pytest.raises(ResourceNotFoundError):
        seeded_store.unmark_attendance("AI-0-0900", date(2026, 1, 12))


def test_auto_attendance_runs_are_idempotent(seeded_store):
    first = seeded_store.run_auto_attendance(now=SWEEP_TIME)
    second = seeded_store.run_auto_attendance(now=SWEEP_TIME)

    assert len(first) == 2
    assert second == []
    assert len(seeded_store.list_logs()) == 2
    assert {log.source for log in seeded_store.list_logs()} == {MarkSource.auto}


def test_auto_attendance_leaves_manual_marks_alone(seeded_store):
    seeded_store.mark_attendance(
        MarkAttendanceRequest(
            slot_id="AI-0-0900", subject_id="AI", status=AttendanceStatus.absent, date=date(2026, 1, 12)
        )
    )

    created = seeded_store.run_auto_attendance(now=SWEEP_TIME)

    assert [log.slot_id for log in created] == ["FM-0-0800"]
    manual = seeded_store.list_logs(subject_id="AI")
    assert manual[0].status == AttendanceStatus.absent
    assert manual[0].source == MarkSource.manual


def test_auto_attendance_can_be_disabled(db_session):
    store = TrackerStore(db_session, Settings(auto_mark_enabled=False))
    store.update_settings(TrackerSettingsUpdate(semester_start_date=date(2026, 1, 12)))
    store.add_subject(SubjectCreate(id="AI", name="Artificial Intelligence"))
    store.add_slot(SlotCreate(subject_id="AI", day_of_week=0, start_time="09:00", end_time="10:00"))

    assert store.run_auto_attendance(now=SWEEP_TIME) == []


def test_malformed_entries_are_skipped(db_session, store):
    db_session.add(StoreEntry(key=StoreKey.subjects.value, value=[{"id": "AI", "name": "AI"}, {"name": 3}]))
    db_session.add(StoreEntry(key=StoreKey.attendance.value, value={"unexpected": "shape"}))
    db_session.add(StoreEntry(key=StoreKey.settings.value, value={"minAttendanceThreshold": 7}))
    db_session.commit()

    assert [subject.id for subject in store.subjects()] == ["AI"]
    assert store.logs() == []
    assert store.get_settings().min_attendance_threshold == 0.8


def test_invalid_settings_update_is_rejected(seeded_store):
    with pytest.raises(ValidationError):
        seeded_store.update_settings(TrackerSettingsUpdate(semester_end_date=date(2025, 1, 1)))

    assert seeded_store.get_settings().semester_end_date is None


def test_failed_commit_raises_persistence_error(db_session, store, monkeypatch):
    def broken_commit():
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(db_session, "commit", broken_commit)

    with pytest.raises(PersistenceError):
        store.add_subject(SubjectCreate(id="AI", name="Artificial Intelligence"))


def test_import_collapses_duplicate_logs(seeded_store):
    seeded_store.add_holiday(Holiday(date=date(2026, 1, 26), name="Republic Day"))
    exported = seeded_store.export_bundle().model_dump(mode="json", by_alias=True)
    log = {
        "id": "AI-0-0900-2026-01-12",
        "date": "2026-01-12",
        "subjectId": "AI",
        "slotId": "AI-0-0900",
        "status": "present",
        "markedAt": "2026-01-12T10:00:00",
    }
    exported["attendanceLogs"] = [log, {**log, "status": "absent"}]
    exported.pop("holidays")

    result = seeded_store.import_bundle(ExportBundle.model_validate(exported))

    assert result.attendance_logs == 1
    assert result.holidays == 1
    assert [entry.status for entry in seeded_store.list_logs()] == [AttendanceStatus.absent]
    assert seeded_store.list_logs()[0].marked_at.tzinfo is not None
    assert [holiday.name for holiday in seeded_store.holidays()] == ["Republic Day"]


def test_manual_and_auto_marks_share_an_aware_timestamp_format(seeded_store):
    seeded_store.mark_attendance(
        MarkAttendanceRequest(
            slot_id="AI-0-0900", subject_id="AI", status=AttendanceStatus.absent, date=date(2026, 1, 12)
        )
    )
    seeded_store.run_auto_attendance(now=SWEEP_TIME)

    logs = seeded_store.list_logs()
    assert {log.source for log in logs} == {MarkSource.manual, MarkSource.auto}
    assert all(log.marked_at.tzinfo is not None for log in logs)
    assert max(log.marked_at for log in logs) >= min(log.marked_at for log in logs)
