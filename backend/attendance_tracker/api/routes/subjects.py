from datetime import date

from fastapi import APIRouter, Depends, Query, status

from attendance_tracker.api.deps import get_store
from attendance_tracker.schemas.attendance import HistoryEntry, SubjectAttendanceOut
from attendance_tracker.schemas.subject import Subject, SubjectCreate, SubjectUpdate
from attendance_tracker.services.aggregator import (
    calculate_subject_stats,
    compute_attendance,
    compute_safe_to_miss,
    subject_history,
)
from attendance_tracker.services.tracker_store import TrackerStore

router = APIRouter()


@router.get("/", response_model=list[Subject])
def list_subjects(store: TrackerStore = Depends(get_store)) -> list[Subject]:
    return store.subjects()


@router.post("/", response_model=Subject, status_code=status.HTTP_201_CREATED)
def create_subject(payload: SubjectCreate, store: TrackerStore = Depends(get_store)) -> Subject:
    return store.add_subject(payload)


@router.get("/{subject_id}", response_model=Subject)
def get_subject(subject_id: str, store: TrackerStore = Depends(get_store)) -> Subject:
    return store.get_subject(subject_id)


@router.put("/{subject_id}", response_model=Subject)
def update_subject(subject_id: str, payload: SubjectUpdate, store: TrackerStore = Depends(get_store)) -> Subject:
    return store.update_subject(subject_id, payload)


@router.delete("/{subject_id}")
def delete_subject(subject_id: str, store: TrackerStore = Depends(get_store)) -> dict:
    store.delete_subject(subject_id)
    return {"success": True}


@router.get("/{subject_id}/attendance", response_model=SubjectAttendanceOut)
def get_subject_attendance(
    subject_id: str,
    today: date | None = Query(default=None),
    store: TrackerStore = Depends(get_store),
) -> SubjectAttendanceOut:
    snapshot = store.snapshot()
    subject = store.get_subject(subject_id)
    settings = snapshot.settings
    return SubjectAttendanceOut(
        subject_id=subject.id,
        summary=compute_attendance(snapshot.logs, subject.id, settings.min_attendance_threshold),
        safe_to_miss=compute_safe_to_miss(
            subject.id,
            snapshot.logs,
            snapshot.slots,
            snapshot.overrides,
            settings,
            lecture_limit=subject.lecture_limit,
        ),
        stats=calculate_subject_stats(
            subject, snapshot.slots, snapshot.logs, snapshot.overrides, settings, today, snapshot.holidays
        ),
    )


@router.get("/{subject_id}/history", response_model=list[HistoryEntry])
def get_subject_history(
    subject_id: str,
    today: date | None = Query(default=None),
    store: TrackerStore = Depends(get_store),
) -> list[HistoryEntry]:
    store.get_subject(subject_id)
    snapshot = store.snapshot()
    return subject_history(subject_id, snapshot.logs, snapshot.slots, snapshot.overrides, today)
