from datetime import date

from fastapi import APIRouter, Depends, Query

from attendance_tracker.api.deps import get_store
from attendance_tracker.schemas.attendance import (
    AttendanceLog,
    AutoMarkRequest,
    AutoMarkResult,
    MarkAttendanceRequest,
)
from attendance_tracker.services.tracker_store import TrackerStore

router = APIRouter()


@router.get("/", response_model=list[AttendanceLog])
def list_attendance(
    subject_id: str | None = Query(default=None, alias="subjectId"),
    on_date: date | None = Query(default=None, alias="date"),
    store: TrackerStore = Depends(get_store),
) -> list[AttendanceLog]:
    return store.list_logs(subject_id=subject_id, on_date=on_date)


@router.put("/", response_model=AttendanceLog)
def mark_attendance(payload: MarkAttendanceRequest, store: TrackerStore = Depends(get_store)) -> AttendanceLog:
    return store.mark_attendance(payload)


@router.delete("/{slot_id}/{log_date}")
def unmark_attendance(slot_id: str, log_date: date, store: TrackerStore = Depends(get_store)) -> dict:
    store.unmark_attendance(slot_id, log_date)
    return {"success": True}


@router.post("/auto-mark", response_model=AutoMarkResult)
def auto_mark(payload: AutoMarkRequest | None = None, store: TrackerStore = Depends(get_store)) -> AutoMarkResult:
    created = store.run_auto_attendance(now=payload.now if payload else None)
    return AutoMarkResult(created=len(created), logs=created)
