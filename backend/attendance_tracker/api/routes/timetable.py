from datetime import date

from fastapi import APIRouter, Depends, status

from attendance_tracker.api.deps import get_store
from attendance_tracker.schemas.timetable import (
    CancelSlotRequest,
    DayScheduleOut,
    RescheduleSlotRequest,
    SlotCreate,
    SlotOverride,
    SlotUpdate,
    TimetableSlot,
)
from attendance_tracker.services.schedule import build_day_schedule
from attendance_tracker.services.tracker_store import TrackerStore

router = APIRouter()


@router.get("/slots", response_model=list[TimetableSlot])
def list_slots(store: TrackerStore = Depends(get_store)) -> list[TimetableSlot]:
    return sorted(store.slots(), key=lambda slot: (slot.day_of_week, slot.start_time))


@router.post("/slots", response_model=TimetableSlot, status_code=status.HTTP_201_CREATED)
def create_slot(payload: SlotCreate, store: TrackerStore = Depends(get_store)) -> TimetableSlot:
    return store.add_slot(payload)


@router.put("/slots/{slot_id}", response_model=TimetableSlot)
def update_slot(slot_id: str, payload: SlotUpdate, store: TrackerStore = Depends(get_store)) -> TimetableSlot:
    return store.update_slot(slot_id, payload)


@router.delete("/slots/{slot_id}")
def delete_slot(slot_id: str, store: TrackerStore = Depends(get_store)) -> dict:
    store.delete_slot(slot_id)
    return {"success": True}


@router.post("/slots/{slot_id}/cancel", response_model=SlotOverride, status_code=status.HTTP_201_CREATED)
def cancel_slot(slot_id: str, payload: CancelSlotRequest, store: TrackerStore = Depends(get_store)) -> SlotOverride:
    return store.cancel_slot(slot_id, payload.date)


@router.post("/slots/{slot_id}/reschedule", response_model=list[SlotOverride], status_code=status.HTTP_201_CREATED)
def reschedule_slot(
    slot_id: str,
    payload: RescheduleSlotRequest,
    store: TrackerStore = Depends(get_store),
) -> list[SlotOverride]:
    return store.reschedule_slot(slot_id, payload)


@router.get("/day/{day}", response_model=DayScheduleOut)
def get_day(day: date, store: TrackerStore = Depends(get_store)) -> DayScheduleOut:
    snapshot = store.snapshot()
    return build_day_schedule(
        day,
        snapshot.slots,
        snapshot.overrides,
        snapshot.holidays,
        snapshot.subjects,
        snapshot.logs,
        snapshot.settings.semester_start_date,
    )
