from datetime import date

from fastapi import APIRouter, Depends, Query, status

from attendance_tracker.api.deps import get_store
from attendance_tracker.schemas.timetable import SlotOverride, SlotOverrideCreate
from attendance_tracker.services.tracker_store import TrackerStore

router = APIRouter()


@router.get("/", response_model=list[SlotOverride])
def list_overrides(
    on_date: date | None = Query(default=None, alias="date"),
    store: TrackerStore = Depends(get_store),
) -> list[SlotOverride]:
    overrides = store.overrides()
    if on_date is not None:
        overrides = [override for override in overrides if override.date == on_date]
    return overrides


@router.post("/", response_model=SlotOverride, status_code=status.HTTP_201_CREATED)
def create_override(payload: SlotOverrideCreate, store: TrackerStore = Depends(get_store)) -> SlotOverride:
    return store.add_override(payload)


@router.delete("/{override_id}")
def delete_override(override_id: str, store: TrackerStore = Depends(get_store)) -> dict:
    store.delete_override(override_id)
    return {"success": True}
