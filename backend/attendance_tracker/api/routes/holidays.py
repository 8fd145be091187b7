from datetime import date

from fastapi import APIRouter, Depends, status

from attendance_tracker.api.deps import get_store
from attendance_tracker.schemas.holiday import Holiday
from attendance_tracker.services.tracker_store import TrackerStore

router = APIRouter()


@router.get("/", response_model=list[Holiday])
def list_holidays(store: TrackerStore = Depends(get_store)) -> list[Holiday]:
    return store.holidays()


@router.post("/", response_model=Holiday, status_code=status.HTTP_201_CREATED)
def create_holiday(payload: Holiday, store: TrackerStore = Depends(get_store)) -> Holiday:
    return store.add_holiday(payload)


@router.delete("/{holiday_date}")
def delete_holiday(holiday_date: date, store: TrackerStore = Depends(get_store)) -> dict:
    store.remove_holiday(holiday_date)
    return {"success": True}
