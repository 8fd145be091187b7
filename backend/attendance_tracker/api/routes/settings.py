from fastapi import APIRouter, Depends

from attendance_tracker.api.deps import get_store
from attendance_tracker.schemas.settings import TrackerSettings, TrackerSettingsUpdate
from attendance_tracker.services.tracker_store import TrackerStore

router = APIRouter()


@router.get("/settings", response_model=TrackerSettings)
def get_tracker_settings(store: TrackerStore = Depends(get_store)) -> TrackerSettings:
    return store.get_settings()


@router.put("/settings", response_model=TrackerSettings)
def update_tracker_settings(
    payload: TrackerSettingsUpdate,
    store: TrackerStore = Depends(get_store),
) -> TrackerSettings:
    return store.update_settings(payload)
