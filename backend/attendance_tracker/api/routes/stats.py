from datetime import date

from fastapi import APIRouter, Depends, Query

from attendance_tracker.api.deps import get_store
from attendance_tracker.schemas.attendance import SubjectStats
from attendance_tracker.services.aggregator import calculate_all_stats
from attendance_tracker.services.tracker_store import TrackerStore

router = APIRouter()


@router.get("/stats", response_model=dict[str, SubjectStats])
def get_all_stats(
    today: date | None = Query(default=None),
    store: TrackerStore = Depends(get_store),
) -> dict[str, SubjectStats]:
    snapshot = store.snapshot()
    return calculate_all_stats(
        snapshot.subjects,
        snapshot.slots,
        snapshot.logs,
        snapshot.overrides,
        snapshot.settings,
        today,
        snapshot.holidays,
    )
