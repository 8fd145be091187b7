from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from attendance_tracker.api.deps import get_store
from attendance_tracker.schemas.backup import ExportBundle, ImportResult
from attendance_tracker.services.calendar_utils import format_local_date
from attendance_tracker.services.tracker_store import TrackerStore

router = APIRouter()


@router.get("/backup/export")
def export_data(store: TrackerStore = Depends(get_store)) -> JSONResponse:
    bundle = store.export_bundle()
    filename = f"attendance-backup-{format_local_date(bundle.exported_at)}.json"
    return JSONResponse(
        content=bundle.model_dump(mode="json", by_alias=True),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/backup/import", response_model=ImportResult)
def import_data(payload: ExportBundle, store: TrackerStore = Depends(get_store)) -> ImportResult:
    return store.import_bundle(payload)
