import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from attendance_tracker.api.routes import (
    attendance,
    backup,
    health,
    holidays,
    overrides,
    settings as settings_routes,
    stats,
    subjects,
    timetable,
)
from attendance_tracker.core.config import get_settings
from attendance_tracker.core.exceptions import AppError
from attendance_tracker.core.middleware import RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from attendance_tracker.db.bootstrap import ensure_runtime_schema_compatibility
from attendance_tracker.db.session import SessionLocal
from attendance_tracker.services.tracker_store import TrackerStore

logger = logging.getLogger(__name__)

settings = get_settings()


def run_startup_sweep() -> None:
    db = SessionLocal()
    try:
        store = TrackerStore(db, settings)
        store.ensure_initialized()
        if settings.auto_mark_on_startup:
            created = store.run_auto_attendance()
            logger.info("Startup sweep marked %d session(s) present", len(created))
    except AppError:
        logger.warning("Startup sweep skipped", exc_info=True)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_runtime_schema_compatibility()
    run_startup_sweep()
    yield


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )

app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
app.add_middleware(SecurityHeadersMiddleware, settings=settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(subjects.router, prefix=f"{settings.api_prefix}/subjects", tags=["subjects"])
app.include_router(timetable.router, prefix=f"{settings.api_prefix}/timetable", tags=["timetable"])
app.include_router(overrides.router, prefix=f"{settings.api_prefix}/overrides", tags=["overrides"])
app.include_router(holidays.router, prefix=f"{settings.api_prefix}/holidays", tags=["holidays"])
app.include_router(attendance.router, prefix=f"{settings.api_prefix}/attendance", tags=["attendance"])
app.include_router(stats.router, prefix=settings.api_prefix, tags=["stats"])
app.include_router(settings_routes.router, prefix=settings.api_prefix, tags=["settings"])
app.include_router(backup.router, prefix=settings.api_prefix, tags=["backup"])
