from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from attendance_tracker.db.session import SessionLocal
from attendance_tracker.services.tracker_store import TrackerStore


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> TrackerStore:
    return TrackerStore(db)
