"""Replace the configured store with a demo semester.

Run:
  PYTHONPATH=backend python scripts/seed_demo_data.py
"""

from __future__ import annotations

import os
from datetime import date, datetime, timedelta, timezone

from attendance_tracker.db.bootstrap import ensure_runtime_schema_compatibility
from attendance_tracker.db.session import SessionLocal
from attendance_tracker.schemas.backup import ExportBundle
from attendance_tracker.schemas.settings import TrackerSettings
from attendance_tracker.schemas.subject import Subject
from attendance_tracker.schemas.timetable import TimetableSlot
from attendance_tracker.services.tracker_store import TrackerStore

SEMESTER_WEEKS = int(os.getenv("DEMO_SEMESTER_WEEKS", "15"))

DEMO_SUBJECTS = [
    {"id": "AI", "name": "Artificial Intelligence", "professor": "Dr. Rao", "default_room": "LH-101"},
    {"id": "FM", "name": "Formal Methods", "professor": "Dr. Iyer", "default_room": "LH-204"},
    {"id": "ATSA", "name": "Applied Time Series Analysis", "professor": None, "default_room": "LH-102"},
    {"id": "CAP", "name": "Capstone Project", "professor": None, "default_room": "Lab-3", "lecture_limit": 10},
]

# (subject, day of week, start, minutes)
DEMO_SLOTS = [
    ("AI", 0, "09:00", 60),
    ("ATSA", 0, "11:00", 90),
    ("FM", 1, "10:00", 60),
    ("AI", 2, "09:00", 60),
    ("FM", 3, "14:00", 60),
    ("CAP", 3, "15:30", 120),
    ("AI", 4, "12:00", 60),
]


def _semester_start() -> date:
    raw = os.getenv("DEMO_SEMESTER_START", "").strip()
    if raw:
        return date.fromisoformat(raw)
    today = date.today()
    return today - timedelta(days=today.weekday() + 14)


def build_bundle() -> ExportBundle:
    now = datetime.now(timezone.utc)
    subjects = [Subject(**item, created_at=now) for item in DEMO_SUBJECTS]
    rooms = {item["id"]: item["default_room"] for item in DEMO_SUBJECTS}
    slots = [
        TimetableSlot(
            id=f"{subject_id}-{day}-{start.replace(':', '')}",
            subject_id=subject_id,
            day_of_week=day,
            start_time=start,
            duration_minutes=minutes,
            room=rooms[subject_id],
            created_at=now,
            updated_at=now,
        )
        for subject_id, day, start, minutes in DEMO_SLOTS
    ]
    return ExportBundle(
        subjects=subjects,
        slots=slots,
        settings=TrackerSettings(semester_start_date=_semester_start(), semester_weeks=SEMESTER_WEEKS),
        holidays=[],
        exported_at=now,
    )


def main() -> None:
    ensure_runtime_schema_compatibility()
    db = SessionLocal()
    try:
        result = TrackerStore(db).import_bundle(build_bundle())
    finally:
        db.close()
    print(
        f"Seeded {result.subjects} subjects and {result.slots} weekly slots "
        f"for a {SEMESTER_WEEKS}-week semester."
    )


if __name__ == "__main__":
    main()
