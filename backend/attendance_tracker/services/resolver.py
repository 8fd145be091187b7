"""Effective schedule for a single date.

The base timetable repeats weekly; overrides patch one date at a time. For a
date the overrides are applied as a batch in three passes (cancel, modify,
add) and the result is ordered by start time.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date

from attendance_tracker.schemas.holiday import Holiday
from attendance_tracker.schemas.timetable import EffectiveSlot, OverrideType, SlotOverride, TimetableSlot
from attendance_tracker.services.calendar_utils import DateLike, day_of_week_of, parse_date


def get_effective_slots(
    target_date: DateLike,
    base_slots: Sequence[TimetableSlot],
    overrides: Sequence[SlotOverride],
) -> list[EffectiveSlot]:
    day = parse_date(target_date)
    if day is None:
        return []
    day_of_week = day_of_week_of(day)

    candidates = [EffectiveSlot.from_slot(slot) for slot in base_slots if slot.day_of_week == day_of_week]
    day_overrides = [override for override in overrides if override.date == day]

    removed_ids = {
        override.original_slot_id
        for override in day_overrides
        if override.type == OverrideType.cancelled and override.original_slot_id
    }
    candidates = [slot for slot in candidates if slot.id not in removed_ids]

    for override in day_overrides:
        if override.type != OverrideType.modified:
            continue
        for index, slot in enumerate(candidates):
            if slot.id != override.original_slot_id:
                continue
            update: dict = {
                "is_overridden": True,
                "override_type": OverrideType.modified,
                "override_id": override.id,
            }
            if override.duration_minutes is not None:
                update["duration_minutes"] = override.duration_minutes
            if override.room is not None:
                update["room"] = override.room
            candidates[index] = slot.model_copy(update=update)

    for override in day_overrides:
        if override.type != OverrideType.added or override.id in removed_ids:
            continue
        if override.subject_id is None or override.start_time is None or override.duration_minutes is None:
            continue
        candidates.append(
            EffectiveSlot(
                id=override.id,
                subject_id=override.subject_id,
                day_of_week=day_of_week,
                start_time=override.start_time,
                duration_minutes=override.duration_minutes,
                room=override.room or "",
                is_overridden=True,
                override_type=OverrideType.added,
                override_id=override.id,
            )
        )

    return sorted(candidates, key=lambda slot: slot.start_time)


def is_holiday(target_date: DateLike, holidays: Iterable[Holiday]) -> bool:
    day = parse_date(target_date)
    return day is not None and any(holiday.date == day for holiday in holidays)


def get_holiday(target_date: DateLike, holidays: Iterable[Holiday]) -> Holiday | None:
    day = parse_date(target_date)
    for holiday in holidays:
        if holiday.date == day:
            return holiday
    return None


def get_sessions_on(
    target_date: date,
    base_slots: Sequence[TimetableSlot],
    overrides: Sequence[SlotOverride],
    holidays: Iterable[Holiday] = (),
) -> list[EffectiveSlot]:
    """Effective slots for a date, empty when the date is a holiday."""
    if is_holiday(target_date, holidays):
        return []
    return get_effective_slots(target_date, base_slots, overrides)
