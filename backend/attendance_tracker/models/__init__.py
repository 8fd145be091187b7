from attendance_tracker.models.store_entry import StoreEntry, StoreKey  # noqa: F401
