from __future__ import annotations

from app.schemas.tracking import TrackingRecord

# Fields that carry real movement information. Vessel names, port codes and
# the raw payload are left out so they never create history rows on their own.
CHANGE_DETECTION_FIELDS: tuple[str, ...] = (
    "status",
    "latlong",
    "last_event_date",
    "last_event_status",
    "last_event_location",
    "pod_predictive_eta",
    "pol_date",
    "pod_date",
)


def changed_fields(latest_stored: TrackingRecord | None, fresh: TrackingRecord) -> list[str]:
    if latest_stored is None:
        return list(CHANGE_DETECTION_FIELDS)
    return [
        field
        for field in CHANGE_DETECTION_FIELDS
        if getattr(latest_stored, field) != getattr(fresh, field)
    ]


def has_changed(latest_stored: TrackingRecord | None, fresh: TrackingRecord) -> bool:
    """First observation always counts as a change."""
    if latest_stored is None:
        return True
    return bool(changed_fields(latest_stored, fresh))
