"""
Mapping of the SeaRates tracking payload into a flat `TrackingRecord`.

The provider response is a set of loosely linked lists (locations, facilities,
vessels, container events) joined by opaque ids. Each step below is a small
pure function so the position cascade can be checked one source at a time.
"""
from __future__ import annotations

import json
import math
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable

from app.schemas.tracking import TrackingRecord

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_TIMESTAMP_SPLIT = re.compile(r"[\s:-]")


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _by_id(items: Iterable[Any], item_id: Any) -> dict | None:
    if item_id is None or item_id == "":
        return None
    for item in items:
        if isinstance(item, dict) and item.get("id") == item_id:
            return item
    return None


def finite_number(value: Any) -> float | None:
    """Return `value` as a float when it is a finite number (numeric strings allowed)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            number = float(stripped)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def format_coordinate(value: float) -> str:
    """Shortest round-trip digits, never in exponent form (1e-05 -> "0.00001")."""
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def format_latlong(lat: Any, lng: Any) -> str:
    """`"lat, lng"` when both parse as finite numbers, else ""."""
    lat_value = finite_number(lat)
    lng_value = finite_number(lng)
    if lat_value is None or lng_value is None:
        return ""
    return f"{format_coordinate(lat_value)}, {format_coordinate(lng_value)}"


def format_provider_timestamp(value: str | None) -> str:
    """
    Reformat "YYYY-MM-DD HH:MM:SS" as "M/D/YYYY HH:MM:SS".
    Anything that does not split into six numeric-led parts is returned unchanged.
    """
    if not value:
        return ""
    parts = _TIMESTAMP_SPLIT.split(value)
    if len(parts) < 6:
        return value
    try:
        year, month, day = int(parts[0]), int(parts[1]), int(parts[2])
    except ValueError:
        return value
    hh, mm, ss = parts[3], parts[4], parts[5]
    return f"{month}/{day}/{year} {hh}:{mm}:{ss}"


def _event_moment(event: dict) -> datetime:
    raw = event.get("date")
    if not raw or not isinstance(raw, str):
        return _EPOCH
    candidate = raw.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(candidate)
    except ValueError:
        return _EPOCH
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def sort_events_latest_first(events: Iterable[Any]) -> list[dict]:
    """Events ordered by date descending; equal dates keep their listed order."""
    cleaned = [event for event in events if isinstance(event, dict)]
    return sorted(cleaned, key=_event_moment, reverse=True)


def location_label(location: dict | None) -> str:
    if not location:
        return ""
    label = ", ".join(part for part in (_text(location.get("name")), _text(location.get("country"))) if part)
    locode = _text(location.get("locode"))
    if locode:
        label += f" ({locode})"
    return label


def facility_label(facility: dict | None) -> str:
    if not facility:
        return ""
    return " ".join(part for part in (_text(facility.get("name")), _text(facility.get("locode"))) if part)


# -------- current position cascade --------


def ais_position(route_data: dict) -> str:
    position = _as_dict(_as_dict(_as_dict(route_data.get("ais")).get("data")).get("last_vessel_position"))
    if not position:
        return ""
    return format_latlong(position.get("lat"), position.get("lng"))


def pin_position(route_data: dict) -> str:
    pin = route_data.get("pin")
    if not isinstance(pin, list) or len(pin) < 2:
        return ""
    return format_latlong(pin[0], pin[1])


def route_path_position(route_data: dict) -> str:
    """Last usable point of the most recent route segment, scanning backwards."""
    for segment in reversed(_as_list(route_data.get("route"))):
        path = _as_list(_as_dict(segment).get("path"))
        for point in reversed(path):
            if isinstance(point, list) and len(point) >= 2:
                latlong = format_latlong(point[0], point[1])
                if latlong:
                    return latlong
    return ""


def vessel_ais_position(vessels: list, events_latest_first: list[dict]) -> str:
    current = None
    latest_sea_event = next(
        (event for event in events_latest_first if event.get("type") == "sea" and event.get("vessel")),
        None,
    )
    if latest_sea_event is not None:
        current = _by_id(vessels, latest_sea_event.get("vessel"))
    if current is None:
        current = next(
            (
                vessel
                for vessel in vessels
                if isinstance(vessel, dict)
                and _as_dict(vessel.get("ais")).get("latitude") is not None
                and _as_dict(vessel.get("ais")).get("longitude") is not None
            ),
            None,
        )
    if current is None:
        return ""
    ais = _as_dict(current.get("ais"))
    if not ais:
        return ""
    return format_latlong(ais.get("latitude"), ais.get("longitude"))


def event_place_position(facility: dict | None, location: dict | None) -> str:
    for place in (facility, location):
        if place:
            latlong = format_latlong(place.get("lat"), place.get("lng"))
            if latlong:
                return latlong
    return ""


def resolve_latlong(
    route_data: dict,
    vessels: list,
    events_latest_first: list[dict],
    event_facility: dict | None,
    event_location: dict | None,
) -> str:
    """
    Current position, from the freshest source to the least fresh:
    live AIS, provider pin, route path, vessel-level AIS, last event place.
    """
    return (
        ais_position(route_data)
        or pin_position(route_data)
        or route_path_position(route_data)
        or vessel_ais_position(vessels, events_latest_first)
        or event_place_position(event_facility, event_location)
    )


def _route_flag(point: dict, key: str) -> bool | str:
    value = point.get(key)
    return value if isinstance(value, bool) else ""


def map_tracking_payload(payload: dict) -> TrackingRecord:
    data = _as_dict(payload.get("data"))
    metadata = _as_dict(data.get("metadata"))
    locations = _as_list(data.get("locations"))
    facilities = _as_list(data.get("facilities"))
    vessels = _as_list(data.get("vessels"))
    containers = _as_list(data.get("containers"))
    container = _as_dict(containers[0]) if containers else {}
    route = _as_dict(data.get("route"))
    route_data = _as_dict(data.get("route_data"))
    pol = _as_dict(route.get("pol"))
    pod = _as_dict(route.get("pod"))

    pol_location = _by_id(locations, pol.get("location"))
    pod_location = _by_id(locations, pod.get("location"))

    # Origin/destination are inferred from the ends of the locations list.
    from_location = _as_dict(locations[0]) if locations else {}
    to_location = _as_dict(locations[-1]) if locations else {}

    events = sort_events_latest_first(_as_list(container.get("events")))
    latest_event = events[0] if events else {}
    event_location = _by_id(locations, latest_event.get("location"))
    event_facility = _by_id(facilities, latest_event.get("facility"))
    event_vessel = _by_id(vessels, latest_event.get("vessel")) or {}

    vessel_names = ", ".join(
        _text(v.get("name")) for v in vessels if isinstance(v, dict) and v.get("name")
    )
    vessel_imos = ", ".join(
        _text(v.get("imo")) for v in vessels if isinstance(v, dict) and v.get("imo")
    )

    status = _text(metadata.get("status"))
    if not status and payload.get("status") == "error":
        status = "ERROR"

    return TrackingRecord(
        type=_text(metadata.get("type")),
        number=_text(metadata.get("number")),
        sealine=_text(metadata.get("sealine")),
        sealine_name=_text(metadata.get("sealine_name")),
        status=status,
        updated_at=format_provider_timestamp(_text(metadata.get("updated_at"))),
        from_port_name=_text(from_location.get("name")),
        from_port_country=_text(from_location.get("country")),
        from_port_locode=_text(from_location.get("locode")),
        to_port_name=_text(to_location.get("name")),
        to_port_country=_text(to_location.get("country")),
        to_port_locode=_text(to_location.get("locode")),
        pol_name=_text(pol_location.get("name")) if pol_location else "",
        pol_date=_text(pol.get("date")),
        pol_actual=_route_flag(pol, "actual"),
        pod_name=_text(pod_location.get("name")) if pod_location else "",
        pod_date=_text(pod.get("date")),
        pod_actual=_route_flag(pod, "actual"),
        pod_predictive_eta=_text(pod.get("predictive_eta")),
        container_iso_code=_text(container.get("iso_code")),
        container_size_type=_text(container.get("size_type")),
        vessel_names=vessel_names,
        vessel_imos=vessel_imos,
        last_event_code=_text(latest_event.get("event_code")),
        last_event_status=_text(latest_event.get("status")),
        last_event_date=_text(latest_event.get("date")),
        last_event_location=location_label(event_location),
        last_event_facility=facility_label(event_facility),
        last_event_vessel=_text(event_vessel.get("name")),
        last_event_voyage=_text(latest_event.get("voyage")),
        latlong=resolve_latlong(route_data, vessels, events, event_facility, event_location),
        raw_json=json.dumps(payload, default=str),
    )
