from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel

from .base import BaseSchema


class TrackingRecord(BaseSchema):
    """
    Flat tracking snapshot for one container.
    Every provider-derived field defaults to "" so missing data compares equal.
    """

    # meta
    type: str = ""
    number: str = ""
    sealine: str = ""
    sealine_name: str = ""
    status: str = ""
    updated_at: str = ""

    # from/to (first/last entry of the provider's locations list)
    from_port_name: str = ""
    from_port_country: str = ""
    from_port_locode: str = ""
    to_port_name: str = ""
    to_port_country: str = ""
    to_port_locode: str = ""

    # route (pol/pod)
    pol_name: str = ""
    pol_date: str = ""
    pol_actual: Union[bool, str] = ""
    pod_name: str = ""
    pod_date: str = ""
    pod_actual: Union[bool, str] = ""
    pod_predictive_eta: str = ""

    # container basics
    container_iso_code: str = ""
    container_size_type: str = ""

    # vessels
    vessel_names: str = ""
    vessel_imos: str = ""

    # last event
    last_event_code: str = ""
    last_event_status: str = ""
    last_event_date: str = ""
    last_event_location: str = ""
    last_event_facility: str = ""
    last_event_vessel: str = ""
    last_event_voyage: str = ""

    # current position, "lat, lng"
    latlong: str = ""

    # raw payload for trace/debugging
    raw_json: str = ""

    # set when the snapshot is stored
    timestamp: Optional[datetime] = None


# Columns copied verbatim into shipment_tracking_record rows.
TRACKING_RECORD_FIELDS: tuple[str, ...] = tuple(
    name for name in TrackingRecord.model_fields if name != "timestamp"
)


class LiveShipmentCountResponse(BaseModel):
    count: int


class LiveShipmentPosition(BaseModel):
    container_no: str
    po_number: str
    customer_po_number: str
    customer: Optional[str] = None
    status: Optional[str] = None
    latitude: float
    longitude: float
    last_event_status: str = ""
    last_event_location: str = ""
    tracked_at: datetime


class ContainerRefreshSummary(BaseModel):
    container_no: str
    outcome: str
    matched: int = 0
    updated: int = 0
    failed: int = 0
    error: Optional[str] = None


class RefreshAllResponse(BaseModel):
    total: int
    refreshed: int
    failed: int
    skipped: int
    stopped_reason: Optional[str] = None
    containers: list[ContainerRefreshSummary]
