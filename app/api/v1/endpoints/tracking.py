from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.schemas.tracking import (
    ContainerRefreshSummary,
    LiveShipmentCountResponse,
    LiveShipmentPosition,
    RefreshAllResponse,
    TrackingRecord,
)
from app.services.shipment_refresh_service import ShipmentRefreshService
from app.services.shipment_tracking_repository import ShipmentTrackingRepository
from app.services.tracking_errors import TrackingError
from app.services.tracking_normalizer import finite_number

logger = logging.getLogger(__name__)

router = APIRouter()

GENERIC_ERROR_MESSAGE = "Failed to fetch tracking data"


def get_refresh_service(db: Session = Depends(get_db)) -> ShipmentRefreshService:
    return ShipmentRefreshService(db)


def _error_response(exc: TrackingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_detail())


def _parse_latlong(value: str) -> tuple[float, float] | None:
    parts = (value or "").split(",")
    if len(parts) != 2:
        return None
    lat = finite_number(parts[0])
    lng = finite_number(parts[1])
    if lat is None or lng is None:
        return None
    return lat, lng


@router.get("", response_model=TrackingRecord)
def refresh_container_tracking(
    container: str | None = Query(default=None),
    service: ShipmentRefreshService = Depends(get_refresh_service),
):
    try:
        return service.refresh(container)
    except TrackingError as exc:
        logger.warning(
            "tracking_refresh_failed container=%s code=%s error=%s",
            container,
            exc.code,
            exc.message,
        )
        return _error_response(exc)
    except Exception:
        logger.exception("tracking_refresh_crashed container=%s", container)
        return JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE})


@router.post("/refresh-all", response_model=RefreshAllResponse)
def refresh_all_live_containers(
    service: ShipmentRefreshService = Depends(get_refresh_service),
):
    summary = service.refresh_all()
    return RefreshAllResponse(
        total=len(summary.results),
        refreshed=summary.count("refreshed"),
        failed=summary.count("failed"),
        skipped=summary.count("skipped"),
        stopped_reason=summary.stopped_reason,
        containers=[
            ContainerRefreshSummary(
                container_no=result.container_no,
                outcome=result.outcome,
                matched=result.matched,
                updated=result.updated,
                failed=result.failed,
                error=result.error,
            )
            for result in summary.results
        ],
    )


@router.get("/live-shipments/count", response_model=LiveShipmentCountResponse)
def count_live_shipments(db: Session = Depends(get_db)):
    repository = ShipmentTrackingRepository(db)
    return LiveShipmentCountResponse(
        count=repository.count_live_containers(settings.TRACKING_LIVE_STATUS)
    )


@router.get("/live-shipments/positions", response_model=list[LiveShipmentPosition])
def list_live_shipment_positions(db: Session = Depends(get_db)):
    repository = ShipmentTrackingRepository(db)
    positions: list[LiveShipmentPosition] = []
    for row in repository.live_shipments_with_latest_record(settings.TRACKING_LIVE_STATUS):
        coordinates = _parse_latlong(row.latest.latlong)
        if coordinates is None:
            continue
        positions.append(
            LiveShipmentPosition(
                container_no=row.container_no,
                po_number=row.po_number,
                customer_po_number=row.customer_po_number,
                customer=row.customer,
                status=row.status,
                latitude=coordinates[0],
                longitude=coordinates[1],
                last_event_status=row.latest.last_event_status,
                last_event_location=row.latest.last_event_location,
                tracked_at=row.latest.timestamp,
            )
        )
    return positions


@router.get("/shipments/{shipment_id}/history", response_model=list[TrackingRecord])
def get_shipment_tracking_history(shipment_id: int, db: Session = Depends(get_db)):
    return ShipmentTrackingRepository(db).tracking_history(shipment_id)
