from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy import and_, distinct, func, insert, literal, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.mixins import TRACKING_ACTOR
from app.models.purchase_order import CustomerOrder, PurchaseOrder
from app.models.shipment import Shipment, ShipmentTrackingRecord
from app.schemas.tracking import TRACKING_RECORD_FIELDS, TrackingRecord
from app.services.tracking_errors import StoreError


UNTRACKED_CONTAINER_NUMBERS = ("", "TBD")
SENTINEL_STATUSES = ("UNKNOWN", "ERROR")


def normalize_container_no(container_no: str | None) -> str:
    return (container_no or "").strip()


def is_trackable_container(container_no: str | None) -> bool:
    return normalize_container_no(container_no).upper() not in UNTRACKED_CONTAINER_NUMBERS


def is_sentinel_status(status: str | None) -> bool:
    normalized = (status or "").strip().upper()
    return not normalized or normalized in SENTINEL_STATUSES


def _stored_record(row: ShipmentTrackingRecord) -> TrackingRecord:
    try:
        return TrackingRecord.model_validate(row)
    except ValidationError as exc:
        raise StoreError(message="Stored tracking record is unreadable.") from exc


@dataclass(frozen=True)
class ShipmentLocation:
    order_id: int
    sub_order_index: int
    shipment_index: int
    po_number: str
    shipment_id: int


@dataclass(frozen=True)
class MergeResult:
    matched: int
    modified: int
    status_updated: int = 0


@dataclass(frozen=True)
class LiveShipmentRow:
    shipment_id: int
    container_no: str
    status: str | None
    po_number: str
    customer_po_number: str
    customer: str | None
    latest: TrackingRecord


class ShipmentTrackingRepository:
    """
    Store access for tracking reconciliation.

    Writes never load and re-save an order: every statement selects its
    target shipments by order id + container number when it runs, so a
    concurrent edit elsewhere in the same order is left alone.
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _target_filter(order_id: int, container_no: str, shipment_id: int | None):
        sub_orders = select(CustomerOrder.id).where(CustomerOrder.purchase_order_id == order_id)
        clauses = [
            Shipment.container_no == container_no,
            Shipment.customer_order_id.in_(sub_orders),
        ]
        if shipment_id is not None:
            clauses.append(Shipment.id == shipment_id)
        return and_(*clauses)

    def find_shipments_by_container(self, container_no: str | None) -> list[ShipmentLocation]:
        number = normalize_container_no(container_no)
        if not is_trackable_container(number):
            return []

        stmt = (
            select(
                PurchaseOrder.id,
                PurchaseOrder.po_number,
                CustomerOrder.position,
                Shipment.position,
                Shipment.id,
            )
            .join(CustomerOrder, CustomerOrder.purchase_order_id == PurchaseOrder.id)
            .join(Shipment, Shipment.customer_order_id == CustomerOrder.id)
            .where(Shipment.container_no == number)
            .order_by(PurchaseOrder.id, CustomerOrder.position, Shipment.position, Shipment.id)
        )
        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise StoreError(message="Failed to look up shipments for container.") from exc

        return [
            ShipmentLocation(
                order_id=int(order_id),
                sub_order_index=int(sub_order_position),
                shipment_index=int(shipment_position),
                po_number=str(po_number),
                shipment_id=int(shipment_id),
            )
            for order_id, po_number, sub_order_position, shipment_position, shipment_id in rows
        ]

    def latest_tracking_record(self, shipment_id: int) -> TrackingRecord | None:
        stmt = (
            select(ShipmentTrackingRecord)
            .where(ShipmentTrackingRecord.shipment_id == shipment_id)
            .order_by(ShipmentTrackingRecord.id.desc())
            .limit(1)
        )
        try:
            row = self.db.execute(stmt).scalars().first()
        except SQLAlchemyError as exc:
            raise StoreError(message="Failed to read tracking history.") from exc
        if row is None:
            return None
        return _stored_record(row)

    def tracking_history(self, shipment_id: int) -> list[TrackingRecord]:
        rows = (
            self.db.execute(
                select(ShipmentTrackingRecord)
                .where(ShipmentTrackingRecord.shipment_id == shipment_id)
                .order_by(ShipmentTrackingRecord.id)
            )
            .scalars()
            .all()
        )
        return [_stored_record(row) for row in rows]

    def append_tracking_record(
        self,
        order_id: int,
        container_no: str,
        record: TrackingRecord,
        *,
        captured_at: datetime,
        shipment_id: int | None = None,
    ) -> int:
        """INSERT ... SELECT one history row per target shipment; returns rows appended."""
        columns = ShipmentTrackingRecord.__table__.c
        values = [
            literal(getattr(record, name), type_=columns[name].type)
            for name in TRACKING_RECORD_FIELDS
        ]
        source = (
            select(
                Shipment.id,
                *values,
                literal(captured_at, type_=columns["timestamp"].type),
            )
            .where(self._target_filter(order_id, container_no, shipment_id))
        )
        stmt = insert(ShipmentTrackingRecord.__table__).from_select(
            ["shipment_id", *TRACKING_RECORD_FIELDS, "timestamp"],
            source,
        )
        result = self.db.execute(stmt)
        return int(result.rowcount or 0)

    def set_shipment_status(
        self,
        order_id: int,
        container_no: str,
        status: str,
        *,
        shipment_id: int | None = None,
    ) -> int:
        """Overwrite status on target shipments whose status differs; returns rows changed."""
        stmt = (
            update(Shipment)
            .where(self._target_filter(order_id, container_no, shipment_id))
            .where(or_(Shipment.status.is_(None), Shipment.status != status))
            .values(status=status, last_changed_by=TRACKING_ACTOR, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        return int(result.rowcount or 0)

    def apply_update(
        self,
        order_id: int,
        container_no: str,
        fresh: TrackingRecord,
        *,
        shipment_id: int | None = None,
        captured_at: datetime | None = None,
    ) -> MergeResult:
        """
        Append `fresh` to the matching shipments' history and, unless its
        status is a sentinel ("UNKNOWN", "ERROR", empty), overwrite their status.
        Always appends; deciding whether to call this is the caller's job.
        The caller owns the transaction.
        """
        number = normalize_container_no(container_no)
        timestamp = captured_at or datetime.utcnow()
        try:
            appended = self.append_tracking_record(
                order_id,
                number,
                fresh,
                captured_at=timestamp,
                shipment_id=shipment_id,
            )
            status_updated = 0
            if appended and not is_sentinel_status(fresh.status):
                status_updated = self.set_shipment_status(
                    order_id,
                    number,
                    fresh.status,
                    shipment_id=shipment_id,
                )
        except SQLAlchemyError as exc:
            raise StoreError(message="Failed to save tracking update.") from exc

        return MergeResult(matched=appended, modified=appended, status_updated=status_updated)

    # -------- live shipment views --------

    def _live_shipment_filter(self, live_status: str):
        return and_(
            Shipment.status == live_status,
            Shipment.container_no.is_not(None),
            func.upper(func.trim(Shipment.container_no)).not_in(UNTRACKED_CONTAINER_NUMBERS),
        )

    def live_container_numbers(self, live_status: str) -> list[str]:
        stmt = (
            select(distinct(Shipment.container_no))
            .where(self._live_shipment_filter(live_status))
            .order_by(Shipment.container_no)
        )
        return [str(value) for value in self.db.execute(stmt).scalars().all()]

    def count_live_containers(self, live_status: str) -> int:
        stmt = select(func.count(distinct(Shipment.container_no))).where(
            self._live_shipment_filter(live_status)
        )
        return int(self.db.execute(stmt).scalar_one())

    def live_shipments_with_latest_record(self, live_status: str) -> list[LiveShipmentRow]:
        latest_ids = (
            select(
                ShipmentTrackingRecord.shipment_id.label("shipment_id"),
                func.max(ShipmentTrackingRecord.id).label("record_id"),
            )
            .group_by(ShipmentTrackingRecord.shipment_id)
            .subquery()
        )
        stmt = (
            select(Shipment, ShipmentTrackingRecord, PurchaseOrder.po_number, CustomerOrder)
            .join(CustomerOrder, Shipment.customer_order_id == CustomerOrder.id)
            .join(PurchaseOrder, CustomerOrder.purchase_order_id == PurchaseOrder.id)
            .join(latest_ids, latest_ids.c.shipment_id == Shipment.id)
            .join(ShipmentTrackingRecord, ShipmentTrackingRecord.id == latest_ids.c.record_id)
            .where(self._live_shipment_filter(live_status))
            .order_by(Shipment.container_no, Shipment.id)
        )
        rows = []
        for shipment, record, po_number, customer_order in self.db.execute(stmt).all():
            rows.append(
                LiveShipmentRow(
                    shipment_id=int(shipment.id),
                    container_no=str(shipment.container_no),
                    status=shipment.status,
                    po_number=str(po_number),
                    customer_po_number=str(customer_order.customer_po_number),
                    customer=customer_order.customer,
                    latest=TrackingRecord.model_validate(record),
                )
            )
        return rows
