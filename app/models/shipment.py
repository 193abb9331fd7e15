from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import AuditMixin

if TYPE_CHECKING:
    from app.models.purchase_order import CustomerOrder


class Shipment(AuditMixin, Base):
    """
    One physical container shipped under a customer sub-order.
    `container_no` is the join key with the tracking provider and is not
    unique: the same container can be booked under several orders.
    """
    __tablename__ = "shipment"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    customer_order_id: Mapped[int] = mapped_column(
        ForeignKey("customer_order.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    container_no: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    status: Mapped[str | None] = mapped_column(String(100), nullable=True)

    carrier: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bol_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    eta: Mapped[object | None] = mapped_column(Date, nullable=True)

    customer_order: Mapped["CustomerOrder"] = relationship("CustomerOrder", back_populates="shipments")
    tracking_records: Mapped[list["ShipmentTrackingRecord"]] = relationship(
        "ShipmentTrackingRecord",
        back_populates="shipment",
        order_by="ShipmentTrackingRecord.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Shipment(container_no={self.container_no}, status={self.status})>"


class ShipmentTrackingRecord(Base):
    """
    Immutable snapshot of provider data for one shipment.
    Rows are only ever inserted; the highest id is the current state.
    """
    __tablename__ = "shipment_tracking_record"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    shipment_id: Mapped[int] = mapped_column(
        ForeignKey("shipment.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Provider strings are stored unbounded; malformed values pass through as-is.
    type: Mapped[str] = mapped_column(Text, nullable=False, default="")
    number: Mapped[str] = mapped_column(Text, nullable=False, default="")
    sealine: Mapped[str] = mapped_column(Text, nullable=False, default="")
    sealine_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_at: Mapped[str] = mapped_column(Text, nullable=False, default="")

    from_port_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    from_port_country: Mapped[str] = mapped_column(Text, nullable=False, default="")
    from_port_locode: Mapped[str] = mapped_column(Text, nullable=False, default="")
    to_port_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    to_port_country: Mapped[str] = mapped_column(Text, nullable=False, default="")
    to_port_locode: Mapped[str] = mapped_column(Text, nullable=False, default="")

    pol_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    pol_date: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Provider sends a boolean; an absent flag is stored as "".
    pol_actual: Mapped[object] = mapped_column(JSON, nullable=False, default="")
    pod_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    pod_date: Mapped[str] = mapped_column(Text, nullable=False, default="")
    pod_actual: Mapped[object] = mapped_column(JSON, nullable=False, default="")
    pod_predictive_eta: Mapped[str] = mapped_column(Text, nullable=False, default="")

    container_iso_code: Mapped[str] = mapped_column(Text, nullable=False, default="")
    container_size_type: Mapped[str] = mapped_column(Text, nullable=False, default="")
    vessel_names: Mapped[str] = mapped_column(Text, nullable=False, default="")
    vessel_imos: Mapped[str] = mapped_column(Text, nullable=False, default="")

    last_event_code: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_event_status: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_event_date: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_event_location: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_event_facility: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_event_vessel: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_event_voyage: Mapped[str] = mapped_column(Text, nullable=False, default="")

    latlong: Mapped[str] = mapped_column(Text, nullable=False, default="")
    raw_json: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Local capture time, distinct from the provider's own `updated_at`.
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    shipment: Mapped["Shipment"] = relationship("Shipment", back_populates="tracking_records")


@event.listens_for(ShipmentTrackingRecord, "before_update")
def _reject_tracking_record_update(mapper, connection, target) -> None:
    raise ValueError(
        f"Tracking record {target.id} is append-only and cannot be modified."
    )
