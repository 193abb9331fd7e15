from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.mixins import AuditMixin

if TYPE_CHECKING:
    from app.models.shipment import Shipment


class PurchaseOrder(AuditMixin, Base):
    """
    Top-level commercial document, identified by its human-readable number.
    Owns the customer sub-orders that in turn own the shipments.
    """
    __tablename__ = "purchase_order"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    po_number: Mapped[str] = mapped_column(String(30), unique=True, index=True, nullable=False)
    order_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)

    customer_orders: Mapped[list["CustomerOrder"]] = relationship(
        "CustomerOrder",
        back_populates="purchase_order",
        order_by="CustomerOrder.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrder(po_number={self.po_number})>"


class CustomerOrder(AuditMixin, Base):
    """Customer sub-order inside a purchase order; owns an ordered list of shipments."""
    __tablename__ = "customer_order"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    purchase_order_id: Mapped[int] = mapped_column(
        ForeignKey("purchase_order.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Ordinal inside the purchase order (0-based), kept by the CRUD flows.
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    customer_po_number: Mapped[str] = mapped_column(String(30), nullable=False)
    customer: Mapped[str | None] = mapped_column(String(120), nullable=True)
    warehouse: Mapped[str | None] = mapped_column(String(120), nullable=True)

    purchase_order: Mapped["PurchaseOrder"] = relationship(
        "PurchaseOrder", back_populates="customer_orders"
    )
    shipments: Mapped[list["Shipment"]] = relationship(
        "Shipment",
        back_populates="customer_order",
        order_by="Shipment.position",
        cascade="all, delete-orphan",
    )
