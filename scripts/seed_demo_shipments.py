from __future__ import annotations

import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from sqlalchemy.orm import Session

from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models.purchase_order import CustomerOrder, PurchaseOrder
from app.models.shipment import Shipment

import app.models  # noqa: F401

DEMO_ORDERS = [
    {
        "po_number": "VB-1001",
        "customer_orders": [
            {"customer_po_number": "CPO-1001-A", "customer": "Acme Foods", "containers": ["MSCU1234567", "TBD"]},
            {"customer_po_number": "CPO-1001-B", "customer": "Northwind", "containers": ["MAEU7654321"]},
        ],
    },
    {
        "po_number": "VB-1002",
        "customer_orders": [
            {"customer_po_number": "CPO-1002-A", "customer": "Acme Foods", "containers": ["MSCU1234567"]},
        ],
    },
]


def _seed_order(db: Session, order_data: dict) -> PurchaseOrder:
    order = db.query(PurchaseOrder).filter(PurchaseOrder.po_number == order_data["po_number"]).first()
    if order:
        return order

    order = PurchaseOrder(po_number=order_data["po_number"], order_type="IMPORT", created_by="seed@local")
    for co_index, co_data in enumerate(order_data["customer_orders"]):
        customer_order = CustomerOrder(
            position=co_index,
            customer_po_number=co_data["customer_po_number"],
            customer=co_data["customer"],
            created_by="seed@local",
        )
        for ship_index, container_no in enumerate(co_data["containers"]):
            customer_order.shipments.append(
                Shipment(position=ship_index, container_no=container_no, status="IN_TRANSIT")
            )
        order.customer_orders.append(customer_order)
    db.add(order)
    db.flush()
    return order


def seed() -> None:
    Base.metadata.create_all(engine)
    db: Session = SessionLocal()
    try:
        for order_data in DEMO_ORDERS:
            order = _seed_order(db, order_data)
            print("Seeded purchase order", order.po_number, "id", order.id)
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    seed()
