# --- 1. Commercial Layer ---
from app.models.purchase_order import PurchaseOrder, CustomerOrder  # noqa: F401

# --- 2. Logistics Layer ---
from app.models.shipment import Shipment, ShipmentTrackingRecord  # noqa: F401

# --- 3. Support Layer ---
from app.models.notification import Notification  # noqa: F401
