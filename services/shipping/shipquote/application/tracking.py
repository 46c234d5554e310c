"""
Public tracking lookup.

The only read path reachable without a credential, so the tracking number
acts as a bearer capability. The view exposes shipment identity, the
current status and per-entry ``status / description / location /
timestamp``; never price, package contents or the owning user.
"""

from sqlalchemy.orm import Session

from shipquote.infrastructure.cache import CacheLayer
from .errors import ShipmentNotFound
from .schemas import TrackingView
from .service import ShipmentService


class TrackingService:
    def __init__(self, db: Session, cache: CacheLayer):
        self.shipments = ShipmentService(db, cache)

    def track(self, tracking_number: str) -> TrackingView:
        normalized = (tracking_number or "").strip()
        if not normalized:
            raise ShipmentNotFound()
        return self.shipments.get_shipment_tracking(normalized)
