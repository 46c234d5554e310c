import logging
import secrets
import string
import time
from typing import Any, Callable, List, Optional

from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from shipquote.core_settings import Settings, get_settings
from shipquote.domain.models import Package, Shipment, ShipmentStatus, utcnow
from shipquote.infrastructure.cache import CacheLayer
from shipquote.infrastructure.repository import ShipmentRepository, TrackingNumberTaken
from .errors import DependencyFailure, InvalidStatusTransition, ShipmentNotFound
from .schemas import (
    HistoryEntry,
    ShipmentCreate,
    ShipmentCreated,
    ShipmentDetails,
    ShipmentRecord,
    StatusTransitionRequest,
    TrackingView,
)
from .validation import parse

logger = logging.getLogger(__name__)

_record_adapter = TypeAdapter(ShipmentRecord)
_details_list_adapter = TypeAdapter(List[ShipmentDetails])

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
CREATED_DESCRIPTION = "Shipment created"


def generate_tracking_number(prefix: str = "ENV") -> str:
    """Prefix + last 6 digits of the epoch millis + 8 random alphanumerics."""
    millis = str(int(time.time() * 1000))[-6:]
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(8))
    return f"{prefix}{millis}{suffix}"


def _details(shipment: Shipment) -> ShipmentDetails:
    return ShipmentDetails.model_validate(shipment)


class ShipmentService:
    """Sole writer of shipments and their status history."""

    def __init__(
        self,
        db: Session,
        cache: CacheLayer,
        settings: Optional[Settings] = None,
        tracking_numbers: Callable[[str], str] = generate_tracking_number,
    ):
        self.repo = ShipmentRepository(db)
        self.cache = cache
        self.settings = settings or get_settings()
        self.tracking_numbers = tracking_numbers

    def create_shipment(self, user_id: int, payload: Any) -> ShipmentCreated:
        request = parse(ShipmentCreate, payload)

        for attempt in range(1, self.settings.TRACKING_MAX_ATTEMPTS + 1):
            shipment = Shipment(
                user_id=user_id,
                origin=request.origin,
                destination=request.destination,
                package=Package(request.weight, request.length, request.width, request.height),
                quoted_price=request.quoted_price,
                status=ShipmentStatus.WAITING.value,
                tracking_number=self.tracking_numbers(self.settings.TRACKING_PREFIX),
            )
            try:
                self.repo.add(shipment)
            except TrackingNumberTaken:
                logger.warning(f"Tracking number collision on attempt {attempt}, regenerating")
                continue
            # Same transaction as the shipment row: both commit or neither does
            self.repo.add_history(shipment.id, ShipmentStatus.WAITING.value, CREATED_DESCRIPTION)
            self.repo.commit()
            break
        else:
            logger.error(f"No free tracking number after {self.settings.TRACKING_MAX_ATTEMPTS} attempts")
            raise DependencyFailure()

        self.cache.invalidate(CacheLayer.user_shipments_key(user_id))
        logger.info(
            f"Shipment {shipment.id} created",
            extra={"extra_fields": {"shipment_id": shipment.id, "tracking_number": shipment.tracking_number}},
        )
        return ShipmentCreated(
            id=shipment.id,
            tracking_number=shipment.tracking_number,
            status=ShipmentStatus.WAITING,
            message="Shipment created successfully with 'waiting' status",
        )

    def _load_record(self, shipment_id: int) -> ShipmentRecord:
        shipment = self.repo.get(shipment_id)
        if shipment is None:
            raise ShipmentNotFound()
        return ShipmentRecord.model_validate(shipment)

    def get_shipment(self, shipment_id: int, user_id: Optional[int] = None) -> ShipmentDetails:
        """
        Read-through lookup by id.

        With ``user_id`` set, shipments owned by someone else are reported as
        not found.
        """
        record = self.cache.read_through(
            CacheLayer.shipment_key(shipment_id),
            _record_adapter,
            self.settings.CACHE_TTL_SHIPMENT,
            lambda: self._load_record(shipment_id),
        )
        if user_id is not None and record.user_id != user_id:
            raise ShipmentNotFound()
        return ShipmentDetails.model_validate(record.model_dump())

    def get_user_shipments(self, user_id: int) -> List[ShipmentDetails]:
        """Newest first."""
        return self.cache.read_through(
            CacheLayer.user_shipments_key(user_id),
            _details_list_adapter,
            self.settings.CACHE_TTL_USER_SHIPMENTS,
            lambda: [_details(s) for s in self.repo.list_for_user(user_id)],
        )

    def get_shipment_tracking(self, tracking_number: str) -> TrackingView:
        shipment = self.repo.get_by_tracking_number(tracking_number)
        if shipment is None:
            raise ShipmentNotFound()
        # An empty history is valid and returned as such
        history = self.repo.status_history(shipment.id)
        return TrackingView(
            shipment_id=shipment.id,
            tracking_number=shipment.tracking_number,
            current_status=ShipmentStatus(shipment.status),
            history=[
                HistoryEntry(
                    status=ShipmentStatus(entry.status),
                    description=entry.description,
                    location=entry.location,
                    timestamp=entry.created_at,
                )
                for entry in history
            ],
        )

    def transition_status(self, shipment_id: int, payload: Any, user_id: Optional[int] = None) -> ShipmentDetails:
        """
        Advance a shipment to the next lifecycle status and record it in the history.

        With ``user_id`` set, only the owner may advance the shipment; anyone
        else gets not found, as on reads.
        """
        request = parse(StatusTransitionRequest, payload)

        shipment = self.repo.get(shipment_id, for_update=True)
        if shipment is None or (user_id is not None and shipment.user_id != user_id):
            self.repo.rollback()
            raise ShipmentNotFound()

        current = ShipmentStatus(shipment.status)
        if not current.can_advance_to(request.status):
            self.repo.rollback()
            raise InvalidStatusTransition(current.value, request.status.value)

        shipment.status = request.status.value
        shipment.updated_at = utcnow()
        self.repo.add_history(shipment.id, request.status.value, request.description, request.location)
        self.repo.commit()

        self.cache.invalidate(
            CacheLayer.shipment_key(shipment.id),
            CacheLayer.user_shipments_key(shipment.user_id),
        )
        logger.info(
            f"Shipment {shipment.id} moved from {current.value} to {request.status.value}",
            extra={"extra_fields": {"shipment_id": shipment.id, "location": request.location}},
        )
        return _details(shipment)
