"""
Data-access boundary.

Repositories translate SQLAlchemy failures into ``DependencyFailure`` /
``DependencyTimeout`` after logging the internal detail; nothing above this
module sees driver exceptions or SQL.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from sqlalchemy import select
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from shipquote.application.errors import DependencyFailure, DependencyTimeout, EmailAlreadyRegistered
from shipquote.domain.models import Shipment, ShipmentStatusHistory, Tariff, User

logger = logging.getLogger(__name__)

_TIMEOUT_MARKERS = ("timeout", "timed out", "statement_timeout", "canceling statement")


class TrackingNumberTaken(Exception):
    """Insert hit the unique constraint on ``tracking_number``."""


def _is_timeout(exc: sa_exc.SQLAlchemyError) -> bool:
    if isinstance(exc, sa_exc.TimeoutError):
        return True
    return any(marker in str(exc).lower() for marker in _TIMEOUT_MARKERS)


@contextmanager
def data_access(db: Session, operation: str) -> Iterator[None]:
    try:
        yield
    except sa_exc.SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            f"Storage failure during {operation}",
            exc_info=True,
            extra={"extra_fields": {"operation": operation}},
        )
        if _is_timeout(exc):
            raise DependencyTimeout() from exc
        raise DependencyFailure() from exc


class TariffRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_rate(self, origin: str, destination: str) -> Optional[Tariff]:
        with data_access(self.db, "tariff lookup"):
            return self.db.scalars(
                select(Tariff).where(Tariff.origin == origin, Tariff.destination == destination)
            ).first()

    def list_all(self) -> Sequence[Tariff]:
        with data_access(self.db, "tariff listing"):
            return self.db.scalars(select(Tariff).order_by(Tariff.origin, Tariff.destination)).all()


class ShipmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, shipment: Shipment) -> Shipment:
        """Stage and flush a new shipment inside the current transaction."""
        with data_access(self.db, "shipment insert"):
            try:
                self.db.add(shipment)
                self.db.flush()
            except sa_exc.IntegrityError as exc:
                if "tracking_number" not in str(exc.orig):
                    raise
                self.db.rollback()
                raise TrackingNumberTaken(shipment.tracking_number) from exc
        return shipment

    def add_history(
        self,
        shipment_id: int,
        status: str,
        description: str,
        location: Optional[str] = None,
    ) -> ShipmentStatusHistory:
        entry = ShipmentStatusHistory(
            shipment_id=shipment_id,
            status=status,
            description=description,
            location=location,
        )
        with data_access(self.db, "status history insert"):
            self.db.add(entry)
            self.db.flush()
        return entry

    def commit(self) -> None:
        with data_access(self.db, "commit"):
            self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def get(self, shipment_id: int, for_update: bool = False) -> Optional[Shipment]:
        stmt = select(Shipment).where(Shipment.id == shipment_id)
        if for_update:
            stmt = stmt.with_for_update()
        with data_access(self.db, "shipment lookup"):
            return self.db.scalars(stmt).first()

    def get_by_tracking_number(self, tracking_number: str) -> Optional[Shipment]:
        with data_access(self.db, "tracking lookup"):
            return self.db.scalars(
                select(Shipment).where(Shipment.tracking_number == tracking_number)
            ).first()

    def list_for_user(self, user_id: int) -> Sequence[Shipment]:
        with data_access(self.db, "user shipments lookup"):
            return self.db.scalars(
                select(Shipment)
                .where(Shipment.user_id == user_id)
                .order_by(Shipment.created_at.desc(), Shipment.id.desc())
            ).all()

    def status_history(self, shipment_id: int) -> Sequence[ShipmentStatusHistory]:
        with data_access(self.db, "status history lookup"):
            return self.db.scalars(
                select(ShipmentStatusHistory)
                .where(ShipmentStatusHistory.shipment_id == shipment_id)
                .order_by(ShipmentStatusHistory.created_at, ShipmentStatusHistory.id)
            ).all()


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> Optional[User]:
        with data_access(self.db, "user lookup"):
            return self.db.scalars(select(User).where(User.email == email)).first()

    def create(self, user: User) -> User:
        with data_access(self.db, "user insert"):
            try:
                self.db.add(user)
                self.db.commit()
            except sa_exc.IntegrityError as exc:
                self.db.rollback()
                raise EmailAlreadyRegistered() from exc
            self.db.refresh(user)
        return user
