import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, composite, mapped_column


def utcnow() -> datetime:
    # Stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class ShipmentStatus(str, enum.Enum):
    WAITING = "waiting"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"

    @property
    def successor(self) -> Optional["ShipmentStatus"]:
        members = list(ShipmentStatus)
        index = members.index(self)
        return members[index + 1] if index + 1 < len(members) else None

    def can_advance_to(self, target: "ShipmentStatus") -> bool:
        return self.successor is target


@dataclass
class Package:
    """Weight in kg, dimensions in cm."""
    weight: Decimal
    length: Decimal
    width: Decimal
    height: Decimal


class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(primary_key=True)
    nickname: Mapped[str] = mapped_column(String(50))
    names: Mapped[str] = mapped_column(String(100))
    lastnames: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(100))
    city: Mapped[str] = mapped_column(String(100))
    phone: Mapped[str] = mapped_column(String(30))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Tariff(Base):
    __tablename__ = "tariffs"
    __table_args__ = (UniqueConstraint("origin", "destination", name="uq_tariffs_route"),)
    id: Mapped[int] = mapped_column(primary_key=True)
    origin: Mapped[str] = mapped_column(String(100))
    destination: Mapped[str] = mapped_column(String(100))
    price_per_kg: Mapped[Decimal] = mapped_column(Numeric(10, 2))


class Shipment(Base):
    __tablename__ = "shipments"
    __table_args__ = (UniqueConstraint("tracking_number", name="uq_shipments_tracking_number"),)
    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), index=True)
    origin: Mapped[str] = mapped_column(String(100))
    destination: Mapped[str] = mapped_column(String(100))
    package: Mapped[Package] = composite(
        mapped_column("package_weight", Numeric(10, 2)),
        mapped_column("package_length", Numeric(10, 2)),
        mapped_column("package_width", Numeric(10, 2)),
        mapped_column("package_height", Numeric(10, 2)),
    )
    # Fixed at creation, never recomputed from later tariffs
    quoted_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    status: Mapped[str] = mapped_column(String(20), default=ShipmentStatus.WAITING.value)
    tracking_number: Mapped[str] = mapped_column(String(32))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class ShipmentStatusHistory(Base):
    """Append-only; rows are never updated or deleted."""
    __tablename__ = "shipment_status_history"
    id: Mapped[int] = mapped_column(primary_key=True)
    shipment_id: Mapped[int] = mapped_column(ForeignKey("shipments.id", ondelete="RESTRICT"), index=True)
    status: Mapped[str] = mapped_column(String(20))
    description: Mapped[str] = mapped_column(String(255))
    location: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
