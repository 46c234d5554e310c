from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

from shipquote.domain.models import ShipmentStatus

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
# Same precision as the Numeric(10, 2) and Numeric(12, 2) columns
Measure = Annotated[Decimal, Field(gt=0, max_digits=10, decimal_places=2)]
Money = Annotated[Decimal, Field(gt=0, max_digits=12, decimal_places=2)]
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Requests

class QuoteRequest(CamelModel):
    weight: Measure
    length: Measure
    width: Measure
    height: Measure
    origin: NonEmptyStr
    destination: NonEmptyStr


class ShipmentCreate(QuoteRequest):
    quoted_price: Money


class StatusTransitionRequest(CamelModel):
    status: ShipmentStatus
    description: NonEmptyStr
    location: Optional[NonEmptyStr] = None


class RegisterRequest(CamelModel):
    nickname: NonEmptyStr
    names: NonEmptyStr
    lastnames: NonEmptyStr
    email: Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, pattern=EMAIL_PATTERN)]
    password: Annotated[str, StringConstraints(min_length=1)]
    city: NonEmptyStr
    phone: NonEmptyStr


class LoginRequest(CamelModel):
    email: Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, pattern=EMAIL_PATTERN)]
    password: Annotated[str, StringConstraints(min_length=1)]


# Responses

class PackageSchema(CamelModel):
    weight: Decimal
    length: Decimal
    width: Decimal
    height: Decimal


class TariffRead(CamelModel):
    id: int
    origin: str
    destination: str
    price_per_kg: Decimal


class QuotationResult(CamelModel):
    price: Decimal
    volume_weight: Decimal
    selected_weight: Decimal
    origin: str
    destination: str
    price_per_kg: Decimal


class ShipmentCreated(CamelModel):
    id: int
    tracking_number: str
    status: ShipmentStatus
    message: str


class ShipmentDetails(CamelModel):
    id: int
    tracking_number: str
    status: ShipmentStatus
    origin: str
    destination: str
    package: PackageSchema
    quoted_price: Decimal
    created_at: datetime
    updated_at: datetime


class ShipmentRecord(ShipmentDetails):
    """Cached form of a shipment; carries the owner for access checks."""
    user_id: int


class HistoryEntry(CamelModel):
    status: ShipmentStatus
    description: str
    location: Optional[str] = None
    timestamp: datetime


class TrackingView(CamelModel):
    shipment_id: int
    tracking_number: str
    current_status: ShipmentStatus
    history: list[HistoryEntry]


class UserRead(CamelModel):
    id: int
    nickname: str
    names: str
    lastnames: str
    email: str
    city: str
    phone: str


class LoginResponse(CamelModel):
    token: str
    token_type: str = "bearer"
    user: UserRead


class MessageResponse(CamelModel):
    success: bool = True
    message: str
