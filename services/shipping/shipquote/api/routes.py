from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from shipquote.api.deps import (
    auth_rate_limit,
    bearer_token,
    default_rate_limit,
    get_cache_layer,
    get_credentials,
    get_current_user_id,
)
from shipquote.application.auth import UserService
from shipquote.application.quotation import QuotationService, TariffService
from shipquote.application.schemas import (
    LoginResponse,
    MessageResponse,
    QuotationResult,
    ShipmentCreated,
    ShipmentDetails,
    TariffRead,
    TrackingView,
    UserRead,
)
from shipquote.application.service import ShipmentService
from shipquote.application.tracking import TrackingService
from shipquote.auth_local import CredentialService
from shipquote.infrastructure.cache import CacheLayer
from shipquote.infrastructure.db import get_db

auth_router = APIRouter(prefix="/api/auth", tags=["auth"], dependencies=[Depends(auth_rate_limit)])
quotation_router = APIRouter(prefix="/api/quotation", tags=["quotation"], dependencies=[Depends(default_rate_limit)])
shipment_router = APIRouter(prefix="/api/shipment", tags=["shipments"], dependencies=[Depends(default_rate_limit)])


@auth_router.post("/register", response_model=UserRead, status_code=201)
def register(
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    credentials: CredentialService = Depends(get_credentials),
):
    return UserService(db, credentials).register(payload)


@auth_router.post("/login", response_model=LoginResponse)
def login(
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    credentials: CredentialService = Depends(get_credentials),
):
    return UserService(db, credentials).login(payload)


@auth_router.post("/logout", response_model=MessageResponse)
def logout(
    token: str = Depends(bearer_token),
    db: Session = Depends(get_db),
    credentials: CredentialService = Depends(get_credentials),
):
    UserService(db, credentials).logout(token)
    return MessageResponse(message="Logged out")


@quotation_router.post("", response_model=QuotationResult)
def quote(
    payload: Dict[str, Any] = Body(...),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    cache: CacheLayer = Depends(get_cache_layer),
):
    return QuotationService(db, cache).get_quotation(payload)


@quotation_router.get("/tariffs", response_model=List[TariffRead])
def list_tariffs(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return TariffService(db).list_all()


@shipment_router.post("", response_model=ShipmentCreated, status_code=201)
def create_shipment(
    payload: Dict[str, Any] = Body(...),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    cache: CacheLayer = Depends(get_cache_layer),
):
    return ShipmentService(db, cache).create_shipment(user_id, payload)


@shipment_router.get("", response_model=List[ShipmentDetails])
def list_user_shipments(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    cache: CacheLayer = Depends(get_cache_layer),
):
    return ShipmentService(db, cache).get_user_shipments(user_id)


@shipment_router.get("/tracking/{tracking_number}", response_model=TrackingView)
def track_shipment(
    tracking_number: str,
    db: Session = Depends(get_db),
    cache: CacheLayer = Depends(get_cache_layer),
):
    """Public: no credential required."""
    return TrackingService(db, cache).track(tracking_number)


@shipment_router.get("/{shipment_id}", response_model=ShipmentDetails)
def get_shipment(
    shipment_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    cache: CacheLayer = Depends(get_cache_layer),
):
    return ShipmentService(db, cache).get_shipment(shipment_id, user_id=user_id)


@shipment_router.patch("/{shipment_id}/status", response_model=ShipmentDetails)
def update_shipment_status(
    shipment_id: int,
    payload: Dict[str, Any] = Body(...),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    cache: CacheLayer = Depends(get_cache_layer),
):
    return ShipmentService(db, cache).transition_status(shipment_id, payload, user_id=user_id)
