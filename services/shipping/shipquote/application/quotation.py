from decimal import Decimal
from typing import Any, List, Optional

from pydantic import TypeAdapter
from sqlalchemy.orm import Session
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from shipquote.core_settings import Settings, get_settings
from shipquote.domain.models import Tariff
from shipquote.infrastructure.cache import CacheLayer
from shipquote.infrastructure.repository import TariffRepository
from . import pricing
from .errors import DependencyFailure, DependencyTimeout, TariffNotFound
from .schemas import QuotationResult, QuoteRequest, TariffRead
from .validation import parse

_quotation_adapter = TypeAdapter(QuotationResult)


def _is_transient(exc: BaseException) -> bool:
    # Timeouts are not retried
    return isinstance(exc, DependencyFailure) and not isinstance(exc, DependencyTimeout)


class TariffService:
    """Read-only tariff lookup; transient storage errors are retried with backoff."""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.repo = TariffRepository(db)
        self.settings = settings or get_settings()

    def _retrying(self) -> Retrying:
        backoff = self.settings.LOOKUP_RETRY_BACKOFF_SECONDS
        return Retrying(
            stop=stop_after_attempt(self.settings.LOOKUP_RETRY_ATTEMPTS),
            wait=wait_exponential(multiplier=backoff, min=backoff, max=backoff * 8),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )

    def find_rate(self, origin: str, destination: str) -> Tariff:
        tariff = self._retrying()(self.repo.find_rate, origin, destination)
        if tariff is None:
            raise TariffNotFound(f"No tariff found for route {origin} -> {destination}")
        return tariff

    def list_all(self) -> List[TariffRead]:
        tariffs = self._retrying()(self.repo.list_all)
        return [TariffRead.model_validate(t) for t in tariffs]


class QuotationService:
    def __init__(self, db: Session, cache: CacheLayer, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.tariffs = TariffService(db, self.settings)
        self.cache = cache

    def get_quotation(self, payload: Any) -> QuotationResult:
        request = parse(QuoteRequest, payload)
        key = CacheLayer.quotation_key(
            request.origin,
            request.destination,
            *(value.normalize() for value in (request.weight, request.length, request.width, request.height)),
        )
        return self.cache.read_through(
            key,
            _quotation_adapter,
            self.settings.CACHE_TTL_QUOTATION,
            lambda: self._compute(request),
        )

    def _compute(self, request: QuoteRequest) -> QuotationResult:
        tariff = self.tariffs.find_rate(request.origin, request.destination)
        volume_weight = pricing.volume_weight(
            request.length, request.width, request.height, self.settings.VOLUME_WEIGHT_DIVISOR
        )
        selected_weight = pricing.charged_weight(request.weight, volume_weight)
        price_per_kg = Decimal(tariff.price_per_kg)
        return QuotationResult(
            price=pricing.price(price_per_kg, selected_weight),
            volume_weight=volume_weight,
            selected_weight=selected_weight,
            origin=tariff.origin,
            destination=tariff.destination,
            price_per_kg=price_per_kg,
        )
