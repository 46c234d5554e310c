from typing import Optional

from fastapi import Depends, Header, Request, Response

from shared.core import set_request_context
from shipquote.application.errors import RateLimited, Unauthorized
from shipquote.auth_local import CredentialService
from shipquote.core_settings import get_settings
from shipquote.infrastructure.cache import (
    CacheLayer,
    CacheStore,
    FixedWindowLimiter,
    TokenRevocationSet,
    get_cache_store,
)

BEARER_PREFIX = "Bearer "


def get_cache_layer(store: CacheStore = Depends(get_cache_store)) -> CacheLayer:
    return CacheLayer(store)


def get_credentials(store: CacheStore = Depends(get_cache_store)) -> CredentialService:
    settings = get_settings()
    return CredentialService(TokenRevocationSet(store, fail_open=settings.TOKEN_REVOCATION_FAIL_OPEN), settings)


def bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthorized("Missing token")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthorized("Missing token")
    return token


def get_current_user_id(
    token: str = Depends(bearer_token),
    credentials: CredentialService = Depends(get_credentials),
) -> int:
    user_id = credentials.verify_token(token)
    set_request_context(user_id=str(user_id))
    return user_id


class RateLimit:
    """Fixed-window limit per client address for one bucket of routes."""

    def __init__(self, bucket: str, limit_setting: str):
        self.bucket = bucket
        self.limit_setting = limit_setting

    def __call__(self, request: Request, response: Response, store: CacheStore = Depends(get_cache_store)) -> None:
        settings = get_settings()
        limit = getattr(settings, self.limit_setting)
        window = settings.RATE_LIMIT_WINDOW_SECONDS
        client = request.client.host if request.client else "unknown"

        allowed, remaining, reset = FixedWindowLimiter(store).hit(f"{self.bucket}:{client}", limit, window)
        if not allowed:
            raise RateLimited(retry_after=reset, limit=limit)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(reset)


auth_rate_limit = RateLimit("auth", "RATE_LIMIT_AUTH")
default_rate_limit = RateLimit("default", "RATE_LIMIT_DEFAULT")
