"""Cross-service plumbing: structured logging and health endpoints."""

from .health import HealthStatus, ServiceHealth
from .logging_config import (
    LoggerAdapter,
    RequestLoggingMiddleware,
    generate_request_id,
    get_logger,
    set_request_context,
    setup_logging,
)

__all__ = [
    "HealthStatus",
    "ServiceHealth",
    "LoggerAdapter",
    "RequestLoggingMiddleware",
    "generate_request_id",
    "get_logger",
    "set_request_context",
    "setup_logging",
]
