"""
Structured JSON logging for the shipping services.

Every record is rendered as one JSON document carrying the service
identity, the request context (request / correlation / user id) and,
when present, exception details and custom fields passed through
``extra={"extra_fields": {...}}``.
"""

import json
import logging
import logging.handlers
import os
import re
import sys
import time
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)


def _request_context() -> Dict[str, str]:
    context = {
        "request_id": request_id_var.get(),
        "correlation_id": correlation_id_var.get(),
        "user_id": user_id_var.get(),
    }
    return {key: value for key, value in context.items() if value}


class StructuredFormatter(logging.Formatter):
    """Render log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "@timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": os.getenv("SERVICE_NAME", "unknown-service"),
            "environment": os.getenv("ENVIRONMENT", "development"),
            "version": os.getenv("SERVICE_VERSION", "1.0.0"),
            "location": {
                "module": record.module,
                "function": record.funcName,
                "line": record.lineno,
            },
        }

        trace = _request_context()
        if trace:
            log_obj["trace"] = trace

        if record.exc_info and record.exc_info[0] is not None:
            log_obj["error"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "stacktrace": traceback.format_exception(*record.exc_info),
            }

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_obj["custom"] = extra_fields

        return json.dumps(log_obj, default=str)


class SecurityFilter(logging.Filter):
    """Redact credential values (``password=...``, bearer tokens) from messages."""

    SENSITIVE_FIELDS = ("password", "token", "secret", "authorization", "api_key")
    _pattern = re.compile(
        r"(?i)\b(" + "|".join(SENSITIVE_FIELDS) + r")(\s*[=:]\s*)([^\s,;]+)"
    )
    _bearer = re.compile(r"(?i)bearer\s+[A-Za-z0-9\-_.]+")

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self._bearer.sub("Bearer ***REDACTED***", message)
        redacted = self._pattern.sub(r"\1\2***REDACTED***", redacted)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(
    service_name: str,
    level: str = "INFO",
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger for a service.

    Args:
        service_name: Name stamped on every record
        level: Log level name (DEBUG, INFO, WARNING, ...)
        log_file: Optional path of a rotating log file
    """
    os.environ["SERVICE_NAME"] = service_name

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers = []

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(
            logging.handlers.RotatingFileHandler(log_file, maxBytes=10485760, backupCount=5)
        )

    formatter = StructuredFormatter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(SecurityFilter())
        root_logger.addHandler(handler)

    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    root_logger.info(
        "Logging initialized",
        extra={"extra_fields": {"service": service_name, "level": level, "file": bool(log_file)}},
    )


class LoggerAdapter(logging.LoggerAdapter):
    """Inject the current request context into ``extra``."""

    def process(self, msg, kwargs):
        extra = kwargs.get("extra") or {}
        extra.update(_request_context())
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str) -> LoggerAdapter:
    return LoggerAdapter(logging.getLogger(name), {})


def set_request_context(
    request_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> None:
    if request_id:
        request_id_var.set(request_id)
    if correlation_id:
        correlation_id_var.set(correlation_id)
    if user_id:
        user_id_var.set(str(user_id))


def generate_request_id() -> str:
    return str(uuid.uuid4())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its duration and echo ``X-Request-ID``."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_context(
            request_id=request_id,
            correlation_id=request.headers.get("X-Correlation-ID"),
        )
        logger = get_logger(__name__)
        fields = {"method": request.method, "path": request.url.path}

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            fields["duration_ms"] = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                exc_info=True,
                extra={"extra_fields": fields},
            )
            raise

        fields["status_code"] = response.status_code
        fields["duration_ms"] = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Request completed: {request.method} {request.url.path}",
            extra={"extra_fields": fields},
        )
        response.headers["X-Request-ID"] = request_id
        return response
