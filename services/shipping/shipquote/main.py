"""
Shipping service: quotations, shipments and public tracking.
"""

import os
import subprocess
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.core import RequestLoggingMiddleware, ServiceHealth, get_logger, setup_logging
from shipquote.api.routes import auth_router, quotation_router, shipment_router
from shipquote.application.errors import ShippingError, ValidationError
from shipquote.infrastructure import db
from shipquote.infrastructure.cache import get_cache_store

SERVICE_NAME = "shipping-service"
SERVICE_VERSION = os.getenv("SERVICE_VERSION", "1.0.0")
SERVICE_DESCRIPTION = "Parcel quotation, shipment lifecycle and tracking"

setup_logging(service_name=SERVICE_NAME, level=os.getenv("LOG_LEVEL", "INFO"), log_file=os.getenv("LOG_FILE"))
logger = get_logger(__name__)


def run_migrations() -> None:
    result = subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=os.path.join(os.path.dirname(__file__), ".."),
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        logger.warning(f"Migration output: {result.stderr}")
    else:
        logger.info("Database migrations completed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {SERVICE_NAME} version {SERVICE_VERSION}")
    if os.getenv("RUN_MIGRATIONS", "true").lower() == "true":
        run_migrations()
    db.init_models()
    logger.info(f"{SERVICE_NAME} started successfully")
    yield
    logger.info(f"Shutting down {SERVICE_NAME}")


app = FastAPI(
    title=SERVICE_NAME,
    description=SERVICE_DESCRIPTION,
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url=None,
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(ShippingError)
async def shipping_error_handler(request: Request, exc: ShippingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = exc.errors()[0] if exc.errors() else {"loc": ("body",), "msg": "Invalid request"}
    field = ".".join(str(part) for part in error["loc"] if part not in ("body", "path", "query")) or "body"
    wrapped = ValidationError(field, f"{field}: {error['msg']}")
    return JSONResponse(status_code=wrapped.status_code, content=wrapped.to_dict())


health_service = ServiceHealth(
    SERVICE_NAME,
    SERVICE_VERSION,
    critical={"database:connectivity": db.ping},
    optional={"cache:connectivity": lambda: get_cache_store().ping()},
)
app.include_router(health_service.create_health_router())

app.include_router(auth_router)
app.include_router(quotation_router)
app.include_router(shipment_router)


@app.get("/")
async def root():
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "status": "running",
        "docs": "/api/docs",
    }
