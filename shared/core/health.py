"""
Health and metrics endpoints.

Response layout follows the "Health Check Response Format for HTTP APIs"
draft: an overall ``status`` plus one entry per checked component.
Dependencies are passed in as zero-argument probe callables so each
service decides what "ready" means.
"""

import logging
import os
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

import psutil
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

Probe = Callable[[], None]


class HealthStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ServiceHealth:
    """
    Liveness, readiness and metrics endpoints for one service.

    ``critical`` probes turn readiness into FAIL when they raise;
    ``optional`` probes only degrade it to WARN.
    """

    def __init__(
        self,
        service_name: str,
        version: str = "1.0.0",
        critical: Optional[Dict[str, Probe]] = None,
        optional: Optional[Dict[str, Probe]] = None,
    ):
        self.service_name = service_name
        self.version = version
        self.critical = critical or {}
        self.optional = optional or {}
        self.start_time = time.time()
        self.checks_performed = 0

    def create_health_router(self) -> APIRouter:
        router = APIRouter(tags=["health"])

        @router.get("/health", status_code=status.HTTP_200_OK)
        async def health_check() -> Dict[str, Any]:
            """Lightweight liveness check used by load balancers."""
            return {
                "status": HealthStatus.PASS,
                "service": self.service_name,
                "version": self.version,
                "releaseId": os.getenv("RELEASE_ID", "unknown"),
                "timestamp": _now(),
            }

        @router.get("/health/live", status_code=status.HTTP_200_OK)
        async def liveness() -> Dict[str, Any]:
            return {"status": "alive"}

        @router.get("/health/ready")
        def readiness() -> JSONResponse:
            checks = self.run_checks()
            overall = self.overall_status(checks)
            code = status.HTTP_503_SERVICE_UNAVAILABLE if overall == HealthStatus.FAIL else status.HTTP_200_OK
            return JSONResponse(
                status_code=code,
                content={
                    "status": overall,
                    "version": self.version,
                    "serviceId": self.service_name,
                    "checks": checks,
                    "timestamp": _now(),
                },
            )

        @router.get("/metrics")
        async def metrics() -> Dict[str, Any]:
            process = psutil.Process()
            memory = process.memory_info()
            return {
                "service": self.service_name,
                "version": self.version,
                "uptime_seconds": time.time() - self.start_time,
                "checks_performed": self.checks_performed,
                "timestamp": _now(),
                "system": {
                    "memory_rss_bytes": memory.rss,
                    "memory_vms_bytes": memory.vms,
                    "cpu_percent": process.cpu_percent(),
                    "num_threads": process.num_threads(),
                },
            }

        return router

    def run_checks(self) -> Dict[str, Dict[str, Any]]:
        self.checks_performed += 1
        checks = {}
        for name, probe in self.critical.items():
            checks[name] = self._probe(probe, HealthStatus.FAIL)
        for name, probe in self.optional.items():
            checks[name] = self._probe(probe, HealthStatus.WARN)
        return checks

    def _probe(self, probe: Probe, failure: HealthStatus) -> Dict[str, Any]:
        start_time = time.perf_counter()
        try:
            probe()
        except Exception as exc:
            logger.warning(f"Health probe failed: {exc}")
            return {"status": failure, "output": str(exc), "time": _now()}
        return {
            "status": HealthStatus.PASS,
            "observedValue": f"{(time.perf_counter() - start_time) * 1000:.2f}",
            "observedUnit": "ms",
            "time": _now(),
        }

    @staticmethod
    def overall_status(checks: Dict[str, Dict[str, Any]]) -> HealthStatus:
        statuses = [check["status"] for check in checks.values()]
        if HealthStatus.FAIL in statuses:
            return HealthStatus.FAIL
        if HealthStatus.WARN in statuses:
            return HealthStatus.WARN
        return HealthStatus.PASS
