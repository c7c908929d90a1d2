"""Health check endpoints."""

import platform
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from kondate.config import get_settings
from kondate.services.healthcheck import VERSION, HealthStatus, get_health_checker

router = APIRouter()

GB = 1024 ** 3


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
async def health_check():
    return {"status": "healthy", "version": VERSION, "timestamp": _timestamp()}


@router.get("/health/detailed")
async def detailed_health():
    """Host metrics plus the settings that shape planning and alerts."""
    settings = get_settings()
    memory = psutil.virtual_memory()
    disk = psutil.disk_usage("/")

    return {
        "status": "healthy",
        "version": VERSION,
        "timestamp": _timestamp(),
        "environment": settings.environment,
        "timezone": settings.timezone,
        "features": {
            "expiry_alerts": settings.feature_expiry_alerts,
            "stale_draft_archiving": settings.feature_stale_draft_archiving,
        },
        "system": {
            "platform": platform.system(),
            "python": platform.python_version(),
            "cpu_percent": psutil.cpu_percent(interval=0.1),
            "memory_percent": memory.percent,
            "memory_total_gb": round(memory.total / GB, 2),
            "disk_percent": disk.percent,
            "disk_free_gb": round(disk.free / GB, 2),
        },
    }


@router.get("/health/services")
async def services_health():
    """Every dependency check (database, ntfy, scheduler)."""
    report = await get_health_checker().run_all_checks()
    return report.to_dict()


@router.get("/health/ready")
async def readiness_check():
    """200 while the critical checks pass, 503 otherwise."""
    report = await get_health_checker().run_all_checks()
    body = {"ready": report.ready, "status": report.status.value}
    if not report.ready:
        failing = [c.name for c in report.checks if c.critical and c.status == HealthStatus.UNHEALTHY]
        return JSONResponse(status_code=503, content={**body, "failing": failing})
    return body


@router.get("/health/live")
async def liveness_check():
    return {"live": True, "timestamp": _timestamp()}
