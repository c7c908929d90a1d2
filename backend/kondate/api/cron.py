"""
Cron endpoints: the scheduled jobs, callable from a system crontab.

    0 8 * * *  curl -s -H "X-Cron-Secret: $CRON_SECRET" http://localhost:8000/api/cron/expiry-alerts
    10 0 * * * curl -s -H "X-Cron-Secret: $CRON_SECRET" http://localhost:8000/api/cron/archive-drafts
"""

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Header

from kondate.config import get_settings
from kondate.jobs.drafts import archive_stale_drafts
from kondate.jobs.expiry import send_expiry_alerts

router = APIRouter()
logger = logging.getLogger(__name__)

LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


def require_cron_auth(
    request: Request,
    authorization: str | None = Header(None),
    x_cron_secret: str | None = Header(None),
) -> None:
    """
    Accept the secret as a Bearer token or X-Cron-Secret header.

    Requests from the host itself and unconfigured (dev) setups pass without it.
    """
    secret = get_settings().cron_secret
    if not secret:
        return
    if authorization == f"Bearer {secret}" or x_cron_secret == secret:
        return

    host = request.headers.get("host", "").rsplit(":", 1)[0]
    forwarded = request.headers.get("x-forwarded-for", "")
    if host in LOCAL_HOSTS or forwarded in LOCAL_HOSTS:
        return

    logger.warning(f"Rejected cron call to {request.url.path} from {host or 'unknown host'}")
    raise HTTPException(status_code=401, detail="Unauthorized")


async def _run(job_name: str) -> dict:
    # Looked up per call so the jobs can be patched in tests
    jobs = {
        "expiry-alerts": send_expiry_alerts,
        "archive-drafts": archive_stale_drafts,
    }
    if job_name not in jobs:
        raise HTTPException(status_code=404, detail=f"Unknown job: {job_name}")

    logger.info(f"Running {job_name} (cron trigger)")
    result = await jobs[job_name]()
    return {"success": True, "job": job_name, **result, "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/expiry-alerts", dependencies=[Depends(require_cron_auth)])
async def cron_expiry_alerts():
    """Push expiring-lot summaries via ntfy."""
    return await _run("expiry-alerts")


@router.get("/archive-drafts", dependencies=[Depends(require_cron_auth)])
async def cron_archive_drafts():
    """Archive DRAFT shopping sessions whose window has passed."""
    return await _run("archive-drafts")


@router.post("/trigger/{job_name}", dependencies=[Depends(require_cron_auth)])
async def trigger_job(job_name: str):
    return await _run(job_name)
