"""
Health checks for the kondate backend.

A report is a list of named checks. "api" and "database" are critical: the
service cannot plan or shop without them, so readiness depends on them only.
Notifications and the scheduler are optional features and can only degrade
the report.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from kondate.config import get_settings
from kondate.models.expiration import CUSTOM_CATEGORY_ID

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

CRITICAL_CHECKS = ("api", "database")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class CheckResult:
    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: float = 0
    details: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_now)

    @property
    def critical(self) -> bool:
        return self.name in CRITICAL_CHECKS


@dataclass
class HealthReport:
    status: HealthStatus
    checks: list[CheckResult]
    timestamp: datetime = field(default_factory=_now)
    version: str = VERSION

    @property
    def healthy_count(self) -> int:
        return len([c for c in self.checks if c.status == HealthStatus.HEALTHY])

    @property
    def total_count(self) -> int:
        return len(self.checks)

    @property
    def ready(self) -> bool:
        """Every critical check that ran is at least degraded."""
        return not any(c.critical and c.status == HealthStatus.UNHEALTHY for c in self.checks)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "version": self.version,
            "timestamp": self.timestamp.isoformat(),
            "summary": f"{self.healthy_count}/{self.total_count} checks passing",
            "ready": self.ready,
            "checks": [
                {
                    "name": check.name,
                    "status": check.status.value,
                    "critical": check.critical,
                    "message": check.message,
                    "latency_ms": round(check.latency_ms, 2),
                    "details": check.details,
                }
                for check in self.checks
            ],
        }


def overall_status(results: list[CheckResult]) -> HealthStatus:
    """A failed critical check is fatal; anything else short of healthy degrades."""
    if any(c.critical and c.status == HealthStatus.UNHEALTHY for c in results):
        return HealthStatus.UNHEALTHY
    if all(c.status == HealthStatus.HEALTHY for c in results):
        return HealthStatus.HEALTHY
    return HealthStatus.DEGRADED


class HealthChecker:
    """Runs the named checks; `client` overrides the shared Supabase client."""

    def __init__(self, client=None):
        self.client = client

    def registry(self) -> dict[str, Callable[[], Awaitable[CheckResult]]]:
        return {
            "api": self.check_api,
            "database": self.check_database,
            "notifications": self.check_notifications,
            "scheduler": self.check_scheduler,
        }

    async def run_all_checks(self) -> HealthReport:
        registry = self.registry()
        outcomes = await asyncio.gather(
            *(check() for check in registry.values()),
            return_exceptions=True,
        )

        results = []
        for name, outcome in zip(registry, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Health check {name} raised: {outcome}")
                outcome = CheckResult(name=name, status=HealthStatus.UNHEALTHY, message=str(outcome))
            results.append(outcome)

        return HealthReport(status=overall_status(results), checks=results)

    async def check_api(self) -> CheckResult:
        return CheckResult(name="api", status=HealthStatus.HEALTHY, message="Responding")

    async def check_database(self) -> CheckResult:
        """
        Read the expiration rules and the app config row.

        Without rules no lot can get an expiry date, so an empty rule table
        (or one missing the custom category) is reported as degraded.
        """
        start = time.monotonic()
        try:
            from kondate.services.supabase import TABLES, get_supabase_client

            client = self.client or get_supabase_client()
            rules = client.table(TABLES["category_rules"]).select("id").execute().data or []
            config = client.table(TABLES["app_configs"]).select("id").eq("id", "main").limit(1).execute().data
        except Exception as e:
            return CheckResult(
                name="database",
                status=HealthStatus.UNHEALTHY,
                message=f"Database error: {e}",
                latency_ms=(time.monotonic() - start) * 1000,
                details={"connected": False},
            )

        rule_ids = {row["id"] for row in rules}
        details = {
            "connected": True,
            "category_rules": len(rule_ids),
            "custom_rule": CUSTOM_CATEGORY_ID in rule_ids,
            "app_config": bool(config),
        }
        if not rule_ids:
            status, message = HealthStatus.DEGRADED, "Connected, but no category rules seeded"
        elif CUSTOM_CATEGORY_ID not in rule_ids:
            status, message = HealthStatus.DEGRADED, "Connected, but the custom category is missing"
        else:
            status, message = HealthStatus.HEALTHY, f"Connected, {len(rule_ids)} category rules"

        return CheckResult(
            name="database",
            status=status,
            message=message,
            latency_ms=(time.monotonic() - start) * 1000,
            details=details,
        )

    async def check_notifications(self) -> CheckResult:
        """ntfy is only configured, never called, so checks stay side-effect free."""
        settings = get_settings()
        alerts_on = settings.feature_expiry_alerts
        details = {"topic_set": bool(settings.ntfy_topic), "expiry_alerts": alerts_on}

        if not alerts_on:
            return CheckResult(
                name="notifications",
                status=HealthStatus.HEALTHY,
                message="Expiry alerts disabled",
                details=details,
            )
        if not settings.ntfy_topic:
            return CheckResult(
                name="notifications",
                status=HealthStatus.DEGRADED,
                message="Expiry alerts enabled but NTFY_TOPIC is missing",
                details=details,
            )
        return CheckResult(
            name="notifications",
            status=HealthStatus.HEALTHY,
            message=f"Alerts go to {settings.ntfy_server}",
            details=details,
        )

    async def check_scheduler(self) -> CheckResult:
        from kondate.jobs.scheduler import get_scheduler_status

        status = get_scheduler_status()
        if not status["running"]:
            return CheckResult(
                name="scheduler",
                status=HealthStatus.DEGRADED,
                message="Scheduler not running (use /api/cron instead)",
                details=status,
            )
        return CheckResult(
            name="scheduler",
            status=HealthStatus.HEALTHY,
            message=", ".join(job["id"] for job in status["jobs"]) or "No jobs enabled",
            details=status,
        )


# Singleton
_health_checker: Optional[HealthChecker] = None


def get_health_checker() -> HealthChecker:
    global _health_checker
    if _health_checker is None:
        _health_checker = HealthChecker()
    return _health_checker
