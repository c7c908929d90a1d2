#!/usr/bin/env python3
"""
Quick health check script.

Run from a shell on the host, the scheduler check always reports DEGRADED
(the scheduler lives in the API process), so it is skipped unless asked for.

Usage:
    python check_health.py                # Database and notification checks
    python check_health.py --json         # Output as JSON
    python check_health.py --scheduler    # Include the scheduler check
    python check_health.py --strict       # Exit 1 on DEGRADED too
"""

import asyncio
import argparse
import json
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from kondate.services.healthcheck import (
    HealthReport,
    HealthStatus,
    get_health_checker,
    overall_status,
)


COLORS = {
    HealthStatus.HEALTHY: "\033[92m",    # Green
    HealthStatus.DEGRADED: "\033[93m",   # Yellow
    HealthStatus.UNHEALTHY: "\033[91m",  # Red
    HealthStatus.UNKNOWN: "\033[90m",    # Gray
}
RESET = "\033[0m"


async def collect(include_scheduler: bool) -> HealthReport:
    checker = get_health_checker()
    checks = [await checker.check_database(), await checker.check_notifications()]
    if include_scheduler:
        checks.append(await checker.check_scheduler())
    return HealthReport(status=overall_status(checks), checks=checks)


async def main():
    parser = argparse.ArgumentParser(description="Check kondate backend health")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--scheduler", action="store_true", help="Include the scheduler check")
    parser.add_argument("--strict", action="store_true", help="Treat DEGRADED as failure")
    args = parser.parse_args()

    report = await collect(args.scheduler)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        print("\n" + "=" * 60)
        print("  KONDATE HEALTH CHECK")
        print(f"  Version: {report.version}")
        print(f"  Time: {report.timestamp.isoformat()}")
        print("=" * 60 + "\n")

        color = COLORS.get(report.status, "")
        print(f"  Overall: {color}{report.status.value.upper()}{RESET}")
        print(f"  Summary: {report.healthy_count}/{report.total_count} checks passing\n")

        print("  " + "-" * 56)
        print(f"  {'Service':<16} {'Status':<12} {'Latency':<10} Message")
        print("  " + "-" * 56)
        for check in report.checks:
            color = COLORS.get(check.status, "")
            status = f"{color}{check.status.value:<12}{RESET}"
            latency = f"{check.latency_ms:.0f}ms" if check.latency_ms else "-"
            print(f"  {check.name:<16} {status} {latency:<10} {check.message}")
        print("  " + "-" * 56 + "\n")

    if report.status == HealthStatus.UNHEALTHY:
        sys.exit(1)
    if args.strict and report.status == HealthStatus.DEGRADED:
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    asyncio.run(main())
