"""Time helpers. Services take a `clock` so tests can pin "now"."""

from datetime import date, datetime, timedelta, timezone
from typing import Callable
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]

DAY_KEY_FORMAT = "%Y-%m-%d"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def local_today(clock: Clock, tz_name: str) -> date:
    """Calendar date of `clock()` in the given timezone."""
    return ensure_aware(clock()).astimezone(ZoneInfo(tz_name)).date()


def local_date(value: datetime, tz_name: str) -> date:
    return ensure_aware(value).astimezone(ZoneInfo(tz_name)).date()


def to_day_key(d: date) -> str:
    return d.strftime(DAY_KEY_FORMAT)


def parse_day_key(day_key: str) -> date:
    """Parse "YYYY-MM-DD". Raises ValueError on anything else."""
    return datetime.strptime(day_key, DAY_KEY_FORMAT).date()


def add_days(value, days: int):
    """Add whole days to a date or datetime."""
    return value + timedelta(days=int(days or 0))


def day_keys_from(start: date, days: int) -> list[str]:
    return [to_day_key(start + timedelta(days=i)) for i in range(days)]


def to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return ensure_aware(value).isoformat()


def parse_timestamp(value) -> datetime | None:
    """Read a timestamp column (ISO string or datetime) as an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    try:
        return ensure_aware(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError:
        return None
