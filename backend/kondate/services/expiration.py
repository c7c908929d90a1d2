"""
Expiration policy service.

Maps a food category to a default shelf life, computes lot expiry dates,
and classifies remaining days into display bands.
"""

import logging
import math
from datetime import date, datetime
from typing import Optional

from supabase import Client

from kondate.config import get_settings
from kondate.errors import InvalidCustomDuration, UnknownCategory
from kondate.models.expiration import (
    CUSTOM_CATEGORY_ID,
    DEFAULT_RULE_BASIS,
    AppConfig,
    CategoryExpireRule,
    ExpireComputation,
    ExpireLevel,
    ExpireSource,
)
from kondate.services.clock import Clock, add_days, local_date, local_today, utc_now
from kondate.services.supabase import TABLES, first_row, get_supabase_client

logger = logging.getLogger(__name__)


def validate_custom_days(value, max_days: Optional[int] = None) -> int:
    """
    Whole days for a custom-category lot.

    Fractions are truncated. Missing, non-numeric, non-finite and
    non-positive values raise InvalidCustomDuration, as do values above
    `max_days` (default: settings.custom_expire_days_max).
    """
    if value is None or isinstance(value, bool):
        raise InvalidCustomDuration(value)
    try:
        days = float(value)
    except (TypeError, ValueError):
        raise InvalidCustomDuration(value)
    if not math.isfinite(days) or int(days) <= 0:
        raise InvalidCustomDuration(value)
    if max_days is None:
        max_days = get_settings().custom_expire_days_max
    if int(days) > max_days:
        raise InvalidCustomDuration(value, max_days=max_days)
    return int(days)


def expire_at_for_rule(bought_at, rule: CategoryExpireRule, custom_days=None) -> ExpireComputation:
    """Apply a rule (or the user's days for `custom`) to a purchase date."""
    if rule.is_custom:
        days = validate_custom_days(custom_days)
        source = ExpireSource.USER
    else:
        days = rule.default_expire_days
        source = ExpireSource.CATEGORY

    return ExpireComputation(
        bought_at=bought_at,
        expire_at=add_days(bought_at, days),
        expire_source=source,
        rule=rule,
    )


def get_expire_level(remain_days: int) -> ExpireLevel:
    """Display band for remaining days."""
    if remain_days <= 0:
        return ExpireLevel.DANGER
    if remain_days <= 2:
        return ExpireLevel.WARN
    if remain_days <= 5:
        return ExpireLevel.CAUTION
    return ExpireLevel.SAFE


def rule_from_row(row: dict) -> CategoryExpireRule:
    return CategoryExpireRule(
        id=row["id"],
        label=str(row.get("label") or row["id"]),
        default_expire_days=int(row.get("default_expire_days") or 0),
        basis=str(row.get("basis") or DEFAULT_RULE_BASIS),
        order=int(row.get("order") if row.get("order") is not None else 9999),
    )


class ExpirationService:
    """Expiration rules and expiry date computation."""

    def __init__(self, client: Optional[Client] = None, clock: Clock = utc_now):
        self.client = client or get_supabase_client()
        self.clock = clock
        self.settings = get_settings()

    async def list_rules(self) -> list[CategoryExpireRule]:
        """All category rules, sorted by their `order`."""
        result = self.client.table(TABLES["category_rules"]).select("*").execute()
        rules = [rule_from_row(row) for row in result.data or []]
        rules.sort(key=lambda r: r.order)
        return rules

    async def get_rule(self, category_id: str) -> Optional[CategoryExpireRule]:
        if not category_id:
            return None
        result = (
            self.client.table(TABLES["category_rules"])
            .select("*")
            .eq("id", category_id)
            .limit(1)
            .execute()
        )
        row = first_row(result)
        return rule_from_row(row) if row else None

    async def resolve(self, category_id: str) -> CategoryExpireRule:
        """Rule for a category, or UnknownCategory."""
        rule = await self.get_rule(category_id)
        if rule is None:
            raise UnknownCategory(category_id)
        return rule

    async def compute_expire_at(
        self,
        bought_at: datetime | date,
        category_id: str,
        custom_days=None,
    ) -> ExpireComputation:
        """
        Expiry for a lot bought at `bought_at`.

        Raises:
            UnknownCategory: no rule for `category_id`
            InvalidCustomDuration: `custom` without positive, finite days
        """
        if category_id == CUSTOM_CATEGORY_ID:
            # Validate before the lookup so a bad duration is reported as such
            validate_custom_days(custom_days)
        rule = await self.resolve(category_id)
        return expire_at_for_rule(bought_at, rule, custom_days)

    def today(self) -> date:
        return local_today(self.clock, self.settings.timezone)

    def calc_remain_days(self, expire_at: datetime | date, today: Optional[date] = None) -> int:
        """Calendar days from today until the expiry date (time of day ignored)."""
        today = today or self.today()
        if isinstance(expire_at, datetime):
            end = local_date(expire_at, self.settings.timezone)
        else:
            end = expire_at
        return (end - today).days

    def get_expire_level(self, remain_days: int) -> ExpireLevel:
        return get_expire_level(remain_days)

    async def get_app_config(self) -> AppConfig:
        """The "main" app config row (disclaimer shown on the fridge screen)."""
        result = (
            self.client.table(TABLES["app_configs"])
            .select("*")
            .eq("id", "main")
            .limit(1)
            .execute()
        )
        row = first_row(result) or {}
        return AppConfig(cold_storage_disclaimer=str(row.get("cold_storage_disclaimer") or ""))


# Singleton
_expiration_service: Optional[ExpirationService] = None


def get_expiration_service() -> ExpirationService:
    """Get expiration service singleton."""
    global _expiration_service
    if _expiration_service is None:
        _expiration_service = ExpirationService()
    return _expiration_service
