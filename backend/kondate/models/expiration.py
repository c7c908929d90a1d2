"""Expiration policy models."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


CUSTOM_CATEGORY_ID = "custom"
CUSTOM_CATEGORY_LABEL = "カスタム"
DEFAULT_RULE_BASIS = "USDA_FDA_4C"


class ExpireSource(str, Enum):
    """Where a lot's expire_at came from."""

    CATEGORY = "CATEGORY"
    USER = "USER"


class ExpireLevel(str, Enum):
    """Display band derived from remaining days."""

    DANGER = "DANGER"  # expired or expires today
    WARN = "WARN"  # 1-2 days
    CAUTION = "CAUTION"  # 3-5 days
    SAFE = "SAFE"


class CategoryExpireRule(BaseModel):
    """Default shelf life for a food category (reference data)."""

    id: str
    label: str = ""
    default_expire_days: int = Field(0, ge=0)
    basis: str = DEFAULT_RULE_BASIS
    order: int = 9999

    @property
    def is_custom(self) -> bool:
        return self.id == CUSTOM_CATEGORY_ID


class ExpireComputation(BaseModel):
    """Result of resolving a category and computing an expiry."""

    bought_at: datetime | date
    expire_at: datetime | date
    expire_source: ExpireSource
    rule: CategoryExpireRule


class ComputeExpireRequest(BaseModel):
    """Request to preview an expiry for a category."""

    category_id: str
    bought_at: Optional[datetime] = None
    custom_expire_days: Optional[float] = None


class ComputeExpireResponse(BaseModel):
    """Previewed expiry with its display band."""

    category_id: str
    category_label: str
    bought_at: datetime
    expire_at: datetime
    expire_source: ExpireSource
    remain_days: int
    level: ExpireLevel


class AppConfig(BaseModel):
    """appConfigs/main."""

    cold_storage_disclaimer: str = ""
