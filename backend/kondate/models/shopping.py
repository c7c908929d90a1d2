"""Shopping draft and shopping list models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .fridge import DraftFridgeState
from .planning import MealKey, SlotKey


class Plan(str, Enum):
    """Subscription plan of a user."""

    FREE = "FREE"
    PRO = "PRO"


PLAN_RETENTION_DAYS: dict[Plan, int] = {
    Plan.FREE: 7,
    Plan.PRO: 90,
}


class UserPlan(BaseModel):
    plan: Plan = Plan.FREE
    retention_days: int = PLAN_RETENTION_DAYS[Plan.FREE]

    @classmethod
    def from_row(cls, row: Optional[dict]) -> "UserPlan":
        """Anything but an explicit PRO is treated as FREE."""
        plan = Plan.PRO if (row or {}).get("plan") == Plan.PRO.value else Plan.FREE
        return cls(plan=plan, retention_days=PLAN_RETENTION_DAYS[plan])


class DraftStatus(str, Enum):
    """DRAFT -> APPLIED or DRAFT -> ARCHIVED, never back."""

    DRAFT = "DRAFT"
    APPLIED = "APPLIED"
    ARCHIVED = "ARCHIVED"


class ShoppingItemStatus(str, Enum):
    TODO = "TODO"
    SKIP = "SKIP"
    SYNCED = "SYNCED"


class DraftSource(BaseModel):
    """One planned occurrence of an ingredient."""

    day_key: str
    meal_key: MealKey
    slot_key: SlotKey
    recipe_id: str
    recipe_name: str = ""
    raw_text: str = ""


class DraftSession(BaseModel):
    """Point-in-time proposal of a shopping list from planned meals."""

    id: str
    user_id: str
    status: DraftStatus = DraftStatus.DRAFT
    range_days: int = 2
    start_day_key: str = ""
    end_day_key: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    applied_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None


class DraftItem(BaseModel):
    """One proposed line, aggregated by ingredient name."""

    id: str
    session_id: str
    name: str
    sources: list[DraftSource] = Field(default_factory=list)
    fridge_state: DraftFridgeState = DraftFridgeState.UNKNOWN
    skip: bool = False
    category_id: Optional[str] = None
    category_label_snapshot: Optional[str] = None
    custom_expire_days: Optional[float] = None
    memo: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("fridge_state", mode="before")
    @classmethod
    def _fridge_state(cls, v):
        return DraftFridgeState(v) if v else DraftFridgeState.UNKNOWN

    @field_validator("memo", mode="before")
    @classmethod
    def _memo(cls, v):
        return v or ""


class ShoppingItem(BaseModel):
    """Durable to-buy entry."""

    id: str
    user_id: str
    name: str = ""
    memo: str = ""
    sources: list[DraftSource] = Field(default_factory=list)
    category_id: str = "custom"
    category_label_snapshot: str = ""
    custom_expire_days: Optional[float] = None
    skip: bool = False
    purchased: bool = False
    purchased_at: Optional[datetime] = None
    status: ShoppingItemStatus = ShoppingItemStatus.TODO
    skipped_at: Optional[datetime] = None
    synced_at: Optional[datetime] = None
    purge_at: Optional[datetime] = None
    synced_to_fridge: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_fields(cls, data):
        # Rows written before `skip` existed only carry `checked`
        if isinstance(data, dict):
            data = dict(data)
            if data.get("skip") is None:
                data["skip"] = bool(data.get("checked") or False)
            if not data.get("status"):
                data["status"] = ShoppingItemStatus.SKIP if data["skip"] else ShoppingItemStatus.TODO
            if not data.get("category_id"):
                data["category_id"] = "custom"
            for key in ("name", "memo", "category_label_snapshot"):
                if data.get(key) is None:
                    data[key] = ""
            for key in ("purchased", "synced_to_fridge"):
                data[key] = bool(data.get(key) or False)
            if data.get("sources") is None:
                data["sources"] = []
        return data

    @property
    def is_active(self) -> bool:
        return self.status != ShoppingItemStatus.SYNCED

    @property
    def pending_sync(self) -> bool:
        return self.is_active and not self.skip and not self.synced_to_fridge


# ============================================================================
# Requests / responses
# ============================================================================


class GenerateDraftRequest(BaseModel):
    """Window length in days, starting tomorrow. Defaults to the configured value."""

    range_days: Optional[int] = Field(None, ge=1)


class GenerateDraftResult(BaseModel):
    session_id: str
    item_count: int
    start_day_key: str
    end_day_key: str


class DraftSessionWithItems(BaseModel):
    session: DraftSession
    items: list[DraftItem]


class DraftItemSkipRequest(BaseModel):
    skip: bool


class MemoRequest(BaseModel):
    memo: str = ""


class CategoryRequest(BaseModel):
    """Category to use when the item later becomes a fridge lot."""

    category_id: str
    custom_expire_days: Optional[float] = None


class ApplyDraftResult(BaseModel):
    session_id: str
    created: int
    item_ids: list[str] = Field(default_factory=list)


class AddShoppingItemRequest(BaseModel):
    name: str = Field(..., min_length=1)
    category_id: str = "custom"
    category_label_snapshot: Optional[str] = None
    custom_expire_days: Optional[float] = None
    memo: str = ""
    sources: list[DraftSource] = Field(default_factory=list)


class PurchasedRequest(BaseModel):
    purchased: bool


class SkipRequest(BaseModel):
    skip: bool


class SyncRequest(BaseModel):
    """Restrict the sync to these ids; None syncs every pending item."""

    item_ids: Optional[list[str]] = None


class SyncResult(BaseModel):
    synced: int
    item_ids: list[str] = Field(default_factory=list)
    lot_ids: list[str] = Field(default_factory=list)


class ShoppingSummary(BaseModel):
    active_count: int = 0
    skip_count: int = 0
    bought_count: int = 0
    unbought_count: int = 0
    pending_sync_count: int = 0


class ShoppingNotes(BaseModel):
    """Free-text note for daily goods / seasonings (users/{uid}.shopping_note)."""

    note: str = ""


class BulkUpdateResult(BaseModel):
    updated: int = 0


class BulkDeleteResult(BaseModel):
    deleted: int = 0
