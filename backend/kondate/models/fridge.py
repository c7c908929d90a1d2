"""Fridge inventory models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .expiration import ExpireLevel, ExpireSource

# Older rows and clients write "LITTLE" for the "a little left" state
LEGACY_STATE_ALIASES = {"LITTLE": "FEW"}


def _normalize_state_token(value):
    if isinstance(value, str):
        token = value.strip().upper()
        return LEGACY_STATE_ALIASES.get(token, token)
    return value


class FridgeState(str, Enum):
    """Coarse stock level of a lot. Ordered NONE < FEW < HAVE."""

    NONE = "NONE"
    FEW = "FEW"
    HAVE = "HAVE"

    @classmethod
    def _missing_(cls, value):
        token = _normalize_state_token(value)
        if isinstance(token, str) and token in cls.__members__:
            return cls[token]
        return None

    @property
    def rank(self) -> int:
        return STATE_RANK[self.value]


class DraftFridgeState(str, Enum):
    """Fridge state seen by a draft item; UNKNOWN when no lot matches."""

    NONE = "NONE"
    FEW = "FEW"
    HAVE = "HAVE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value):
        token = _normalize_state_token(value)
        if isinstance(token, str) and token in cls.__members__:
            return cls[token]
        return None


STATE_RANK = {"NONE": 0, "FEW": 1, "HAVE": 2}


class FridgeLot(BaseModel):
    """One discrete inventory entry with its own expiration."""

    id: str
    user_id: str
    food_name_snapshot: str = ""
    category_id: str = ""
    category_label_snapshot: str = ""
    state: FridgeState = FridgeState.HAVE
    bought_at: datetime
    expire_at: datetime
    expire_source: ExpireSource = ExpireSource.CATEGORY
    memo: str = ""
    is_new: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("state", mode="before")
    @classmethod
    def _normalize_state(cls, v):
        if v is None or v == "":
            return FridgeState.HAVE
        return FridgeState(v)

    @field_validator("memo", "food_name_snapshot", "category_label_snapshot", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v


class FridgeLotView(FridgeLot):
    """Lot annotated for display."""

    remain_days: int
    expire_level: ExpireLevel


class AddFridgeLotRequest(BaseModel):
    """Request to add a lot to the fridge."""

    food_name: str = Field(..., min_length=1)
    category_id: str
    state: FridgeState = FridgeState.HAVE
    bought_at: Optional[datetime] = None
    memo: str = ""
    custom_expire_days: Optional[float] = None

    @field_validator("state", mode="before")
    @classmethod
    def _normalize_state(cls, v):
        return FridgeState(v) if v is not None else FridgeState.HAVE


class UpdateLotStateRequest(BaseModel):
    state: FridgeState

    @field_validator("state", mode="before")
    @classmethod
    def _normalize_state(cls, v):
        return FridgeState(v)


class UpdateMemoRequest(BaseModel):
    memo: str = ""


class ExpiringLotsResponse(BaseModel):
    """Lots inside the alert window."""

    within_days: int
    lots: list[FridgeLotView] = Field(default_factory=list)
    expired_count: int = 0
    expiring_count: int = 0
