"""Meal plan and daily set (template) models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Iterator, Optional

from pydantic import AliasChoices, BaseModel, Field, model_validator


class MealKey(str, Enum):
    """Meals of a day, in eating order."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


class SlotKey(str, Enum):
    """Meal-component roles, in serving order."""

    STAPLE = "staple"
    MAIN = "main"
    SIDE = "side"
    SOUP = "soup"


MEAL_ORDER: list[MealKey] = [MealKey.BREAKFAST, MealKey.LUNCH, MealKey.DINNER]
SLOT_ORDER: list[SlotKey] = [SlotKey.STAPLE, SlotKey.MAIN, SlotKey.SIDE, SlotKey.SOUP]

# Fixed day key of the per-user "zubora" (zero-effort) preset
PRESET_DAY_KEY = "zubora"


def normalize_slot_key(value: Optional[str]) -> Optional[SlotKey]:
    """Map recipe category spellings (mainDish, side_dish, ...) to a slot."""
    if not value:
        return None
    c = str(value).strip().lower()
    for slot in SLOT_ORDER:
        if c == slot.value or c == f"{slot.value}dish":
            return slot
    for slot in SLOT_ORDER:
        if slot.value in c:
            return slot
    return None


def category_spellings(slot: SlotKey) -> list[str]:
    """Stored category values that read as `slot` (older rows use mainDish etc.)."""
    return [slot.value, f"{slot.value}Dish", f"{slot.value}_dish", f"{slot.value}dish"]


class MealSlots(BaseModel):
    """Four recipe-id slots of one meal. Any slot may be empty."""

    staple: Optional[str] = None
    main: Optional[str] = Field(None, validation_alias=AliasChoices("main", "mainDish", "main_dish"))
    side: Optional[str] = Field(None, validation_alias=AliasChoices("side", "sideDish", "side_dish"))
    soup: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _blank_to_none(cls, data):
        if isinstance(data, dict):
            return {k: (v or None) for k, v in data.items()}
        return data

    def get(self, slot: SlotKey) -> Optional[str]:
        return getattr(self, slot.value)

    def assigned(self) -> Iterator[tuple[SlotKey, str]]:
        """(slot, recipe_id) for filled slots, in slot order."""
        for slot in SLOT_ORDER:
            recipe_id = self.get(slot)
            if recipe_id:
                yield slot, recipe_id


class TemplateIds(BaseModel):
    """Daily set last applied to each meal ("" when none)."""

    breakfast: str = ""
    lunch: str = ""
    dinner: str = ""

    @model_validator(mode="before")
    @classmethod
    def _none_to_empty(cls, data):
        if isinstance(data, dict):
            return {k: (v or "") for k, v in data.items()}
        return data


class MealPlanDay(BaseModel):
    """What is planned for one calendar day (weeklyDaySets)."""

    user_id: str
    day_key: str
    breakfast: MealSlots = Field(default_factory=MealSlots)
    lunch: MealSlots = Field(default_factory=MealSlots)
    dinner: MealSlots = Field(default_factory=MealSlots)
    memo: str = ""
    template_ids: TemplateIds = Field(default_factory=TemplateIds)
    updated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _fill_missing(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            for meal in MEAL_ORDER:
                if data.get(meal.value) is None:
                    data[meal.value] = {}
            if data.get("template_ids") is None:
                data["template_ids"] = {}
            if data.get("memo") is None:
                data["memo"] = ""
        return data

    def meal(self, meal_key: MealKey) -> MealSlots:
        return getattr(self, meal_key.value)

    def recipe_ids(self) -> list[str]:
        ids = []
        for meal in MEAL_ORDER:
            for _, recipe_id in self.meal(meal).assigned():
                ids.append(recipe_id)
        return ids


class DailySet(BaseModel):
    """Reusable bundle of one recipe per slot."""

    id: str
    user_id: Optional[str] = None
    name: str = ""
    staple: Optional[str] = None
    main_dish: Optional[str] = Field(
        None, validation_alias=AliasChoices("main_dish", "mainDish", "main")
    )
    side_dish: Optional[str] = Field(
        None, validation_alias=AliasChoices("side_dish", "sideDish", "side")
    )
    soup: Optional[str] = None
    memo: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def slots(self) -> MealSlots:
        return MealSlots(
            staple=self.staple,
            main=self.main_dish,
            side=self.side_dish,
            soup=self.soup,
        )


class SetSlotRequest(BaseModel):
    recipe_id: Optional[str] = None


class SetDayMemoRequest(BaseModel):
    memo: str = ""


class ApplyDailySetRequest(BaseModel):
    """Apply a template to one meal; None clears the recorded template id."""

    daily_set_id: Optional[str] = None


class DailySetCreate(BaseModel):
    """Create a template. Empty slots are allowed."""

    name: str = Field(..., min_length=1)
    staple: Optional[str] = None
    main_dish: Optional[str] = None
    side_dish: Optional[str] = None
    soup: Optional[str] = None
    memo: str = ""


class DailySetUpdate(BaseModel):
    name: Optional[str] = None
    staple: Optional[str] = None
    main_dish: Optional[str] = None
    side_dish: Optional[str] = None
    soup: Optional[str] = None
    memo: Optional[str] = None
