"""Pydantic models for kondate API."""

from .expiration import (
    CUSTOM_CATEGORY_ID,
    CUSTOM_CATEGORY_LABEL,
    AppConfig,
    CategoryExpireRule,
    ExpireLevel,
    ExpireSource,
)
from .fridge import (
    DraftFridgeState,
    FridgeLot,
    FridgeLotView,
    FridgeState,
)
from .recipes import (
    Ingredient,
    Recipe,
)
from .planning import (
    MEAL_ORDER,
    SLOT_ORDER,
    DailySet,
    MealKey,
    MealPlanDay,
    MealSlots,
    SlotKey,
)
from .shopping import (
    DraftItem,
    DraftSession,
    DraftSource,
    DraftStatus,
    Plan,
    ShoppingItem,
    ShoppingItemStatus,
    UserPlan,
)

__all__ = [
    # Expiration
    "CUSTOM_CATEGORY_ID",
    "CUSTOM_CATEGORY_LABEL",
    "AppConfig",
    "CategoryExpireRule",
    "ExpireLevel",
    "ExpireSource",
    # Fridge
    "DraftFridgeState",
    "FridgeLot",
    "FridgeLotView",
    "FridgeState",
    # Recipes
    "Ingredient",
    "Recipe",
    # Planning
    "MEAL_ORDER",
    "SLOT_ORDER",
    "DailySet",
    "MealKey",
    "MealPlanDay",
    "MealSlots",
    "SlotKey",
    # Shopping
    "DraftItem",
    "DraftSession",
    "DraftSource",
    "DraftStatus",
    "Plan",
    "ShoppingItem",
    "ShoppingItemStatus",
    "UserPlan",
]
