"""
Common dependencies for API endpoints.
"""

from fastapi import Query, HTTPException

from kondate.services.expiration import ExpirationService, get_expiration_service
from kondate.services.fridge import FridgeService, get_fridge_service
from kondate.services.planning import MealPlanService, get_meal_plan_service
from kondate.services.recipes import RecipeService, get_recipe_service
from kondate.services.shopping_drafts import ShoppingDraftService, get_shopping_draft_service
from kondate.services.shopping_lists import ShoppingListService, get_shopping_list_service


async def get_current_user_id(user_id: str = Query(..., description="User ID")) -> str:
    """
    Extract user_id from query parameter.

    The frontend authenticates via Supabase and passes the authenticated
    user_id directly to API calls.
    """
    if not user_id.strip():
        raise HTTPException(status_code=400, detail="user_id is required")
    return user_id


# Service providers. Tests replace these through app.dependency_overrides.

def expiration_service() -> ExpirationService:
    return get_expiration_service()


def fridge_service() -> FridgeService:
    return get_fridge_service()


def recipe_service() -> RecipeService:
    return get_recipe_service()


def meal_plan_service() -> MealPlanService:
    return get_meal_plan_service()


def shopping_draft_service() -> ShoppingDraftService:
    return get_shopping_draft_service()


def shopping_list_service() -> ShoppingListService:
    return get_shopping_list_service()
