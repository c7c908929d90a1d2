"""
Meal plan API endpoints.

Day plans live under /days/{day_key}; the "zubora" preset is the day key
`zubora`. Daily sets (templates) live under /daily-sets.
"""

from fastapi import APIRouter, Depends, Query

from kondate.api.deps import get_current_user_id, meal_plan_service
from kondate.models.planning import (
    ApplyDailySetRequest,
    DailySet,
    DailySetCreate,
    DailySetUpdate,
    MealKey,
    MealPlanDay,
    SetDayMemoRequest,
    SetSlotRequest,
    SlotKey,
)
from kondate.services.planning import MealPlanService, validate_day_key

router = APIRouter(prefix="/api/planning", tags=["planning"])


@router.get("/days", response_model=dict[str, MealPlanDay])
async def get_days(
    day_keys: list[str] = Query(..., description="Day keys (YYYY-MM-DD)"),
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(meal_plan_service),
):
    """Stored plans among the given days; days without a plan are left out."""
    for day_key in day_keys:
        validate_day_key(day_key)
    return await service.get_days(user_id, day_keys)


@router.get("/days/{day_key}", response_model=MealPlanDay)
async def get_day(
    day_key: str,
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(meal_plan_service),
):
    """A day's plan; empty slots when nothing is planned."""
    return await service.get_day(user_id, day_key)


@router.put("/days/{day_key}/{meal_key}/{slot_key}", response_model=MealPlanDay)
async def set_slot(
    day_key: str,
    meal_key: MealKey,
    slot_key: SlotKey,
    request: SetSlotRequest,
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(meal_plan_service),
):
    """Put a recipe in a slot (`recipe_id: null` empties it)."""
    return await service.set_slot(user_id, day_key, meal_key, slot_key, request.recipe_id)


@router.delete("/days/{day_key}/{meal_key}", response_model=MealPlanDay)
async def clear_meal(
    day_key: str,
    meal_key: MealKey,
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(meal_plan_service),
):
    return await service.clear_meal(user_id, day_key, meal_key)


@router.put("/days/{day_key}/memo", response_model=MealPlanDay)
async def set_memo(
    day_key: str,
    request: SetDayMemoRequest,
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(meal_plan_service),
):
    return await service.set_memo(user_id, day_key, request.memo)


@router.post("/days/{day_key}/{meal_key}/apply-daily-set", response_model=MealPlanDay)
async def apply_daily_set(
    day_key: str,
    meal_key: MealKey,
    request: ApplyDailySetRequest,
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(meal_plan_service),
):
    """Copy a daily set into a meal (`daily_set_id: null` only clears the template id)."""
    return await service.apply_daily_set(user_id, day_key, meal_key, request.daily_set_id)


@router.post("/days/{day_key}/apply-preset", response_model=MealPlanDay)
async def apply_preset(
    day_key: str,
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(meal_plan_service),
):
    """Copy the user's zubora preset into the day."""
    return await service.apply_preset(user_id, day_key)


# ============================================================================
# Daily sets
# ============================================================================


@router.get("/daily-sets", response_model=list[DailySet])
async def list_daily_sets(
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(meal_plan_service),
):
    return await service.list_daily_sets(user_id)


@router.post("/daily-sets", response_model=DailySet, status_code=201)
async def create_daily_set(
    request: DailySetCreate,
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(meal_plan_service),
):
    return await service.create_daily_set(user_id, request)


@router.get("/daily-sets/{daily_set_id}", response_model=DailySet)
async def get_daily_set(
    daily_set_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(meal_plan_service),
):
    return await service.get_daily_set(user_id, daily_set_id)


@router.patch("/daily-sets/{daily_set_id}", response_model=DailySet)
async def update_daily_set(
    daily_set_id: str,
    request: DailySetUpdate,
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(meal_plan_service),
):
    return await service.update_daily_set(user_id, daily_set_id, request)


@router.delete("/daily-sets/{daily_set_id}")
async def delete_daily_set(
    daily_set_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MealPlanService = Depends(meal_plan_service),
):
    await service.delete_daily_set(user_id, daily_set_id)
    return {"success": True, "deleted_id": daily_set_id}
