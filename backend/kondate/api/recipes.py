"""
Recipe API endpoints.

Listing and reading are open to every user; writes need the author's user_id.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from kondate.api.deps import get_current_user_id, recipe_service
from kondate.models.recipes import Recipe, RecipeCreate, RecipeUpdate
from kondate.services.recipes import RecipeService

router = APIRouter(prefix="/api/recipes", tags=["recipes"])


@router.get("", response_model=list[Recipe])
async def list_recipes(
    category: Optional[str] = Query(None, description="staple / main / side / soup"),
    search: Optional[str] = Query(None, description="Substring of the recipe name"),
    limit: int = Query(200, ge=1, le=500),
    service: RecipeService = Depends(recipe_service),
):
    return await service.list_recipes(category=category, search=search, limit=limit)


@router.get("/{recipe_id}", response_model=Recipe)
async def get_recipe(recipe_id: str, service: RecipeService = Depends(recipe_service)):
    return await service.get_recipe(recipe_id)


@router.post("", response_model=Recipe, status_code=201)
async def create_recipe(
    request: RecipeCreate,
    user_id: str = Depends(get_current_user_id),
    service: RecipeService = Depends(recipe_service),
):
    return await service.create_recipe(user_id, request)


@router.patch("/{recipe_id}", response_model=Recipe)
async def update_recipe(
    recipe_id: str,
    request: RecipeUpdate,
    user_id: str = Depends(get_current_user_id),
    service: RecipeService = Depends(recipe_service),
):
    """Partial update (author only)."""
    return await service.update_recipe(user_id, recipe_id, request)


@router.delete("/{recipe_id}")
async def delete_recipe(
    recipe_id: str,
    user_id: str = Depends(get_current_user_id),
    service: RecipeService = Depends(recipe_service),
):
    """Delete a recipe (author only)."""
    await service.delete_recipe(user_id, recipe_id)
    return {"success": True, "deleted_id": recipe_id}
