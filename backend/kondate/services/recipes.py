"""
Recipe catalog service.

Recipes are readable by every user; only the author may change or delete
one. Ingredient rows are stored as JSON and normalized on read.
"""

from __future__ import annotations

import logging
from typing import Optional

from supabase import Client

from kondate.errors import Forbidden, NotFound
from kondate.models.planning import category_spellings, normalize_slot_key
from kondate.models.recipes import Recipe, RecipeCreate, RecipeUpdate
from kondate.services.clock import Clock, to_iso, utc_now
from kondate.services.supabase import TABLES, chunked, first_row, get_supabase_client

logger = logging.getLogger(__name__)


def _ingredient_rows(ingredients) -> list[dict]:
    return [i.model_dump(exclude_none=True) for i in ingredients]


class RecipeService:
    """Read and write the recipe catalog."""

    def __init__(self, client: Optional[Client] = None, clock: Clock = utc_now):
        self.client = client or get_supabase_client()
        self.clock = clock

    async def list_recipes(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 200,
    ) -> list[Recipe]:
        """
        Catalog listing, newest first.

        Args:
            category: slot role (staple/main/side/soup, mainDish spellings accepted)
            search: case-insensitive substring of the recipe name
            limit: maximum rows fetched
        """
        slot = normalize_slot_key(category)
        if category and slot is None:
            return []

        query = self.client.table(TABLES["recipes"]).select("*")
        # Filters go to the database so the limit applies to matching rows only
        if slot is not None:
            query = query.in_("category", category_spellings(slot))
        if search and search.strip():
            query = query.ilike("recipe_name", f"%{search.strip()}%")

        result = query.order("created_at", desc=True).limit(limit).execute()
        return [Recipe(**row) for row in result.data or []]

    async def find_recipe(self, recipe_id: str) -> Optional[Recipe]:
        result = self.client.table(TABLES["recipes"]).select("*").eq("id", recipe_id).limit(1).execute()
        row = first_row(result)
        return Recipe(**row) if row else None

    async def get_recipe(self, recipe_id: str) -> Recipe:
        recipe = await self.find_recipe(recipe_id)
        if recipe is None:
            raise NotFound(f"recipe not found: {recipe_id}")
        return recipe

    async def get_recipes(self, recipe_ids: list[str]) -> dict[str, Recipe]:
        """Recipes by id. Ids that no longer resolve are left out."""
        ids = list(dict.fromkeys(i for i in recipe_ids if i))
        recipes: dict[str, Recipe] = {}
        for batch in chunked(ids):
            result = self.client.table(TABLES["recipes"]).select("*").in_("id", batch).execute()
            for row in result.data or []:
                recipes[row["id"]] = Recipe(**row)
        missing = len(ids) - len(recipes)
        if missing:
            logger.warning(f"{missing} of {len(ids)} recipe ids did not resolve")
        return recipes

    async def create_recipe(self, user_id: str, payload: RecipeCreate) -> Recipe:
        now = to_iso(self.clock())
        slot = normalize_slot_key(payload.category)
        row = {
            "user_id": user_id,
            "recipe_name": payload.recipe_name.strip(),
            "image_url": payload.image_url,
            "category": slot.value if slot else None,
            "ingredients": _ingredient_rows(payload.ingredients),
            "seasonings": _ingredient_rows(payload.seasonings),
            "cooking_time": payload.cooking_time,
            "calories": payload.calories,
            "tags": payload.tags,
            "memo": payload.memo,
            "created_at": now,
            "updated_at": now,
        }
        result = self.client.table(TABLES["recipes"]).insert(row).execute()
        created = first_row(result)
        if not created:
            raise ValueError("Failed to create recipe")

        logger.info(f"Created recipe {created['id']} for user {user_id}")
        return Recipe(**created)

    async def _authored(self, user_id: str, recipe_id: str) -> Recipe:
        recipe = await self.get_recipe(recipe_id)
        if recipe.user_id != user_id:
            raise Forbidden(f"recipe {recipe_id} can only be changed by its author")
        return recipe

    async def update_recipe(self, user_id: str, recipe_id: str, patch: RecipeUpdate) -> Recipe:
        await self._authored(user_id, recipe_id)

        updates = patch.model_dump(exclude_unset=True)
        if "ingredients" in updates:
            updates["ingredients"] = _ingredient_rows(patch.ingredients or [])
        if "seasonings" in updates:
            updates["seasonings"] = _ingredient_rows(patch.seasonings or [])
        if "category" in updates:
            slot = normalize_slot_key(updates["category"])
            updates["category"] = slot.value if slot else None
        updates["updated_at"] = to_iso(self.clock())

        result = self.client.table(TABLES["recipes"]).update(updates).eq("id", recipe_id).execute()
        return Recipe(**first_row(result))

    async def delete_recipe(self, user_id: str, recipe_id: str) -> None:
        """Delete a recipe. Meal plans keep the dangling id; drafts skip it."""
        await self._authored(user_id, recipe_id)
        self.client.table(TABLES["recipes"]).delete().eq("id", recipe_id).execute()
        logger.info(f"Deleted recipe {recipe_id} for user {user_id}")


# Singleton
_recipe_service: Optional[RecipeService] = None


def get_recipe_service() -> RecipeService:
    """Get recipe service singleton."""
    global _recipe_service
    if _recipe_service is None:
        _recipe_service = RecipeService()
    return _recipe_service
