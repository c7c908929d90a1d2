"""
Meal plan service.

One row per (user, day key) holds the three meals of that day, each with
four recipe slots. Daily sets are reusable slot bundles that can be copied
into a meal. The "zubora" preset is an ordinary day row under a fixed key.
"""

import logging
from typing import Optional

from supabase import Client

from kondate.errors import ValidationFailed
from kondate.models.planning import (
    MEAL_ORDER,
    PRESET_DAY_KEY,
    DailySet,
    DailySetCreate,
    DailySetUpdate,
    MealKey,
    MealPlanDay,
    MealSlots,
    SlotKey,
)
from kondate.services.clock import Clock, parse_day_key, to_iso, utc_now
from kondate.services.supabase import TABLES, first_row, get_owned_row, get_supabase_client

logger = logging.getLogger(__name__)


def validate_day_key(day_key: str, allow_preset: bool = True) -> str:
    """Accept "YYYY-MM-DD" (or the preset key). Raises ValidationFailed."""
    if allow_preset and day_key == PRESET_DAY_KEY:
        return day_key
    try:
        parse_day_key(day_key)
    except (TypeError, ValueError):
        raise ValidationFailed(f"invalid day key: {day_key!r}")
    return day_key


def day_to_row(day: MealPlanDay) -> dict:
    row = {
        "user_id": day.user_id,
        "day_key": day.day_key,
        "memo": day.memo,
        "template_ids": day.template_ids.model_dump(),
        "updated_at": to_iso(day.updated_at),
    }
    for meal in MEAL_ORDER:
        row[meal.value] = day.meal(meal).model_dump()
    return row


class MealPlanService:
    """Day plans and daily sets of a user."""

    def __init__(self, client: Optional[Client] = None, clock: Clock = utc_now):
        self.client = client or get_supabase_client()
        self.clock = clock

    # ------------------------------------------------------------------
    # Days
    # ------------------------------------------------------------------

    async def find_day(self, user_id: str, day_key: str) -> Optional[MealPlanDay]:
        result = (
            self.client.table(TABLES["day_sets"])
            .select("*")
            .eq("user_id", user_id)
            .eq("day_key", day_key)
            .limit(1)
            .execute()
        )
        row = first_row(result)
        return MealPlanDay(**row) if row else None

    async def get_day(self, user_id: str, day_key: str) -> MealPlanDay:
        """The day's plan; an empty plan when nothing is stored."""
        validate_day_key(day_key)
        day = await self.find_day(user_id, day_key)
        return day or MealPlanDay(user_id=user_id, day_key=day_key)

    async def get_days(self, user_id: str, day_keys: list[str]) -> dict[str, MealPlanDay]:
        """Stored days among `day_keys`, keyed by day key."""
        if not day_keys:
            return {}
        result = (
            self.client.table(TABLES["day_sets"])
            .select("*")
            .eq("user_id", user_id)
            .in_("day_key", list(day_keys))
            .execute()
        )
        return {row["day_key"]: MealPlanDay(**row) for row in result.data or []}

    async def _save(self, day: MealPlanDay) -> MealPlanDay:
        day.updated_at = self.clock()
        result = (
            self.client.table(TABLES["day_sets"])
            .upsert(day_to_row(day), on_conflict="user_id,day_key")
            .execute()
        )
        row = first_row(result)
        return MealPlanDay(**row) if row else day

    async def set_slot(
        self,
        user_id: str,
        day_key: str,
        meal_key: MealKey,
        slot_key: SlotKey,
        recipe_id: Optional[str],
    ) -> MealPlanDay:
        """Put a recipe in one slot (None empties it). Other slots are kept."""
        day = await self.get_day(user_id, day_key)
        setattr(day.meal(MealKey(meal_key)), SlotKey(slot_key).value, recipe_id or None)
        return await self._save(day)

    async def clear_meal(self, user_id: str, day_key: str, meal_key: MealKey) -> MealPlanDay:
        """Empty all four slots of a meal and forget its template."""
        meal_key = MealKey(meal_key)
        day = await self.get_day(user_id, day_key)
        setattr(day, meal_key.value, MealSlots())
        setattr(day.template_ids, meal_key.value, "")
        return await self._save(day)

    async def set_memo(self, user_id: str, day_key: str, memo: str) -> MealPlanDay:
        day = await self.get_day(user_id, day_key)
        day.memo = memo or ""
        return await self._save(day)

    async def apply_daily_set(
        self,
        user_id: str,
        day_key: str,
        meal_key: MealKey,
        daily_set_id: Optional[str],
    ) -> MealPlanDay:
        """
        Copy a daily set's four slots into one meal.

        With `daily_set_id=None` only the recorded template id is cleared;
        the slots stay as they are.

        Raises:
            NotFound: the daily set does not exist
            Forbidden: the daily set belongs to another user
        """
        meal_key = MealKey(meal_key)
        day = await self.get_day(user_id, day_key)

        if daily_set_id is None:
            setattr(day.template_ids, meal_key.value, "")
            return await self._save(day)

        daily_set = await self.get_daily_set(user_id, daily_set_id)
        setattr(day, meal_key.value, daily_set.slots())
        setattr(day.template_ids, meal_key.value, daily_set.id)
        logger.info(f"Applied daily set {daily_set.id} to {day_key}/{meal_key.value} for user {user_id}")
        return await self._save(day)

    async def get_preset(self, user_id: str) -> MealPlanDay:
        return await self.get_day(user_id, PRESET_DAY_KEY)

    async def apply_preset(self, user_id: str, day_key: str) -> MealPlanDay:
        """Copy the three meals of the user's preset day into `day_key`."""
        validate_day_key(day_key, allow_preset=False)
        preset = await self.get_preset(user_id)
        day = await self.get_day(user_id, day_key)
        for meal in MEAL_ORDER:
            setattr(day, meal.value, preset.meal(meal).model_copy())
            setattr(day.template_ids, meal.value, getattr(preset.template_ids, meal.value))
        logger.info(f"Applied preset to {day_key} for user {user_id}")
        return await self._save(day)

    # ------------------------------------------------------------------
    # Daily sets
    # ------------------------------------------------------------------

    async def list_daily_sets(self, user_id: str) -> list[DailySet]:
        result = (
            self.client.table(TABLES["daily_sets"])
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [DailySet(**row) for row in result.data or []]

    async def get_daily_set(self, user_id: str, daily_set_id: str) -> DailySet:
        row = await get_owned_row(self.client, "daily_sets", daily_set_id, user_id, "daily set")
        return DailySet(**row)

    async def create_daily_set(self, user_id: str, payload: DailySetCreate) -> DailySet:
        now = to_iso(self.clock())
        row = {
            "user_id": user_id,
            "name": payload.name.strip(),
            "staple": payload.staple or None,
            "main_dish": payload.main_dish or None,
            "side_dish": payload.side_dish or None,
            "soup": payload.soup or None,
            "memo": payload.memo,
            "created_at": now,
            "updated_at": now,
        }
        result = self.client.table(TABLES["daily_sets"]).insert(row).execute()
        created = first_row(result)
        if not created:
            raise ValueError("Failed to create daily set")

        logger.info(f"Created daily set {created['id']} for user {user_id}")
        return DailySet(**created)

    async def update_daily_set(self, user_id: str, daily_set_id: str, patch: DailySetUpdate) -> DailySet:
        await self.get_daily_set(user_id, daily_set_id)
        updates = patch.model_dump(exclude_unset=True)
        for slot in ("staple", "main_dish", "side_dish", "soup"):
            if slot in updates:
                updates[slot] = updates[slot] or None
        updates["updated_at"] = to_iso(self.clock())
        result = self.client.table(TABLES["daily_sets"]).update(updates).eq("id", daily_set_id).execute()
        return DailySet(**first_row(result))

    async def delete_daily_set(self, user_id: str, daily_set_id: str) -> None:
        """Delete a daily set. Days that recorded it keep their slots."""
        await self.get_daily_set(user_id, daily_set_id)
        self.client.table(TABLES["daily_sets"]).delete().eq("id", daily_set_id).execute()
        logger.info(f"Deleted daily set {daily_set_id} for user {user_id}")


# Singleton
_meal_plan_service: Optional[MealPlanService] = None


def get_meal_plan_service() -> MealPlanService:
    """Get meal plan service singleton."""
    global _meal_plan_service
    if _meal_plan_service is None:
        _meal_plan_service = MealPlanService()
    return _meal_plan_service
