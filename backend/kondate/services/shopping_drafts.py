"""
Shopping draft service.

Generation walks the planned meals of the next few days, collects every
ingredient occurrence of every planned recipe, groups occurrences by food
name and checks each group against the fridge. The result is stored as a
DRAFT session the user reviews before applying it to the shopping list.

Generation never modifies earlier sessions. A session leaves DRAFT exactly
once: to APPLIED through `apply`, or to ARCHIVED by the user or the stale
draft job.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from supabase import Client

from kondate.config import get_settings
from kondate.errors import AlreadyApplied, InvalidTransition, NotFound, ValidationFailed
from kondate.models.expiration import CUSTOM_CATEGORY_ID, CUSTOM_CATEGORY_LABEL
from kondate.models.fridge import DraftFridgeState
from kondate.models.planning import MEAL_ORDER, MealPlanDay
from kondate.models.recipes import Recipe
from kondate.models.shopping import (
    ApplyDraftResult,
    DraftItem,
    DraftSession,
    DraftSource,
    DraftStatus,
    GenerateDraftResult,
    ShoppingItemStatus,
)
from kondate.services.batch import UnitOfWork
from kondate.services.clock import Clock, day_keys_from, local_today, to_day_key, to_iso, utc_now
from kondate.services.expiration import ExpirationService, validate_custom_days
from kondate.services.fridge import FridgeService
from kondate.services.matching import CaseFoldMatcher, FridgeIndex, NameMatcher
from kondate.services.planning import MealPlanService
from kondate.services.recipes import RecipeService
from kondate.services.supabase import TABLES, first_row, get_owned_row, get_supabase_client

logger = logging.getLogger(__name__)


# Review order: what is missing first, what is at home last
FRIDGE_STATE_ORDER = {
    DraftFridgeState.NONE: 0,
    DraftFridgeState.FEW: 1,
    DraftFridgeState.UNKNOWN: 2,
    DraftFridgeState.HAVE: 3,
}


# ============================================================================
# Aggregation (pure)
# ============================================================================


@dataclass
class Occurrence:
    """One ingredient line of one planned recipe."""

    name: str
    source: DraftSource


@dataclass
class AggregatedIngredient:
    """Occurrences sharing a name key. `name` is the first spelling seen."""

    key: str
    name: str
    sources: list[DraftSource] = field(default_factory=list)


def collect_occurrences(
    day_keys: list[str],
    days: dict[str, MealPlanDay],
    recipes: dict[str, Recipe],
) -> list[Occurrence]:
    """
    Ingredient occurrences in day, meal, slot and ingredient order.

    Seasonings are not shopping items. Slots whose recipe no longer
    exists are skipped.
    """
    occurrences = []
    for day_key in day_keys:
        day = days.get(day_key)
        if day is None:
            continue
        for meal in MEAL_ORDER:
            for slot, recipe_id in day.meal(meal).assigned():
                recipe = recipes.get(recipe_id)
                if recipe is None:
                    continue
                for ingredient in recipe.ingredients:
                    name = ingredient.name.strip()
                    if not name:
                        continue
                    occurrences.append(Occurrence(
                        name=name,
                        source=DraftSource(
                            day_key=day_key,
                            meal_key=meal,
                            slot_key=slot,
                            recipe_id=recipe.id,
                            recipe_name=recipe.display_name,
                            raw_text=ingredient.display_text,
                        ),
                    ))
    return occurrences


def aggregate_ingredients(occurrences: list[Occurrence], matcher: NameMatcher) -> list[AggregatedIngredient]:
    """Group occurrences by matcher key, keeping first-seen order."""
    groups: dict[str, AggregatedIngredient] = {}
    for occ in occurrences:
        key = matcher.key(occ.name)
        if not key:
            continue
        group = groups.get(key)
        if group is None:
            group = groups[key] = AggregatedIngredient(key=key, name=occ.name)
        group.sources.append(occ.source)
    return list(groups.values())


def draft_item_sort_key(item: DraftItem):
    return (FRIDGE_STATE_ORDER.get(item.fridge_state, 2), item.name.casefold())


# ============================================================================
# Service
# ============================================================================


class ShoppingDraftService:
    """Generate, review and apply shopping drafts."""

    def __init__(
        self,
        client: Optional[Client] = None,
        clock: Clock = utc_now,
        planning: Optional[MealPlanService] = None,
        recipes: Optional[RecipeService] = None,
        fridge: Optional[FridgeService] = None,
        expiration: Optional[ExpirationService] = None,
        matcher: Optional[NameMatcher] = None,
    ):
        self.client = client or get_supabase_client()
        self.clock = clock
        self.settings = get_settings()
        self.expiration = expiration or ExpirationService(self.client, clock)
        self.planning = planning or MealPlanService(self.client, clock)
        self.recipes = recipes or RecipeService(self.client, clock)
        self.fridge = fridge or FridgeService(self.client, clock, self.expiration)
        self.matcher = matcher or CaseFoldMatcher()

    def today(self) -> date:
        return local_today(self.clock, self.settings.timezone)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self, user_id: str, range_days: Optional[int] = None) -> GenerateDraftResult:
        """
        Create a DRAFT session for the `range_days` days starting tomorrow.

        An empty window still creates a session (with no items).
        """
        if range_days is None:
            range_days = self.settings.draft_default_range_days
        if isinstance(range_days, bool) or not isinstance(range_days, int) or range_days < 1:
            raise ValidationFailed(f"range_days must be a positive integer (got {range_days!r})")

        start = self.today() + timedelta(days=1)
        try:
            start + timedelta(days=range_days)
        except OverflowError:
            raise ValidationFailed(f"range_days {range_days} runs past the last representable date")
        day_keys = day_keys_from(start, range_days)

        days = await self.planning.get_days(user_id, day_keys)
        recipe_ids = [rid for day in days.values() for rid in day.recipe_ids()]
        recipes = await self.recipes.get_recipes(recipe_ids)

        aggregated = aggregate_ingredients(collect_occurrences(day_keys, days, recipes), self.matcher)
        index = FridgeIndex.build(await self.fridge.list_raw_lots(user_id), self.matcher)

        now = to_iso(self.clock())
        session_row = {
            "user_id": user_id,
            "status": DraftStatus.DRAFT.value,
            "range_days": range_days,
            "start_day_key": day_keys[0],
            "end_day_key": day_keys[-1],
            "created_at": now,
            "updated_at": now,
        }

        with UnitOfWork(self.client, f"generate draft for {user_id}") as uow:
            session = uow.insert(TABLES["draft_sessions"], session_row, label="session")
            item_rows = []
            for group in aggregated:
                state = index.state_for(group.name)
                item_rows.append({
                    "session_id": session["id"],
                    "user_id": user_id,
                    "name": group.name,
                    "sources": [s.model_dump(mode="json") for s in group.sources],
                    "fridge_state": state.value,
                    "skip": state == DraftFridgeState.HAVE,
                    "category_id": None,
                    "category_label_snapshot": None,
                    "custom_expire_days": None,
                    "memo": "",
                    "created_at": now,
                    "updated_at": now,
                })
            uow.insert_many(TABLES["draft_items"], item_rows, label="items")

        logger.info(
            f"Created draft session {session['id']} for user {user_id} "
            f"({day_keys[0]}..{day_keys[-1]}, {len(item_rows)} items)"
        )
        return GenerateDraftResult(
            session_id=session["id"],
            item_count=len(item_rows),
            start_day_key=day_keys[0],
            end_day_key=day_keys[-1],
        )

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    async def get_session(self, user_id: str, session_id: str) -> DraftSession:
        row = await get_owned_row(self.client, "draft_sessions", session_id, user_id, "draft session")
        return DraftSession(**row)

    async def list_sessions(
        self,
        user_id: str,
        status: Optional[DraftStatus] = None,
        limit: int = 20,
    ) -> list[DraftSession]:
        """Sessions newest first, optionally filtered by status."""
        query = self.client.table(TABLES["draft_sessions"]).select("*").eq("user_id", user_id)
        if status:
            query = query.eq("status", DraftStatus(status).value)
        result = query.order("created_at", desc=True).limit(limit).execute()
        return [DraftSession(**row) for row in result.data or []]

    async def _load_items(self, session_id: str) -> list[DraftItem]:
        result = self.client.table(TABLES["draft_items"]).select("*").eq("session_id", session_id).execute()
        items = [DraftItem(**row) for row in result.data or []]
        items.sort(key=draft_item_sort_key)
        return items

    async def get_items(self, user_id: str, session_id: str) -> list[DraftItem]:
        """Items of a session, missing food first, then by name."""
        await self.get_session(user_id, session_id)
        return await self._load_items(session_id)

    async def _editable_item(self, user_id: str, session_id: str, item_id: str) -> DraftItem:
        session = await self.get_session(user_id, session_id)
        if session.status != DraftStatus.DRAFT:
            raise InvalidTransition(f"draft session {session_id} is {session.status.value}")

        result = self.client.table(TABLES["draft_items"]).select("*").eq("id", item_id).limit(1).execute()
        row = first_row(result)
        if row is None or row.get("session_id") != session_id:
            raise NotFound(f"draft item not found: {item_id}")
        return DraftItem(**row)

    async def _update_item(self, item_id: str, patch: dict) -> DraftItem:
        patch = {**patch, "updated_at": to_iso(self.clock())}
        result = self.client.table(TABLES["draft_items"]).update(patch).eq("id", item_id).execute()
        return DraftItem(**first_row(result))

    async def set_item_skip(self, user_id: str, session_id: str, item_id: str, skip: bool) -> DraftItem:
        await self._editable_item(user_id, session_id, item_id)
        return await self._update_item(item_id, {"skip": bool(skip)})

    async def set_item_memo(self, user_id: str, session_id: str, item_id: str, memo: str) -> DraftItem:
        await self._editable_item(user_id, session_id, item_id)
        return await self._update_item(item_id, {"memo": memo or ""})

    async def set_item_category(
        self,
        user_id: str,
        session_id: str,
        item_id: str,
        category_id: str,
        custom_expire_days=None,
    ) -> DraftItem:
        """
        Choose the category the item will have in the fridge.

        Raises:
            UnknownCategory: no rule for `category_id`
            InvalidCustomDuration: `custom` without positive days
        """
        await self._editable_item(user_id, session_id, item_id)
        rule = await self.expiration.resolve(category_id)
        days = validate_custom_days(custom_expire_days) if rule.is_custom else None
        return await self._update_item(item_id, {
            "category_id": rule.id,
            "category_label_snapshot": rule.label,
            "custom_expire_days": days,
        })

    async def archive_session(self, user_id: str, session_id: str) -> DraftSession:
        """DRAFT -> ARCHIVED. Archiving an archived session is a no-op."""
        session = await self.get_session(user_id, session_id)
        if session.status == DraftStatus.ARCHIVED:
            return session
        if session.status != DraftStatus.DRAFT:
            raise InvalidTransition(f"draft session {session_id} is {session.status.value}")

        now = to_iso(self.clock())
        result = (
            self.client.table(TABLES["draft_sessions"])
            .update({"status": DraftStatus.ARCHIVED.value, "archived_at": now, "updated_at": now})
            .eq("id", session_id)
            .eq("status", DraftStatus.DRAFT.value)
            .execute()
        )
        row = first_row(result)
        if row is None:
            raise InvalidTransition(f"draft session {session_id} changed status concurrently")

        logger.info(f"Archived draft session {session_id} for user {user_id}")
        return DraftSession(**row)

    async def archive_stale_sessions(self, today: Optional[date] = None) -> int:
        """Archive DRAFT sessions whose window ended before `today`."""
        today_key = to_day_key(today or self.today())
        result = (
            self.client.table(TABLES["draft_sessions"])
            .select("id")
            .eq("status", DraftStatus.DRAFT.value)
            .lt("end_day_key", today_key)
            .execute()
        )
        stale_ids = [row["id"] for row in result.data or []]

        archived = 0
        now = to_iso(self.clock())
        for session_id in stale_ids:
            updated = (
                self.client.table(TABLES["draft_sessions"])
                .update({"status": DraftStatus.ARCHIVED.value, "archived_at": now, "updated_at": now})
                .eq("id", session_id)
                .eq("status", DraftStatus.DRAFT.value)
                .execute()
            )
            if updated.data:
                archived += 1

        if archived:
            logger.info(f"Archived {archived} stale draft sessions (before {today_key})")
        return archived

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def _shopping_row(self, user_id: str, item: DraftItem, now: str) -> dict:
        category_id = item.category_id or CUSTOM_CATEGORY_ID
        if category_id == CUSTOM_CATEGORY_ID:
            label = item.category_label_snapshot or CUSTOM_CATEGORY_LABEL
            days = item.custom_expire_days or self.settings.custom_expire_days_default
        else:
            label = item.category_label_snapshot or category_id
            days = None

        return {
            "user_id": user_id,
            "name": item.name,
            "memo": item.memo,
            "sources": [s.model_dump(mode="json") for s in item.sources],
            "category_id": category_id,
            "category_label_snapshot": label,
            "custom_expire_days": days,
            "skip": False,
            "purchased": False,
            "purchased_at": None,
            "status": ShoppingItemStatus.TODO.value,
            "skipped_at": None,
            "synced_at": None,
            "purge_at": None,
            "synced_to_fridge": False,
            "created_at": now,
            "updated_at": now,
        }

    async def apply(self, user_id: str, session_id: str) -> ApplyDraftResult:
        """
        Turn the non-skipped items of a DRAFT session into shopping items.

        The session is claimed (DRAFT -> APPLIED) before any item is
        written, so two concurrent applies cannot both succeed. If an item
        write fails, written items are deleted and the session goes back
        to DRAFT.

        Raises:
            NotFound, Forbidden: session lookup
            AlreadyApplied: the session was applied before
            InvalidTransition: the session is archived
            BatchWriteError: an item write failed
        """
        session = await self.get_session(user_id, session_id)
        self._check_appliable(session)
        items = [item for item in await self._load_items(session_id) if not item.skip]

        now = to_iso(self.clock())
        claimed = (
            self.client.table(TABLES["draft_sessions"])
            .update({"status": DraftStatus.APPLIED.value, "applied_at": now, "updated_at": now})
            .eq("id", session_id)
            .eq("status", DraftStatus.DRAFT.value)
            .execute()
        )
        if not claimed.data:
            # Lost a race; report what the winner did
            self._check_appliable(await self.get_session(user_id, session_id))
            raise AlreadyApplied(f"draft session {session_id} was already applied")

        created_ids = []
        with UnitOfWork(self.client, f"apply draft {session_id}") as uow:
            uow.add_compensation(f"claim {session_id}", lambda: self._release_claim(session_id))
            for item in items:
                created = uow.insert(
                    TABLES["shopping_items"],
                    self._shopping_row(user_id, item, now),
                    label=item.id,
                )
                created_ids.append(created["id"])

        logger.info(f"Applied draft session {session_id}: {len(created_ids)} shopping items for user {user_id}")
        return ApplyDraftResult(session_id=session_id, created=len(created_ids), item_ids=created_ids)

    def _check_appliable(self, session: DraftSession) -> None:
        if session.status == DraftStatus.APPLIED:
            raise AlreadyApplied(f"draft session {session.id} was already applied")
        if session.status == DraftStatus.ARCHIVED:
            raise InvalidTransition(f"draft session {session.id} is archived")

    def _release_claim(self, session_id: str):
        return (
            self.client.table(TABLES["draft_sessions"])
            .update({"status": DraftStatus.DRAFT.value, "applied_at": None})
            .eq("id", session_id)
            .execute()
        )


# Singleton
_shopping_draft_service: Optional[ShoppingDraftService] = None


def get_shopping_draft_service() -> ShoppingDraftService:
    """Get shopping draft service singleton."""
    global _shopping_draft_service
    if _shopping_draft_service is None:
        _shopping_draft_service = ShoppingDraftService()
    return _shopping_draft_service
