"""
Unit tests for shopping draft generation and review.
"""

import pytest

from kondate.errors import (
    Forbidden,
    InvalidCustomDuration,
    InvalidTransition,
    NotFound,
    UnknownCategory,
    ValidationFailed,
)
from kondate.models.fridge import DraftFridgeState
from kondate.models.planning import MealKey, SlotKey
from kondate.models.shopping import DraftSource, DraftStatus
from kondate.services.matching import CaseFoldMatcher
from kondate.services.shopping_drafts import Occurrence, aggregate_ingredients


def _source(day_key="2024-01-02", recipe_id="r1"):
    return DraftSource(
        day_key=day_key,
        meal_key=MealKey.DINNER,
        slot_key=SlotKey.MAIN,
        recipe_id=recipe_id,
    )


class TestAggregateIngredients:
    """Tests for the pure grouping step."""

    @pytest.mark.unit
    def test_groups_by_folded_name(self):
        """First spelling wins; sources keep encounter order."""
        groups = aggregate_ingredients(
            [
                Occurrence("Milk", _source(recipe_id="r1")),
                Occurrence("ねぎ", _source(recipe_id="r1")),
                Occurrence(" milk", _source(recipe_id="r2")),
            ],
            CaseFoldMatcher(),
        )
        assert [g.name for g in groups] == ["Milk", "ねぎ"]
        assert [s.recipe_id for s in groups[0].sources] == ["r1", "r2"]

    @pytest.mark.unit
    def test_empty(self):
        assert aggregate_ingredients([], CaseFoldMatcher()) == []


class TestGenerate:
    """Tests for draft generation."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_window_creates_empty_session(self, draft_service, fake_db, test_user_id):
        """No planned meals is not an error."""
        result = await draft_service.generate(test_user_id, 2)

        assert result.item_count == 0
        assert (result.start_day_key, result.end_day_key) == ("2024-01-02", "2024-01-03")
        session = fake_db.rows("shopping_draft_sessions")[0]
        assert session["status"] == "DRAFT"
        assert session["range_days"] == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_same_ingredient_in_two_recipes(self, draft_service, seed_recipe, seed_day, test_user_id):
        """Two recipes using たまご give one item with two sources."""
        oyako = seed_recipe("親子丼", ["たまご", {"name": "鶏もも肉", "quantity": "200", "unit": "g"}])
        soup = seed_recipe("かきたま汁", [{"name": "たまご", "quantity": "1個"}], category="soup")
        seed_day("2024-01-02", dinner={"main": oyako, "soup": soup})

        result = await draft_service.generate(test_user_id, 2)
        items = await draft_service.get_items(test_user_id, result.session_id)

        assert result.item_count == 2
        egg = next(i for i in items if i.name == "たまご")
        assert [(s.recipe_name, s.slot_key, s.raw_text) for s in egg.sources] == [
            ("親子丼", SlotKey.MAIN, "たまご"),
            ("かきたま汁", SlotKey.SOUP, "たまご 1個"),
        ]
        chicken = next(i for i in items if i.name == "鶏もも肉")
        assert chicken.sources[0].raw_text == "鶏もも肉 200g"
        assert chicken.sources[0].day_key == "2024-01-02"
        assert chicken.sources[0].meal_key == MealKey.DINNER

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_window_starts_tomorrow(self, draft_service, seed_recipe, seed_day, test_user_id):
        """Today and days past the window are ignored."""
        today = seed_recipe("今日の", ["きょう"])
        inside = seed_recipe("明後日の", ["あさって"])
        outside = seed_recipe("三日後の", ["しあさって"])
        seed_day("2024-01-01", lunch={"main": today})
        seed_day("2024-01-03", lunch={"main": inside})
        seed_day("2024-01-04", lunch={"main": outside})

        result = await draft_service.generate(test_user_id, 2)
        items = await draft_service.get_items(test_user_id, result.session_id)

        assert [i.name for i in items] == ["あさって"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_source_order(self, draft_service, seed_recipe, seed_day, test_user_id):
        """Sources follow day, meal, then slot order."""
        rid = seed_recipe("卵焼き", ["たまご"])
        seed_day("2024-01-03", breakfast={"main": rid})
        seed_day("2024-01-02", dinner={"side": rid, "staple": rid}, breakfast={"soup": rid})

        result = await draft_service.generate(test_user_id, 2)
        (item,) = await draft_service.get_items(test_user_id, result.session_id)

        assert [(s.day_key, s.meal_key.value, s.slot_key.value) for s in item.sources] == [
            ("2024-01-02", "breakfast", "soup"),
            ("2024-01-02", "dinner", "staple"),
            ("2024-01-02", "dinner", "side"),
            ("2024-01-03", "breakfast", "main"),
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_seasonings_and_missing_recipes_skipped(self, draft_service, seed_recipe, seed_day, test_user_id):
        rid = seed_recipe("", ["豆腐"], seasonings=["味噌", "だし"])
        seed_day("2024-01-02", dinner={"main": "deleted-recipe", "soup": rid})

        result = await draft_service.generate(test_user_id, 2)
        items = await draft_service.get_items(test_user_id, result.session_id)

        assert [i.name for i in items] == ["豆腐"]
        assert items[0].sources[0].recipe_name == "（無題）"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fridge_cross_reference(self, draft_service, seed_recipe, seed_day, seed_lot, test_user_id, other_user_id):
        """HAVE lots pre-skip the item; other states are reported as-is."""
        rid = seed_recipe("すき焼き", ["Tofu", "ねぎ", "牛肉", "しらたき"])
        seed_day("2024-01-02", dinner={"main": rid})
        seed_lot("tofu", state="HAVE")
        seed_lot("ねぎ", state="LITTLE")
        seed_lot("牛肉", state="NONE")
        seed_lot("しらたき", state="HAVE", user_id=other_user_id)

        result = await draft_service.generate(test_user_id, 2)
        items = {i.name: i for i in await draft_service.get_items(test_user_id, result.session_id)}

        assert items["Tofu"].fridge_state == DraftFridgeState.HAVE
        assert items["Tofu"].skip is True
        assert items["ねぎ"].fridge_state == DraftFridgeState.FEW
        assert items["牛肉"].fridge_state == DraftFridgeState.NONE
        assert items["しらたき"].fridge_state == DraftFridgeState.UNKNOWN
        assert not any(i.skip for name, i in items.items() if name != "Tofu")
        assert all(i.category_id is None for i in items.values())

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_generation_leaves_other_sessions_alone(self, draft_service, fake_db, test_user_id):
        first = await draft_service.generate(test_user_id, 2)
        second = await draft_service.generate(test_user_id, 3)

        sessions = {s["id"]: s for s in fake_db.rows("shopping_draft_sessions")}
        assert sessions[first.session_id]["status"] == "DRAFT"
        assert sessions[second.session_id]["status"] == "DRAFT"
        assert second.end_day_key == "2024-01-04"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_default_range_days(self, draft_service, test_user_id):
        result = await draft_service.generate(test_user_id)
        assert result.end_day_key == "2024-01-03"

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("range_days", [0, -1, 1.5, True, 10 ** 10])
    async def test_invalid_range(self, draft_service, test_user_id, range_days):
        with pytest.raises(ValidationFailed):
            await draft_service.generate(test_user_id, range_days)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_long_window(self, draft_service, test_user_id):
        result = await draft_service.generate(test_user_id, 15)
        assert result.start_day_key == "2024-01-02"
        assert result.end_day_key == "2024-01-16"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_item_write_leaves_nothing(self, draft_service, fake_db, seed_recipe, seed_day, test_user_id):
        from kondate.errors import BatchWriteError

        rid = seed_recipe("卵焼き", ["たまご"])
        seed_day("2024-01-02", breakfast={"main": rid})
        fake_db.fail("shopping_draft_items", "insert")

        with pytest.raises(BatchWriteError):
            await draft_service.generate(test_user_id, 2)
        assert fake_db.rows("shopping_draft_sessions") == []


class TestReview:
    """Tests for editing a draft before applying it."""

    @pytest.fixture
    async def session(self, draft_service, seed_recipe, seed_day, seed_lot, test_user_id):
        rid = seed_recipe("味噌汁", ["豆腐", "わかめ", "ねぎ"])
        seed_day("2024-01-02", dinner={"soup": rid})
        seed_lot("わかめ", state="HAVE")
        seed_lot("ねぎ", state="FEW")
        result = await draft_service.generate(test_user_id, 2)
        return result.session_id

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_items_sorted_by_state(self, draft_service, session, test_user_id):
        items = await draft_service.get_items(test_user_id, session)
        assert [(i.name, i.fridge_state.value) for i in items] == [
            ("ねぎ", "FEW"),
            ("豆腐", "UNKNOWN"),
            ("わかめ", "HAVE"),
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_skip_memo_category(self, draft_service, session, test_user_id):
        items = {i.name: i for i in await draft_service.get_items(test_user_id, session)}
        tofu = items["豆腐"]

        assert (await draft_service.set_item_skip(test_user_id, session, tofu.id, True)).skip is True
        assert (await draft_service.set_item_memo(test_user_id, session, tofu.id, "絹")).memo == "絹"

        custom = await draft_service.set_item_category(test_user_id, session, tofu.id, "custom", 2.7)
        assert (custom.category_id, custom.category_label_snapshot, custom.custom_expire_days) == ("custom", "カスタム", 2)

        regular = await draft_service.set_item_category(test_user_id, session, tofu.id, "eggs", 5)
        assert (regular.category_id, regular.category_label_snapshot, regular.custom_expire_days) == ("eggs", "卵", None)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_category_validated_up_front(self, draft_service, session, test_user_id):
        item = (await draft_service.get_items(test_user_id, session))[0]
        with pytest.raises(UnknownCategory):
            await draft_service.set_item_category(test_user_id, session, item.id, "nonexistent")
        with pytest.raises(InvalidCustomDuration):
            await draft_service.set_item_category(test_user_id, session, item.id, "custom", 0)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_ownership(self, draft_service, session, other_user_id, test_user_id):
        with pytest.raises(Forbidden):
            await draft_service.get_items(other_user_id, session)
        with pytest.raises(NotFound):
            await draft_service.get_session(test_user_id, "missing")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_item_from_other_session(self, draft_service, session, test_user_id):
        other = await draft_service.generate(test_user_id, 1)
        item = (await draft_service.get_items(test_user_id, session))[0]
        with pytest.raises(NotFound):
            await draft_service.set_item_skip(test_user_id, other.session_id, item.id, True)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_archived_session_is_read_only(self, draft_service, session, test_user_id):
        archived = await draft_service.archive_session(test_user_id, session)
        assert archived.status == DraftStatus.ARCHIVED
        assert archived.archived_at is not None

        item = (await draft_service.get_items(test_user_id, session))[0]
        with pytest.raises(InvalidTransition):
            await draft_service.set_item_memo(test_user_id, session, item.id, "x")

        # Archiving again is a no-op
        assert (await draft_service.archive_session(test_user_id, session)).status == DraftStatus.ARCHIVED

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_sessions(self, draft_service, session, clock, test_user_id):
        clock.advance(minutes=5)
        newer = await draft_service.generate(test_user_id, 3)
        await draft_service.archive_session(test_user_id, session)

        assert [s.id for s in await draft_service.list_sessions(test_user_id)] == [newer.session_id, session]
        drafts = await draft_service.list_sessions(test_user_id, status=DraftStatus.DRAFT)
        assert [s.id for s in drafts] == [newer.session_id]


class TestArchiveStale:
    """Tests for the stale draft job."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_archives_only_ended_drafts(self, draft_service, fake_db, clock, test_user_id):
        old = await draft_service.generate(test_user_id, 2)  # 01-02..01-03
        clock.advance(days=2)  # today 01-03
        current = await draft_service.generate(test_user_id, 2)  # 01-04..01-05
        clock.advance(days=1)  # today 01-04

        archived = await draft_service.archive_stale_sessions()

        assert archived == 1
        statuses = {s["id"]: s["status"] for s in fake_db.rows("shopping_draft_sessions")}
        assert statuses == {old.session_id: "ARCHIVED", current.session_id: "DRAFT"}
