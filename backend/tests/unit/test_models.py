"""
Unit tests for model normalization of stored rows.
"""

import pytest

from kondate.models.fridge import DraftFridgeState, FridgeLot, FridgeState, UpdateLotStateRequest
from kondate.models.planning import DailySet, MealPlanDay, SlotKey, normalize_slot_key
from kondate.models.recipes import UNTITLED_RECIPE, Ingredient, Recipe
from kondate.models.shopping import Plan, ShoppingItem, ShoppingItemStatus, UserPlan


class TestFridgeState:
    """Tests for legacy state handling."""

    @pytest.mark.unit
    def test_little_is_few(self):
        """Legacy LITTLE should read as FEW."""
        assert FridgeState("LITTLE") == FridgeState.FEW
        assert FridgeState("little") == FridgeState.FEW
        assert DraftFridgeState("LITTLE") == DraftFridgeState.FEW

    @pytest.mark.unit
    def test_unknown_state_rejected(self):
        with pytest.raises(ValueError):
            FridgeState("PLENTY")

    @pytest.mark.unit
    def test_order(self):
        assert FridgeState.NONE.rank < FridgeState.FEW.rank < FridgeState.HAVE.rank

    @pytest.mark.unit
    def test_request_accepts_little(self):
        assert UpdateLotStateRequest(state="LITTLE").state == FridgeState.FEW

    @pytest.mark.unit
    def test_lot_without_state_is_have(self):
        lot = FridgeLot(
            id="l1",
            user_id="u1",
            state=None,
            bought_at="2024-01-01T00:00:00+00:00",
            expire_at="2024-01-04T00:00:00+00:00",
        )
        assert lot.state == FridgeState.HAVE


class TestIngredient:
    """Tests for ingredient row normalization."""

    @pytest.mark.unit
    def test_string_row(self):
        ingredient = Ingredient.from_raw(" たまご ")
        assert ingredient.name == "たまご"
        assert ingredient.display_text == "たまご"

    @pytest.mark.unit
    def test_dict_with_quantity_and_unit(self):
        ingredient = Ingredient.from_raw({"ingredient": "豚肉", "qty": 200, "unit": "g"})
        assert ingredient.name == "豚肉"
        assert ingredient.quantity == "200g"
        assert ingredient.display_text == "豚肉 200g"

    @pytest.mark.unit
    def test_explicit_raw_text_wins(self):
        ingredient = Ingredient.from_raw({"name": "ねぎ", "quantity": "1本", "rawText": "長ねぎ 1本"})
        assert ingredient.display_text == "長ねぎ 1本"

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [None, "", "   ", {"quantity": "1"}, 42])
    def test_nameless_rows_dropped(self, raw):
        assert Ingredient.from_raw(raw) is None

    @pytest.mark.unit
    def test_recipe_reads_mixed_rows(self):
        recipe = Recipe(
            id="r1",
            title="",
            category="mainDish",
            ingredients=["たまご", {"name": ""}, {"name": "牛乳", "amount": "100", "unit": "ml"}],
        )
        assert [i.name for i in recipe.ingredients] == ["たまご", "牛乳"]
        assert recipe.category == SlotKey.MAIN
        assert recipe.display_name == UNTITLED_RECIPE


class TestPlanningModels:
    """Tests for meal plan and daily set models."""

    @pytest.mark.unit
    @pytest.mark.parametrize("raw,slot", [
        ("staple", SlotKey.STAPLE),
        ("mainDish", SlotKey.MAIN),
        ("side_dish", SlotKey.SIDE),
        ("Soup", SlotKey.SOUP),
        ("dessert", None),
        (None, None),
    ])
    def test_normalize_slot_key(self, raw, slot):
        assert normalize_slot_key(raw) == slot

    @pytest.mark.unit
    def test_day_fills_missing_meals(self):
        day = MealPlanDay(user_id="u1", day_key="2024-01-02", lunch=None, dinner={"mainDish": "r1", "soup": ""})
        assert day.breakfast.main is None
        assert day.dinner.main == "r1"
        assert day.dinner.soup is None
        assert day.recipe_ids() == ["r1"]

    @pytest.mark.unit
    def test_daily_set_aliases(self):
        daily_set = DailySet(id="d1", name="定番", staple="r0", mainDish="r1", side="r2")
        slots = daily_set.slots()
        assert (slots.staple, slots.main, slots.side, slots.soup) == ("r0", "r1", "r2", None)


class TestShoppingModels:
    """Tests for shopping item and plan models."""

    @pytest.mark.unit
    def test_legacy_checked_is_skip(self):
        """Rows with only `checked` should read it as skip."""
        item = ShoppingItem(id="s1", user_id="u1", name="ねぎ", checked=True)
        assert item.skip is True
        assert item.status == ShoppingItemStatus.SKIP
        assert item.category_id == "custom"
        assert not item.pending_sync

    @pytest.mark.unit
    def test_pending_sync(self):
        item = ShoppingItem(id="s1", user_id="u1", name="ねぎ")
        assert item.is_active
        assert item.pending_sync

    @pytest.mark.unit
    @pytest.mark.parametrize("row,plan,days", [
        (None, Plan.FREE, 7),
        ({"plan": "FREE"}, Plan.FREE, 7),
        ({"plan": "PRO"}, Plan.PRO, 90),
        ({"plan": "ENTERPRISE"}, Plan.FREE, 7),
    ])
    def test_user_plan(self, row, plan, days):
        user_plan = UserPlan.from_row(row)
        assert user_plan.plan == plan
        assert user_plan.retention_days == days
