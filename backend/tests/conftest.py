"""
Pytest configuration and shared fixtures.

Fixtures defined here are available to all tests. Services run against
FakeSupabase, an in-memory stand-in for the Supabase query builder, and a
pinned clock.
"""

import copy
import os
import re
import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from postgrest.exceptions import APIError

# Add backend to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment
os.environ["TESTING"] = "true"
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ["TIMEZONE"] = "Asia/Tokyo"
os.environ.pop("API_KEY", None)
os.environ.pop("CRON_SECRET", None)
os.environ.pop("NTFY_TOPIC", None)


# =============================================================================
# Fake Supabase
# =============================================================================


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Chainable query over one in-memory table."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = None
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.order_by = []
        self.limit_n = None

    # Operations
    def select(self, *columns, **kwargs):
        self.op = self.op or "select"
        return self

    def insert(self, rows, **kwargs):
        self.op, self.payload = "insert", rows
        return self

    def update(self, patch, **kwargs):
        self.op, self.payload = "update", patch
        return self

    def upsert(self, rows, on_conflict=None, **kwargs):
        self.op, self.payload, self.on_conflict = "upsert", rows, on_conflict
        return self

    def delete(self, **kwargs):
        self.op = "delete"
        return self

    # Filters
    def _filter(self, column, test):
        self.filters.append((column, test))
        return self

    def eq(self, column, value):
        return self._filter(column, lambda v: v == value)

    def neq(self, column, value):
        return self._filter(column, lambda v: v != value)

    def lt(self, column, value):
        return self._filter(column, lambda v: v is not None and v < value)

    def lte(self, column, value):
        return self._filter(column, lambda v: v is not None and v <= value)

    def gt(self, column, value):
        return self._filter(column, lambda v: v is not None and v > value)

    def gte(self, column, value):
        return self._filter(column, lambda v: v is not None and v >= value)

    def in_(self, column, values):
        values = list(values)
        return self._filter(column, lambda v: v in values)

    def ilike(self, column, pattern):
        regex = re.compile(
            "^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$",
            re.IGNORECASE | re.DOTALL,
        )
        return self._filter(column, lambda v: v is not None and regex.match(str(v)) is not None)

    def order(self, column, desc=False, **kwargs):
        self.order_by.append((column, desc))
        return self

    def limit(self, n, **kwargs):
        self.limit_n = n
        return self

    def _matches(self, row):
        return all(test(row.get(column)) for column, test in self.filters)

    def execute(self):
        self.db.calls.append((self.table_name, self.op))
        self.db.check_failure(self.table_name, self.op)
        rows = self.db.tables.setdefault(self.table_name, [])

        if self.op == "select":
            found = [r for r in rows if self._matches(r)]
            for column, desc in reversed(self.order_by):
                present = [r for r in found if r.get(column) is not None]
                missing = [r for r in found if r.get(column) is None]
                found = sorted(present, key=lambda r: r[column], reverse=desc) + missing
            if self.limit_n is not None:
                found = found[:self.limit_n]
            return FakeResult(copy.deepcopy(found))

        if self.op == "insert":
            batch = self.payload if isinstance(self.payload, list) else [self.payload]
            created = []
            for row in batch:
                row = copy.deepcopy(row)
                row.setdefault("id", str(uuid.uuid4()))
                rows.append(row)
                created.append(copy.deepcopy(row))
            return FakeResult(created)

        if self.op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self.payload))
                    updated.append(copy.deepcopy(row))
            return FakeResult(updated)

        if self.op == "delete":
            deleted = [r for r in rows if self._matches(r)]
            self.db.tables[self.table_name] = [r for r in rows if not self._matches(r)]
            return FakeResult(copy.deepcopy(deleted))

        if self.op == "upsert":
            keys = (self.on_conflict or "id").split(",")
            batch = self.payload if isinstance(self.payload, list) else [self.payload]
            result = []
            for new in batch:
                existing = next(
                    (r for r in rows if all(r.get(k) == new.get(k) for k in keys)),
                    None,
                )
                if existing is None:
                    existing = {"id": str(uuid.uuid4())}
                    rows.append(existing)
                existing.update(copy.deepcopy(new))
                result.append(copy.deepcopy(existing))
            return FakeResult(result)

        raise AssertionError(f"no operation on {self.table_name}")


class FakeSupabase:
    """In-memory Supabase client: `table(name)` returns a FakeQuery."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self._failures: list[dict] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def seed(self, table: str, rows: list[dict]) -> list[dict]:
        stored = self.tables.setdefault(table, [])
        for row in rows:
            row = copy.deepcopy(row)
            row.setdefault("id", str(uuid.uuid4()))
            stored.append(row)
        return stored

    def rows(self, table: str, **where) -> list[dict]:
        return [
            r for r in self.tables.get(table, [])
            if all(r.get(k) == v for k, v in where.items())
        ]

    def fail(self, table: str, op: str, after: int = 0):
        """Make the (after+1)-th `op` on `table` raise APIError."""
        self._failures.append({"table": table, "op": op, "remaining": after})

    def check_failure(self, table: str, op: str):
        for failure in self._failures:
            if failure["table"] == table and failure["op"] == op:
                if failure["remaining"] == 0:
                    self._failures.remove(failure)
                    raise APIError({"message": f"injected {op} failure on {table}", "code": "XX000"})
                failure["remaining"] -= 1


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


# =============================================================================
# Data Fixtures
# =============================================================================


CATEGORY_RULES = [
    {"id": "leafy_greens", "label": "葉物野菜", "default_expire_days": 4, "basis": "USDA_FDA_4C", "order": 100},
    {"id": "raw_meat", "label": "生肉", "default_expire_days": 2, "basis": "USDA_FDA_4C", "order": 200},
    {"id": "eggs", "label": "卵", "default_expire_days": 21, "basis": "USDA_FDA_4C", "order": 300},
    {"id": "custom", "label": "カスタム", "default_expire_days": 0, "basis": "USER", "order": 9999},
]


@pytest.fixture
def test_user_id():
    """Test user ID for database operations."""
    return "test-user-00000000-0000-0000-0000-000000000000"


@pytest.fixture
def other_user_id():
    return "other-user-11111111-1111-1111-1111-111111111111"


@pytest.fixture
def clock():
    """2024-01-01 12:00 in Asia/Tokyo; "tomorrow" is 2024-01-02."""
    return FixedClock(datetime(2024, 1, 1, 3, 0, tzinfo=timezone.utc))


@pytest.fixture
def fake_db():
    """Fake Supabase client seeded with category rules."""
    db = FakeSupabase()
    db.seed("category_expire_rules", CATEGORY_RULES)
    return db


@pytest.fixture
def seed_recipe(fake_db, test_user_id):
    """Insert a recipe row and return its id."""
    def _seed(name, ingredients, seasonings=None, category="main", recipe_id=None, user_id=None):
        row = {
            "id": recipe_id or str(uuid.uuid4()),
            "user_id": user_id or test_user_id,
            "recipe_name": name,
            "category": category,
            "ingredients": ingredients,
            "seasonings": seasonings or [],
            "created_at": "2023-12-01T00:00:00+00:00",
        }
        fake_db.seed("recipes", [row])
        return row["id"]
    return _seed


@pytest.fixture
def seed_day(fake_db, test_user_id):
    """Insert a weekly day row: seed_day("2024-01-02", dinner={"main": rid})."""
    def _seed(day_key, user_id=None, **meals):
        row = {"user_id": user_id or test_user_id, "day_key": day_key, "memo": ""}
        for meal in ("breakfast", "lunch", "dinner"):
            row[meal] = meals.get(meal, {})
        fake_db.seed("weekly_day_sets", [row])
        return row
    return _seed


@pytest.fixture
def seed_lot(fake_db, test_user_id):
    def _seed(name, state="HAVE", expire_at="2024-01-10T03:00:00+00:00", user_id=None):
        row = {
            "user_id": user_id or test_user_id,
            "food_name_snapshot": name,
            "category_id": "custom",
            "category_label_snapshot": "カスタム",
            "state": state,
            "bought_at": "2024-01-01T03:00:00+00:00",
            "expire_at": expire_at,
            "expire_source": "USER",
            "memo": "",
            "is_new": False,
        }
        return fake_db.seed("fridge_lots", [row])[-1]
    return _seed


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def expiration_service(fake_db, clock):
    from kondate.services.expiration import ExpirationService
    return ExpirationService(client=fake_db, clock=clock)


@pytest.fixture
def fridge_service(fake_db, clock, expiration_service):
    from kondate.services.fridge import FridgeService
    return FridgeService(client=fake_db, clock=clock, expiration=expiration_service)


@pytest.fixture
def recipe_service(fake_db, clock):
    from kondate.services.recipes import RecipeService
    return RecipeService(client=fake_db, clock=clock)


@pytest.fixture
def meal_plan_service(fake_db, clock):
    from kondate.services.planning import MealPlanService
    return MealPlanService(client=fake_db, clock=clock)


@pytest.fixture
def draft_service(fake_db, clock, expiration_service, fridge_service, recipe_service, meal_plan_service):
    from kondate.services.shopping_drafts import ShoppingDraftService
    return ShoppingDraftService(
        client=fake_db,
        clock=clock,
        planning=meal_plan_service,
        recipes=recipe_service,
        fridge=fridge_service,
        expiration=expiration_service,
    )


@pytest.fixture
def shopping_service(fake_db, clock, expiration_service, fridge_service):
    from kondate.services.shopping_lists import ShoppingListService
    return ShoppingListService(
        client=fake_db,
        clock=clock,
        fridge=fridge_service,
        expiration=expiration_service,
    )


# =============================================================================
# App Fixtures
# =============================================================================


@pytest.fixture
def app(
    expiration_service,
    fridge_service,
    recipe_service,
    meal_plan_service,
    draft_service,
    shopping_service,
):
    """FastAPI test application wired to the fake database."""
    from kondate.api import deps
    from kondate.main import app

    app.dependency_overrides[deps.expiration_service] = lambda: expiration_service
    app.dependency_overrides[deps.fridge_service] = lambda: fridge_service
    app.dependency_overrides[deps.recipe_service] = lambda: recipe_service
    app.dependency_overrides[deps.meal_plan_service] = lambda: meal_plan_service
    app.dependency_overrides[deps.shopping_draft_service] = lambda: draft_service
    app.dependency_overrides[deps.shopping_list_service] = lambda: shopping_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Sync test client for API tests (lifespan not run)."""
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture
async def async_client(app):
    """Async test client for API tests."""
    from httpx import AsyncClient, ASGITransport
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client
