"""Supabase client service."""

import logging
from functools import lru_cache

from supabase import create_client, Client

from kondate.config import get_settings
from kondate.errors import Forbidden, NotFound

logger = logging.getLogger(__name__)


@lru_cache
def get_supabase_client() -> Client:
    """Get Supabase client with service role key (admin access)."""
    settings = get_settings()
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
    )


# Table names
TABLES = {
    "category_rules": "category_expire_rules",
    "fridge_lots": "fridge_lots",
    "recipes": "recipes",
    "daily_sets": "daily_sets",
    "day_sets": "weekly_day_sets",
    "shopping_items": "shopping_items",
    "draft_sessions": "shopping_draft_sessions",
    "draft_items": "shopping_draft_items",
    "users": "users",
    "app_configs": "app_configs",
}

# PostgREST `in` filters are chunked to keep URLs short
IN_CHUNK_SIZE = 100


def first_row(result) -> dict | None:
    """First row of an execute() result, or None."""
    data = result.data if result is not None else None
    if not data:
        return None
    if isinstance(data, list):
        return data[0]
    return data


async def get_user_row(client: Client, user_id: str) -> dict | None:
    """Get the users/{uid} row (plan, shopping note)."""
    result = client.table(TABLES["users"]).select("*").eq("id", user_id).limit(1).execute()
    return first_row(result)


async def get_all_user_ids(client: Client) -> list[str]:
    """Distinct owners of fridge lots (for cron jobs that process all users)."""
    result = client.table(TABLES["fridge_lots"]).select("user_id").execute()
    return sorted({row["user_id"] for row in result.data or [] if row.get("user_id")})


async def get_owned_row(client: Client, table: str, row_id: str, user_id: str, kind: str) -> dict:
    """
    Load a row by id and check it belongs to `user_id`.

    Raises:
        NotFound: no row with that id
        Forbidden: the row belongs to another user
    """
    result = client.table(TABLES[table]).select("*").eq("id", row_id).limit(1).execute()
    row = first_row(result)
    if row is None:
        raise NotFound(f"{kind} not found: {row_id}")
    if row.get("user_id") != user_id:
        raise Forbidden(f"{kind} {row_id} belongs to another user")
    return row


def chunked(values: list, size: int = IN_CHUNK_SIZE):
    for i in range(0, len(values), size):
        yield values[i:i + size]
