"""
Shopping list service.

Shopping items are durable to-buy entries, created by applying a draft or
added by hand. Syncing moves bought items into the fridge: each becomes a
new lot and the item is kept as history (status SYNCED) for as long as the
user's plan allows.
"""

import logging
from datetime import timedelta
from typing import Optional

from supabase import Client

from kondate.config import get_settings
from kondate.errors import Forbidden, InvalidTransition, NotFound, ValidationFailed
from kondate.models.expiration import CUSTOM_CATEGORY_ID
from kondate.models.fridge import FridgeState
from kondate.models.shopping import (
    AddShoppingItemRequest,
    BulkDeleteResult,
    BulkUpdateResult,
    ShoppingItem,
    ShoppingItemStatus,
    ShoppingNotes,
    ShoppingSummary,
    SyncResult,
    UserPlan,
)
from kondate.services.batch import UnitOfWork
from kondate.services.clock import Clock, ensure_aware, to_iso, utc_now
from kondate.services.expiration import ExpirationService, validate_custom_days
from kondate.services.fridge import FridgeService
from kondate.services.supabase import (
    TABLES,
    first_row,
    get_owned_row,
    get_supabase_client,
    get_user_row,
)

logger = logging.getLogger(__name__)


class ShoppingListService:
    """Shopping items, notes, history and the sync into the fridge."""

    def __init__(
        self,
        client: Optional[Client] = None,
        clock: Clock = utc_now,
        fridge: Optional[FridgeService] = None,
        expiration: Optional[ExpirationService] = None,
    ):
        self.client = client or get_supabase_client()
        self.clock = clock
        self.settings = get_settings()
        self.expiration = expiration or ExpirationService(self.client, clock)
        self.fridge = fridge or FridgeService(self.client, clock, self.expiration)

    async def get_user_plan(self, user_id: str) -> UserPlan:
        return UserPlan.from_row(await get_user_row(self.client, user_id))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_items(self, user_id: str) -> list[ShoppingItem]:
        """All items, newest first."""
        result = (
            self.client.table(TABLES["shopping_items"])
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [ShoppingItem(**row) for row in result.data or []]

    async def active_items(self, user_id: str) -> list[ShoppingItem]:
        """Items still on the list (not yet synced)."""
        return [item for item in await self.list_items(user_id) if item.is_active]

    async def visible_history(self, user_id: str) -> list[ShoppingItem]:
        """
        Synced items inside the plan's retention window, latest sync first.

        This only filters what is shown; expired history is not deleted.
        """
        plan = await self.get_user_plan(user_id)
        cutoff = ensure_aware(self.clock()) - timedelta(days=plan.retention_days)
        history = [
            item for item in await self.list_items(user_id)
            if item.status == ShoppingItemStatus.SYNCED
            and item.synced_at is not None
            and ensure_aware(item.synced_at) >= cutoff
        ]
        history.sort(key=lambda i: ensure_aware(i.synced_at), reverse=True)
        return history

    async def summary(self, user_id: str) -> ShoppingSummary:
        active = await self.active_items(user_id)
        return ShoppingSummary(
            active_count=len(active),
            skip_count=sum(1 for i in active if i.skip),
            bought_count=sum(1 for i in active if not i.skip and i.purchased),
            unbought_count=sum(1 for i in active if not i.skip and not i.purchased),
            pending_sync_count=sum(1 for i in active if i.pending_sync),
        )

    # ------------------------------------------------------------------
    # Item edits
    # ------------------------------------------------------------------

    async def add_item(self, user_id: str, request: AddShoppingItemRequest) -> ShoppingItem:
        """
        Add an entry by hand.

        Raises:
            ValidationFailed: blank name
            UnknownCategory: no rule for the category
            InvalidCustomDuration: non-positive custom days
        """
        name = request.name.strip()
        if not name:
            raise ValidationFailed("name must not be blank")

        rule = await self.expiration.resolve(request.category_id or CUSTOM_CATEGORY_ID)
        if rule.is_custom:
            days = request.custom_expire_days
            days = self.settings.custom_expire_days_default if days is None else validate_custom_days(days)
        else:
            days = None

        now = to_iso(self.clock())
        row = {
            "user_id": user_id,
            "name": name,
            "memo": request.memo,
            "sources": [s.model_dump(mode="json") for s in request.sources],
            "category_id": rule.id,
            "category_label_snapshot": request.category_label_snapshot or rule.label,
            "custom_expire_days": days,
            "skip": False,
            "purchased": False,
            "status": ShoppingItemStatus.TODO.value,
            "synced_to_fridge": False,
            "created_at": now,
            "updated_at": now,
        }
        result = self.client.table(TABLES["shopping_items"]).insert(row).execute()
        created = first_row(result)
        if not created:
            raise ValueError("Failed to create shopping item")

        logger.info(f"Added shopping item {created['id']} ({name}) for user {user_id}")
        return ShoppingItem(**created)

    async def _get_item(self, user_id: str, item_id: str) -> ShoppingItem:
        row = await get_owned_row(self.client, "shopping_items", item_id, user_id, "shopping item")
        return ShoppingItem(**row)

    async def _active_item(self, user_id: str, item_id: str) -> ShoppingItem:
        item = await self._get_item(user_id, item_id)
        if not item.is_active:
            raise InvalidTransition(f"shopping item {item_id} is already in the fridge")
        return item

    async def _update(self, item_id: str, patch: dict) -> ShoppingItem:
        patch = {**patch, "updated_at": to_iso(self.clock())}
        result = self.client.table(TABLES["shopping_items"]).update(patch).eq("id", item_id).execute()
        return ShoppingItem(**first_row(result))

    async def set_purchased(self, user_id: str, item_id: str, purchased: bool) -> ShoppingItem:
        """Tick an item as bought (or untick it). Skipped items cannot be bought."""
        item = await self._active_item(user_id, item_id)
        if purchased and item.skip:
            raise InvalidTransition(f"shopping item {item_id} is skipped")
        return await self._update(item_id, {
            "purchased": bool(purchased),
            "purchased_at": to_iso(self.clock()) if purchased else None,
        })

    async def set_skip(self, user_id: str, item_id: str, skip: bool) -> ShoppingItem:
        """Skipping also clears the purchased tick."""
        await self._active_item(user_id, item_id)
        if skip:
            patch = {
                "skip": True,
                "status": ShoppingItemStatus.SKIP.value,
                "skipped_at": to_iso(self.clock()),
                "purchased": False,
                "purchased_at": None,
            }
        else:
            patch = {
                "skip": False,
                "status": ShoppingItemStatus.TODO.value,
                "skipped_at": None,
            }
        return await self._update(item_id, patch)

    async def set_memo(self, user_id: str, item_id: str, memo: str) -> ShoppingItem:
        await self._get_item(user_id, item_id)
        return await self._update(item_id, {"memo": memo or ""})

    async def delete_item(self, user_id: str, item_id: str) -> None:
        await self._get_item(user_id, item_id)
        self.client.table(TABLES["shopping_items"]).delete().eq("id", item_id).execute()
        logger.info(f"Deleted shopping item {item_id} for user {user_id}")

    async def mark_all_purchased(self, user_id: str) -> BulkUpdateResult:
        """Tick every active, non-skipped, unbought item."""
        now = to_iso(self.clock())
        targets = [i for i in await self.active_items(user_id) if not i.skip and not i.purchased]
        for item in targets:
            self.client.table(TABLES["shopping_items"]).update({
                "purchased": True,
                "purchased_at": now,
                "updated_at": now,
            }).eq("id", item.id).execute()

        logger.info(f"Marked {len(targets)} shopping items purchased for user {user_id}")
        return BulkUpdateResult(updated=len(targets))

    async def delete_all(self, user_id: str) -> BulkDeleteResult:
        """Clear the list. Synced history is kept."""
        targets = await self.active_items(user_id)
        for item in targets:
            self.client.table(TABLES["shopping_items"]).delete().eq("id", item.id).execute()

        logger.info(f"Deleted {len(targets)} shopping items for user {user_id}")
        return BulkDeleteResult(deleted=len(targets))

    # ------------------------------------------------------------------
    # Notes (users/{uid}.shopping_note)
    # ------------------------------------------------------------------

    async def get_notes(self, user_id: str) -> ShoppingNotes:
        row = await get_user_row(self.client, user_id) or {}
        return ShoppingNotes(note=str(row.get("shopping_note") or ""))

    async def set_notes(self, user_id: str, note: str) -> ShoppingNotes:
        self.client.table(TABLES["users"]).upsert(
            {"id": user_id, "shopping_note": note or "", "updated_at": to_iso(self.clock())},
            on_conflict="id",
        ).execute()
        return ShoppingNotes(note=note or "")

    # ------------------------------------------------------------------
    # Sync to fridge
    # ------------------------------------------------------------------

    async def pending_items(self, user_id: str, item_ids: Optional[list[str]] = None) -> list[ShoppingItem]:
        """
        Items waiting to go into the fridge.

        With `item_ids`, only those items; ids that are not the user's
        items raise NotFound, ids that are not pending are left out.
        """
        items = await self.list_items(user_id)
        if item_ids is not None:
            by_id = {item.id: item for item in items}
            unknown = [i for i in item_ids if i not in by_id]
            if unknown:
                raise NotFound(f"shopping items not found: {', '.join(unknown)}")
            items = [by_id[i] for i in dict.fromkeys(item_ids)]
        return [item for item in items if item.pending_sync]

    async def sync_pending(self, user_id: str, item_ids: Optional[list[str]] = None) -> SyncResult:
        return await self.sync_to_fridge(user_id, await self.pending_items(user_id, item_ids))

    async def sync_to_fridge(self, user_id: str, items: list[ShoppingItem]) -> SyncResult:
        """
        Create one fridge lot per item and mark the items SYNCED.

        Callers pass the items to sync; already-synced flags are not
        re-checked here. Every lot is computed before anything is written,
        so an unknown category fails the whole call without side effects.

        Raises:
            Forbidden: an item belongs to another user
            UnknownCategory, InvalidCustomDuration: lot computation
            BatchWriteError: a write failed (earlier writes are undone)
        """
        if not items:
            return SyncResult(synced=0)

        now = ensure_aware(self.clock())
        plan = await self.get_user_plan(user_id)
        purge_at = now + timedelta(days=plan.retention_days)

        prepared = []
        for item in items:
            if item.user_id != user_id:
                raise Forbidden(f"shopping item {item.id} belongs to another user")
            category_id = item.category_id or CUSTOM_CATEGORY_ID
            days = item.custom_expire_days
            if category_id == CUSTOM_CATEGORY_ID and days is None:
                days = self.settings.custom_expire_days_default
            lot_row = await self.fridge.prepare_lot(
                user_id,
                item.name,
                category_id,
                state=FridgeState.HAVE,
                bought_at=now,
                custom_expire_days=days,
            )
            prepared.append((item, lot_row))

        item_ids, lot_ids = [], []
        with UnitOfWork(self.client, f"sync {len(prepared)} items to fridge for {user_id}") as uow:
            for item, lot_row in prepared:
                lot = uow.insert(TABLES["fridge_lots"], lot_row, label=item.id)
                uow.update(
                    TABLES["shopping_items"],
                    item.id,
                    patch={
                        "status": ShoppingItemStatus.SYNCED.value,
                        "synced_at": to_iso(now),
                        "purge_at": to_iso(purge_at),
                        "synced_to_fridge": True,
                        "updated_at": to_iso(now),
                    },
                    previous={
                        "status": item.status.value,
                        "synced_at": to_iso(item.synced_at),
                        "purge_at": to_iso(item.purge_at),
                        "synced_to_fridge": item.synced_to_fridge,
                        "updated_at": to_iso(item.updated_at),
                    },
                    label=item.id,
                )
                lot_ids.append(lot["id"])
                item_ids.append(item.id)

        logger.info(f"Synced {len(item_ids)} shopping items to fridge for user {user_id}")
        return SyncResult(synced=len(item_ids), item_ids=item_ids, lot_ids=lot_ids)


# Singleton
_shopping_list_service: Optional[ShoppingListService] = None


def get_shopping_list_service() -> ShoppingListService:
    """Get shopping list service singleton."""
    global _shopping_list_service
    if _shopping_list_service is None:
        _shopping_list_service = ShoppingListService()
    return _shopping_list_service
