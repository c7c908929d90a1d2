"""
Fridge inventory service.

A lot is one purchase of one food with its own expiry. Expiry is computed
once, when the lot is created, from the category rule (or the user's days
for the `custom` category).
"""

import logging
from datetime import datetime
from typing import Optional

from supabase import Client

from kondate.models.fridge import (
    ExpiringLotsResponse,
    FridgeLot,
    FridgeLotView,
    FridgeState,
)
from kondate.services.clock import Clock, to_iso, utc_now
from kondate.services.expiration import ExpirationService
from kondate.services.supabase import TABLES, first_row, get_owned_row, get_supabase_client

logger = logging.getLogger(__name__)


class FridgeService:
    """CRUD over a user's fridge lots."""

    def __init__(
        self,
        client: Optional[Client] = None,
        clock: Clock = utc_now,
        expiration: Optional[ExpirationService] = None,
    ):
        self.client = client or get_supabase_client()
        self.clock = clock
        self.expiration = expiration or ExpirationService(self.client, clock)

    async def list_raw_lots(self, user_id: str) -> list[FridgeLot]:
        """Lots ordered by expire_at, earliest first."""
        result = (
            self.client.table(TABLES["fridge_lots"])
            .select("*")
            .eq("user_id", user_id)
            .order("expire_at")
            .execute()
        )
        return [FridgeLot(**row) for row in result.data or []]

    async def list_lots(self, user_id: str) -> list[FridgeLotView]:
        """Lots with remaining days and display band."""
        today = self.expiration.today()
        return [self._view(lot, today) for lot in await self.list_raw_lots(user_id)]

    def _view(self, lot: FridgeLot, today) -> FridgeLotView:
        remain = self.expiration.calc_remain_days(lot.expire_at, today)
        return FridgeLotView(
            **lot.model_dump(),
            remain_days=remain,
            expire_level=self.expiration.get_expire_level(remain),
        )

    async def prepare_lot(
        self,
        user_id: str,
        food_name: str,
        category_id: str,
        state: FridgeState = FridgeState.HAVE,
        bought_at: Optional[datetime] = None,
        memo: str = "",
        custom_expire_days=None,
    ) -> dict:
        """
        Build a lot row without writing it.

        Raises:
            UnknownCategory, InvalidCustomDuration: from the expiry computation
        """
        now = self.clock()
        bought_at = bought_at or now
        computed = await self.expiration.compute_expire_at(bought_at, category_id, custom_expire_days)
        return {
            "user_id": user_id,
            "food_name_snapshot": food_name.strip(),
            "category_id": computed.rule.id,
            "category_label_snapshot": computed.rule.label,
            "state": FridgeState(state).value,
            "bought_at": to_iso(computed.bought_at),
            "expire_at": to_iso(computed.expire_at),
            "expire_source": computed.expire_source.value,
            "memo": memo or "",
            "is_new": True,
            "created_at": to_iso(now),
            "updated_at": to_iso(now),
        }

    async def add_lot(
        self,
        user_id: str,
        food_name: str,
        category_id: str,
        state: FridgeState = FridgeState.HAVE,
        bought_at: Optional[datetime] = None,
        memo: str = "",
        custom_expire_days=None,
    ) -> FridgeLot:
        """Add a lot. Nothing is written if the expiry cannot be computed."""
        row = await self.prepare_lot(
            user_id,
            food_name,
            category_id,
            state=state,
            bought_at=bought_at,
            memo=memo,
            custom_expire_days=custom_expire_days,
        )
        result = self.client.table(TABLES["fridge_lots"]).insert(row).execute()
        created = first_row(result)
        if not created:
            raise ValueError("Failed to create fridge lot")

        logger.info(f"Added fridge lot {created['id']} ({row['food_name_snapshot']}) for user {user_id}")
        return FridgeLot(**created)

    async def _update(self, user_id: str, lot_id: str, patch: dict) -> FridgeLot:
        await get_owned_row(self.client, "fridge_lots", lot_id, user_id, "fridge lot")
        patch = {**patch, "updated_at": to_iso(self.clock())}
        result = self.client.table(TABLES["fridge_lots"]).update(patch).eq("id", lot_id).execute()
        return FridgeLot(**first_row(result))

    async def update_state(self, user_id: str, lot_id: str, state) -> FridgeLot:
        """Set the stock level. Legacy "LITTLE" is stored as FEW."""
        return await self._update(user_id, lot_id, {"state": FridgeState(state).value})

    async def update_memo(self, user_id: str, lot_id: str, memo: str) -> FridgeLot:
        return await self._update(user_id, lot_id, {"memo": memo or ""})

    async def mark_seen(self, user_id: str, lot_id: str) -> FridgeLot:
        return await self._update(user_id, lot_id, {"is_new": False})

    async def delete_lot(self, user_id: str, lot_id: str) -> None:
        await get_owned_row(self.client, "fridge_lots", lot_id, user_id, "fridge lot")
        self.client.table(TABLES["fridge_lots"]).delete().eq("id", lot_id).execute()
        logger.info(f"Deleted fridge lot {lot_id} for user {user_id}")

    async def expiring(self, user_id: str, within_days: int) -> ExpiringLotsResponse:
        """Lots with at most `within_days` remaining, expired ones included."""
        lots = [lot for lot in await self.list_lots(user_id) if lot.remain_days <= within_days]
        expired = sum(1 for lot in lots if lot.remain_days <= 0)
        return ExpiringLotsResponse(
            within_days=within_days,
            lots=lots,
            expired_count=expired,
            expiring_count=len(lots) - expired,
        )


# Singleton
_fridge_service: Optional[FridgeService] = None


def get_fridge_service() -> FridgeService:
    """Get fridge service singleton."""
    global _fridge_service
    if _fridge_service is None:
        _fridge_service = FridgeService()
    return _fridge_service
