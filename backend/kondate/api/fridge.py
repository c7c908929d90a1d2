"""Fridge inventory API endpoints."""

from fastapi import APIRouter, Depends, Query

from kondate.api.deps import fridge_service, get_current_user_id
from kondate.models.fridge import (
    AddFridgeLotRequest,
    ExpiringLotsResponse,
    FridgeLot,
    FridgeLotView,
    UpdateLotStateRequest,
    UpdateMemoRequest,
)
from kondate.services.fridge import FridgeService

router = APIRouter(prefix="/api/fridge", tags=["fridge"])


@router.get("/lots", response_model=list[FridgeLotView])
async def list_lots(
    user_id: str = Depends(get_current_user_id),
    service: FridgeService = Depends(fridge_service),
):
    """Lots ordered by expiry, soonest first, with remaining days."""
    return await service.list_lots(user_id)


@router.post("/lots", response_model=FridgeLot, status_code=201)
async def add_lot(
    request: AddFridgeLotRequest,
    user_id: str = Depends(get_current_user_id),
    service: FridgeService = Depends(fridge_service),
):
    """Add a lot. Expiry comes from the category rule or custom days."""
    return await service.add_lot(
        user_id,
        request.food_name,
        request.category_id,
        state=request.state,
        bought_at=request.bought_at,
        memo=request.memo,
        custom_expire_days=request.custom_expire_days,
    )


@router.get("/expiring", response_model=ExpiringLotsResponse)
async def expiring_lots(
    within_days: int = Query(2, ge=0, le=30),
    user_id: str = Depends(get_current_user_id),
    service: FridgeService = Depends(fridge_service),
):
    """Lots expiring within `within_days` (expired lots included)."""
    return await service.expiring(user_id, within_days)


@router.patch("/lots/{lot_id}/state", response_model=FridgeLot)
async def update_state(
    lot_id: str,
    request: UpdateLotStateRequest,
    user_id: str = Depends(get_current_user_id),
    service: FridgeService = Depends(fridge_service),
):
    return await service.update_state(user_id, lot_id, request.state)


@router.patch("/lots/{lot_id}/memo", response_model=FridgeLot)
async def update_memo(
    lot_id: str,
    request: UpdateMemoRequest,
    user_id: str = Depends(get_current_user_id),
    service: FridgeService = Depends(fridge_service),
):
    return await service.update_memo(user_id, lot_id, request.memo)


@router.post("/lots/{lot_id}/seen", response_model=FridgeLot)
async def mark_seen(
    lot_id: str,
    user_id: str = Depends(get_current_user_id),
    service: FridgeService = Depends(fridge_service),
):
    """Clear the "new" badge."""
    return await service.mark_seen(user_id, lot_id)


@router.delete("/lots/{lot_id}")
async def delete_lot(
    lot_id: str,
    user_id: str = Depends(get_current_user_id),
    service: FridgeService = Depends(fridge_service),
):
    await service.delete_lot(user_id, lot_id)
    return {"success": True, "deleted_id": lot_id}
