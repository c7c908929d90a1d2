"""
Shopping API endpoints.

Drafts: generate from the meal plan, review, then apply to the list.
Items: the durable shopping list, its history and the sync into the fridge.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from kondate.api.deps import get_current_user_id, shopping_draft_service, shopping_list_service
from kondate.models.shopping import (
    AddShoppingItemRequest,
    ApplyDraftResult,
    BulkDeleteResult,
    BulkUpdateResult,
    CategoryRequest,
    DraftItem,
    DraftItemSkipRequest,
    DraftSession,
    DraftSessionWithItems,
    DraftStatus,
    GenerateDraftRequest,
    GenerateDraftResult,
    MemoRequest,
    PurchasedRequest,
    ShoppingItem,
    ShoppingNotes,
    ShoppingSummary,
    SkipRequest,
    SyncRequest,
    SyncResult,
    UserPlan,
)
from kondate.services.shopping_drafts import ShoppingDraftService
from kondate.services.shopping_lists import ShoppingListService

router = APIRouter(prefix="/api/shopping", tags=["shopping"])


# ============================================================================
# Drafts
# ============================================================================


@router.post("/drafts", response_model=GenerateDraftResult, status_code=201)
async def generate_draft(
    request: GenerateDraftRequest,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingDraftService = Depends(shopping_draft_service),
):
    """
    Build a draft from the meals planned for the next `range_days` days,
    starting tomorrow. Earlier drafts are left as they are.
    """
    return await service.generate(user_id, request.range_days)


@router.get("/drafts", response_model=list[DraftSession])
async def list_drafts(
    status: Optional[DraftStatus] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    service: ShoppingDraftService = Depends(shopping_draft_service),
):
    return await service.list_sessions(user_id, status=status, limit=limit)


@router.get("/drafts/{session_id}", response_model=DraftSessionWithItems)
async def get_draft(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingDraftService = Depends(shopping_draft_service),
):
    """A session and its items, missing food first."""
    session = await service.get_session(user_id, session_id)
    items = await service.get_items(user_id, session_id)
    return DraftSessionWithItems(session=session, items=items)


@router.patch("/drafts/{session_id}/items/{item_id}/skip", response_model=DraftItem)
async def set_draft_item_skip(
    session_id: str,
    item_id: str,
    request: DraftItemSkipRequest,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingDraftService = Depends(shopping_draft_service),
):
    return await service.set_item_skip(user_id, session_id, item_id, request.skip)


@router.patch("/drafts/{session_id}/items/{item_id}/memo", response_model=DraftItem)
async def set_draft_item_memo(
    session_id: str,
    item_id: str,
    request: MemoRequest,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingDraftService = Depends(shopping_draft_service),
):
    return await service.set_item_memo(user_id, session_id, item_id, request.memo)


@router.patch("/drafts/{session_id}/items/{item_id}/category", response_model=DraftItem)
async def set_draft_item_category(
    session_id: str,
    item_id: str,
    request: CategoryRequest,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingDraftService = Depends(shopping_draft_service),
):
    return await service.set_item_category(
        user_id, session_id, item_id, request.category_id, request.custom_expire_days
    )


@router.post("/drafts/{session_id}/apply", response_model=ApplyDraftResult)
async def apply_draft(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingDraftService = Depends(shopping_draft_service),
):
    """Copy the non-skipped items to the shopping list (once per draft)."""
    return await service.apply(user_id, session_id)


@router.post("/drafts/{session_id}/archive", response_model=DraftSession)
async def archive_draft(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingDraftService = Depends(shopping_draft_service),
):
    return await service.archive_session(user_id, session_id)


# ============================================================================
# Items
# ============================================================================


@router.get("/items", response_model=list[ShoppingItem])
async def list_items(
    include_synced: bool = Query(False, description="Include items already moved to the fridge"),
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    if include_synced:
        return await service.list_items(user_id)
    return await service.active_items(user_id)


@router.post("/items", response_model=ShoppingItem, status_code=201)
async def add_item(
    request: AddShoppingItemRequest,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    return await service.add_item(user_id, request)


@router.get("/summary", response_model=ShoppingSummary)
async def summary(
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    return await service.summary(user_id)


@router.get("/history", response_model=list[ShoppingItem])
async def history(
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    """Synced items within the plan's retention window."""
    return await service.visible_history(user_id)


@router.get("/plan", response_model=UserPlan)
async def user_plan(
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    return await service.get_user_plan(user_id)


@router.post("/items/mark-all-purchased", response_model=BulkUpdateResult)
async def mark_all_purchased(
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    return await service.mark_all_purchased(user_id)


@router.delete("/items", response_model=BulkDeleteResult)
async def delete_all(
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    """Clear the list (history is kept)."""
    return await service.delete_all(user_id)


@router.patch("/items/{item_id}/purchased", response_model=ShoppingItem)
async def set_purchased(
    item_id: str,
    request: PurchasedRequest,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    return await service.set_purchased(user_id, item_id, request.purchased)


@router.patch("/items/{item_id}/skip", response_model=ShoppingItem)
async def set_skip(
    item_id: str,
    request: SkipRequest,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    return await service.set_skip(user_id, item_id, request.skip)


@router.patch("/items/{item_id}/memo", response_model=ShoppingItem)
async def set_memo(
    item_id: str,
    request: MemoRequest,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    return await service.set_memo(user_id, item_id, request.memo)


@router.delete("/items/{item_id}")
async def delete_item(
    item_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    await service.delete_item(user_id, item_id)
    return {"success": True, "deleted_id": item_id}


@router.post("/sync", response_model=SyncResult)
async def sync_to_fridge(
    request: SyncRequest,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    """Move pending items (all, or the given ids) into the fridge."""
    return await service.sync_pending(user_id, request.item_ids)


# ============================================================================
# Notes
# ============================================================================


@router.get("/notes", response_model=ShoppingNotes)
async def get_notes(
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    return await service.get_notes(user_id)


@router.put("/notes", response_model=ShoppingNotes)
async def set_notes(
    request: ShoppingNotes,
    user_id: str = Depends(get_current_user_id),
    service: ShoppingListService = Depends(shopping_list_service),
):
    return await service.set_notes(user_id, request.note)
