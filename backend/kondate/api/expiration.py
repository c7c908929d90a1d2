"""Expiration policy API endpoints."""

from fastapi import APIRouter, Depends

from kondate.api.deps import expiration_service
from kondate.models.expiration import (
    AppConfig,
    CategoryExpireRule,
    ComputeExpireRequest,
    ComputeExpireResponse,
)
from kondate.services.expiration import ExpirationService

router = APIRouter(prefix="/api/expiration", tags=["expiration"])


@router.get("/categories", response_model=list[CategoryExpireRule])
async def list_categories(service: ExpirationService = Depends(expiration_service)):
    """Category rules in display order."""
    return await service.list_rules()


@router.get("/categories/{category_id}", response_model=CategoryExpireRule)
async def get_category(category_id: str, service: ExpirationService = Depends(expiration_service)):
    """One category rule (404 when unknown)."""
    return await service.resolve(category_id)


@router.post("/compute", response_model=ComputeExpireResponse)
async def compute_expiration(
    request: ComputeExpireRequest,
    service: ExpirationService = Depends(expiration_service),
):
    """
    Preview the expiry a new lot would get.

    `bought_at` defaults to now. The `custom` category needs
    `custom_expire_days`.
    """
    bought_at = request.bought_at or service.clock()
    computed = await service.compute_expire_at(bought_at, request.category_id, request.custom_expire_days)
    remain = service.calc_remain_days(computed.expire_at)
    return ComputeExpireResponse(
        category_id=computed.rule.id,
        category_label=computed.rule.label,
        bought_at=computed.bought_at,
        expire_at=computed.expire_at,
        expire_source=computed.expire_source,
        remain_days=remain,
        level=service.get_expire_level(remain),
    )


@router.get("/app-config", response_model=AppConfig)
async def get_app_config(service: ExpirationService = Depends(expiration_service)):
    """Static app texts (cold storage disclaimer)."""
    return await service.get_app_config()
