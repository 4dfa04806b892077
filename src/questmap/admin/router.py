"""Admin endpoints — redemption and dashboard (admin role required)."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from questmap.admin.schemas import AdminMetricsResponse, AdminUserResponse
from questmap.admin.service import get_admin_metrics, list_users
from questmap.auth.dependencies import require_admin
from questmap.database import get_session
from questmap.dependencies import get_economy
from questmap.shop.economy import EconomyEngine
from questmap.shop.schemas import RedeemRequest, RedeemResponse

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.post("/redeem", response_model=RedeemResponse)
async def redeem_purchase(
    body: RedeemRequest,
    economy: EconomyEngine = Depends(get_economy),
) -> RedeemResponse:
    """Hand over a purchased item. Each purchase can be redeemed once."""
    return await economy.redeem(body.purchase_id)


@router.get("/metrics", response_model=AdminMetricsResponse)
async def admin_metrics(db: AsyncSession = Depends(get_session)) -> AdminMetricsResponse:
    return await get_admin_metrics(db)


@router.get("/users", response_model=list[AdminUserResponse])
async def admin_users(db: AsyncSession = Depends(get_session)) -> list[AdminUserResponse]:
    return await list_users(db)
