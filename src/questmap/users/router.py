"""User profile endpoints — /api/user/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from questmap.auth.dependencies import get_current_user
from questmap.database import get_session
from questmap.db.models import User
from questmap.dependencies import get_economy
from questmap.shop.economy import EconomyEngine
from questmap.shop.schemas import InventoryItemResponse
from questmap.users.schemas import UpdateUserRequest, UserMetricsResponse, UserResponse
from questmap.users.service import get_metrics, get_profile, update_profile

router = APIRouter(prefix="/api/user", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def get_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Current user's profile with balance, streak and completed count."""
    return UserResponse(**await get_profile(db, user))


@router.put("/me", response_model=UserResponse)
async def update_me(
    body: UpdateUserRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update resume link and tech stack."""
    user = await update_profile(db, user, resume_link=body.resume_link, stack=body.stack)
    return UserResponse(**await get_profile(db, user))


@router.get("/inventory", response_model=list[InventoryItemResponse])
async def get_inventory(
    user: User = Depends(get_current_user),
    economy: EconomyEngine = Depends(get_economy),
) -> list[InventoryItemResponse]:
    """Purchases of the current user, newest first."""
    return await economy.inventory(user.id)


@router.get("/metrics", response_model=UserMetricsResponse)
async def get_my_metrics(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserMetricsResponse:
    """Totals earned, spent, purchased and redeemed."""
    return UserMetricsResponse(**await get_metrics(db, user))
