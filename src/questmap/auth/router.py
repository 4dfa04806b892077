"""Authentication router — Telegram, phone and admin sign-in."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questmap.auth.jwt import create_access_token
from questmap.auth.password import hash_password, needs_rehash, verify_password
from questmap.auth.schemas import AdminLoginRequest, PhoneAuthRequest, TelegramAuthRequest, TokenResponse
from questmap.auth.telegram import verify_telegram_hash
from questmap.config import get_settings
from questmap.database import get_session
from questmap.db.models import ROLE_ADMIN, User
from questmap.users.service import get_or_create_by_phone, get_or_create_by_telegram

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["Authentication"])


def _issue_token(user: User) -> TokenResponse:
    settings = get_settings()
    return TokenResponse(
        token=create_access_token(user.id, user.username, user.role),
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )


@router.post("/auth/telegram", response_model=TokenResponse)
async def telegram_login(
    body: TelegramAuthRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Sign in with a Telegram login payload."""
    settings = get_settings()
    if not settings.skip_telegram_validation and not verify_telegram_hash(
        body.signed_fields(), settings.telegram_bot_token
    ):
        logger.info("telegram_hash_rejected", telegram_id=body.id)
        raise HTTPException(status_code=401, detail="Invalid Telegram hash")

    user, _ = await get_or_create_by_telegram(
        db,
        telegram_id=body.id,
        first_name=body.first_name,
        last_name=body.last_name,
        username=body.username,
        photo_url=body.photo_url,
    )
    return _issue_token(user)


@router.post("/auth/phone", response_model=TokenResponse)
async def phone_login(
    body: PhoneAuthRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Sign in (or sign up) with a phone number."""
    user, _ = await get_or_create_by_phone(
        db,
        phone_number=body.phone_number,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    return _issue_token(user)


@router.post("/admin/login", response_model=TokenResponse)
async def admin_login(
    body: AdminLoginRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Admin sign-in with username and password."""
    result = await db.execute(
        select(User).where(User.username == body.username, User.role == ROLE_ADMIN)
    )
    user = result.scalar_one_or_none()
    if user is None or not verify_password(body.password, user.password_hash):
        logger.info("admin_login_failed", username=body.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(body.password)
        await db.commit()
        logger.info("admin_password_rehashed", user_id=user.id)
    return _issue_token(user)
