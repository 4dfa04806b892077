"""User accounts, profile and personal metrics."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from questmap.db.models import (
    PROGRESS_COMPLETED,
    PURCHASE_REDEEMED,
    ROLE_STUDENT,
    Purchase,
    ShopItem,
    User,
    UserTaskProgress,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)


async def get_or_create_by_telegram(
    db: AsyncSession,
    telegram_id: int,
    first_name: str = "",
    last_name: str = "",
    username: str = "",
    photo_url: str = "",
) -> tuple[User, bool]:
    """Find a user by Telegram id or create a student. Returns (user, created)."""
    result = await db.execute(select(User).where(User.telegram_id == telegram_id))
    user = result.scalar_one_or_none()
    if user is not None:
        return user, False

    user = User(
        telegram_id=telegram_id,
        username=username,
        first_name=first_name,
        last_name=last_name,
        photo_url=photo_url or None,
        role=ROLE_STUDENT,
    )
    return await _insert_user(db, user, select(User).where(User.telegram_id == telegram_id))


async def get_or_create_by_phone(
    db: AsyncSession,
    phone_number: str,
    first_name: str = "",
    last_name: str = "",
) -> tuple[User, bool]:
    """Find a user by phone number or create a student. Returns (user, created)."""
    result = await db.execute(select(User).where(User.phone_number == phone_number))
    user = result.scalar_one_or_none()
    if user is not None:
        return user, False

    user = User(
        phone_number=phone_number,
        first_name=first_name,
        last_name=last_name,
        username=f"{first_name}_{last_name}",
        role=ROLE_STUDENT,
    )
    return await _insert_user(db, user, select(User).where(User.phone_number == phone_number))


async def _insert_user(db: AsyncSession, user: User, lookup: Any) -> tuple[User, bool]:
    """Insert ``user``; if a concurrent signup won the unique key, return theirs."""
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = (await db.execute(lookup)).scalar_one()
        return existing, False
    logger.info("user_created", user_id=user.id, username=user.username)
    return user, True


async def count_completed(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count(UserTaskProgress.id)).where(
            UserTaskProgress.user_id == user_id,
            UserTaskProgress.status == PROGRESS_COMPLETED,
        )
    )
    return result.scalar() or 0


async def get_profile(db: AsyncSession, user: User) -> dict[str, Any]:
    """Profile fields plus the completed task count."""
    return {
        "id": user.id,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "photo_url": user.photo_url,
        "balance": user.balance,
        "current_streak": user.current_streak,
        "completed_tasks_count": await count_completed(db, user.id),
        "role": user.role,
        "resume_link": user.resume_link,
        "stack": list(user.stack or []),
    }


async def update_profile(
    db: AsyncSession,
    user: User,
    resume_link: str | None = None,
    stack: list[str] | None = None,
) -> User:
    """Update the free-form profile fields. Balance and streak are never touched here."""
    if resume_link is not None:
        user.resume_link = resume_link
    if stack is not None:
        user.stack = [s.strip() for s in stack if s.strip()]
    await db.commit()
    return user


async def get_metrics(db: AsyncSession, user: User) -> dict[str, Any]:
    """Earning and spending summary for one user."""
    completed = await count_completed(db, user.id)

    earned_result = await db.execute(
        select(func.coalesce(func.sum(UserTaskProgress.earned), 0)).where(UserTaskProgress.user_id == user.id)
    )
    total_earned = int(earned_result.scalar() or 0)

    spent_result = await db.execute(
        select(func.coalesce(func.sum(ShopItem.price), 0))
        .select_from(Purchase)
        .join(ShopItem, Purchase.item_id == ShopItem.id)
        .where(Purchase.user_id == user.id)
    )
    total_spent = int(spent_result.scalar() or 0)

    purchased_result = await db.execute(
        select(func.count(Purchase.id)).where(Purchase.user_id == user.id)
    )
    redeemed_result = await db.execute(
        select(func.count(Purchase.id)).where(
            Purchase.user_id == user.id,
            Purchase.status == PURCHASE_REDEEMED,
        )
    )

    return {
        "user_id": user.id,
        "username": user.username,
        "balance": user.balance,
        "current_streak": user.current_streak,
        "completed_tasks_count": completed,
        "total_earned": total_earned,
        "total_spent": total_spent,
        "items_purchased": purchased_result.scalar() or 0,
        "items_redeemed": redeemed_result.scalar() or 0,
        "net_balance": total_earned - total_spent,
    }
