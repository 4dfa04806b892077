"""Admin dashboard aggregates (read-only)."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from questmap.admin.schemas import AdminMetricsResponse, AdminUserResponse
from questmap.db.models import PROGRESS_COMPLETED, Purchase, ShopItem, Task, User, UserTaskProgress
from questmap.leaderboard.ranker import completed_count_subquery


async def get_admin_metrics(db: AsyncSession, now: datetime | None = None) -> AdminMetricsResponse:
    """Platform totals. "Active today" counts distinct users with a completion since UTC midnight."""
    if now is None:
        now = datetime.now(timezone.utc)
    day_start = datetime.combine(now.astimezone(timezone.utc).date(), time.min, tzinfo=timezone.utc)
    day_end = day_start + timedelta(days=1)

    total_users = (await db.execute(select(func.count(User.id)))).scalar() or 0
    total_tasks = (await db.execute(select(func.count(Task.id)))).scalar() or 0
    total_completed = (
        await db.execute(
            select(func.count(UserTaskProgress.id)).where(UserTaskProgress.status == PROGRESS_COMPLETED)
        )
    ).scalar() or 0
    total_purchases = (await db.execute(select(func.count(Purchase.id)))).scalar() or 0
    total_revenue = (
        await db.execute(
            select(func.coalesce(func.sum(ShopItem.price), 0))
            .select_from(Purchase)
            .join(ShopItem, Purchase.item_id == ShopItem.id)
        )
    ).scalar() or 0
    active_today = (
        await db.execute(
            select(func.count(distinct(UserTaskProgress.user_id))).where(
                UserTaskProgress.status == PROGRESS_COMPLETED,
                UserTaskProgress.completed_at >= day_start,
                UserTaskProgress.completed_at < day_end,
            )
        )
    ).scalar() or 0

    return AdminMetricsResponse(
        total_users=total_users,
        total_tasks=total_tasks,
        total_completed_tasks=total_completed,
        total_purchases=total_purchases,
        total_revenue=int(total_revenue),
        active_users_today=active_today,
        avg_tasks_per_user=total_completed / total_users if total_users else 0.0,
    )


async def list_users(db: AsyncSession) -> list[AdminUserResponse]:
    """All users, newest first, with completed task counts."""
    completed = completed_count_subquery(User.id).label("completed")
    result = await db.execute(select(User, completed).order_by(User.created_at.desc(), User.id.desc()))
    return [
        AdminUserResponse(
            id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            phone_number=user.phone_number,
            balance=user.balance,
            current_streak=user.current_streak,
            completed_tasks_count=count or 0,
            role=user.role,
            created_at=user.created_at,
        )
        for user, count in result.all()
    ]
