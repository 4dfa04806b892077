"""Deterministic leaderboard ranking.

Users are ordered by balance DESC, then completed task count DESC, then id
ASC as the final tiebreaker. The top slice and a single user's rank use the
same key, so a user's standalone rank always matches their row in the top
list. The single-user rank is a count of users strictly ahead, so the full
ordering is never materialised.

Results are a snapshot; balances may move while the query runs.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import and_, func, or_, select

from questmap.database import LedgerStore
from questmap.db.models import PROGRESS_COMPLETED, User, UserTaskProgress
from questmap.leaderboard.schemas import LeaderboardEntry, LeaderboardResponse

DEFAULT_TOP_SIZE = 20


def completed_count_subquery(user_id_col: Any) -> Any:
    """Correlated COUNT of completed tasks for the user in ``user_id_col``."""
    return (
        select(func.count(UserTaskProgress.id))
        .where(
            UserTaskProgress.user_id == user_id_col,
            UserTaskProgress.status == PROGRESS_COMPLETED,
        )
        .correlate_except(UserTaskProgress)
        .scalar_subquery()
    )


class LeaderboardRanker:
    """Read-only ranking over users."""

    def __init__(self, store: LedgerStore, top_size: int = DEFAULT_TOP_SIZE) -> None:
        self.store = store
        self.top_size = top_size

    async def leaderboard(self, current_user_id: int | None = None) -> LeaderboardResponse:
        top = await self.top()
        current = await self.rank_of(current_user_id) if current_user_id is not None else None
        return LeaderboardResponse(top_users=top, current_user=current)

    async def top(self) -> list[LeaderboardEntry]:
        completed = completed_count_subquery(User.id).label("completed")
        async with self.store.session() as db:
            result = await db.execute(
                select(User, completed)
                .order_by(User.balance.desc(), completed.desc(), User.id.asc())
                .limit(self.top_size)
            )
            rows = result.all()

        return [
            _entry(rank, user, count)
            for rank, (user, count) in enumerate(rows, start=1)
        ]

    async def rank_of(self, user_id: int) -> LeaderboardEntry | None:
        """Locate one user's rank as ``1 + users ahead``; None for unknown users."""
        async with self.store.session() as db:
            user = await db.get(User, user_id)
            if user is None:
                return None

            own_completed = (
                await db.execute(
                    select(func.count(UserTaskProgress.id)).where(
                        UserTaskProgress.user_id == user.id,
                        UserTaskProgress.status == PROGRESS_COMPLETED,
                    )
                )
            ).scalar_one()

            other_completed = completed_count_subquery(User.id)
            ahead = (
                await db.execute(
                    select(func.count(User.id)).where(
                        or_(
                            User.balance > user.balance,
                            and_(User.balance == user.balance, other_completed > own_completed),
                            and_(
                                User.balance == user.balance,
                                other_completed == own_completed,
                                User.id < user.id,
                            ),
                        )
                    )
                )
            ).scalar_one()

        return _entry(ahead + 1, user, own_completed)


def _entry(rank: int, user: User, completed: int) -> LeaderboardEntry:
    return LeaderboardEntry(
        rank=rank,
        user_id=user.id,
        username=user.username,
        balance=user.balance,
        completed_tasks_count=completed or 0,
        current_streak=user.current_streak,
    )
