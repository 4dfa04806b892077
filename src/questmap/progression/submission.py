"""Answer grading and the reward-and-streak transaction."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from questmap.database import LedgerStore
from questmap.db.models import PROGRESS_COMPLETED, TASK_TYPE_QUIZ, TASK_TYPE_SURVEY, Task, User, UserTaskProgress
from questmap.errors import NotFound
from questmap.progression.schemas import SubmissionResult
from questmap.progression.streak import next_streak, utc_today

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_answer(task: Task, answer: str, answer_index: int | None = None) -> str:
    """Use the option text at ``answer_index`` when no free-text answer was given."""
    if answer:
        return answer
    options = task.options or []
    if answer_index is not None and 0 <= answer_index < len(options):
        return options[answer_index]
    return answer


def grade(task: Task, answer: str) -> bool:
    """Surveys accept any answer; quizzes need an exact match."""
    if task.type == TASK_TYPE_SURVEY:
        return True
    return answer == task.correct_answer


class SubmissionEvaluator:
    """Grades answers and credits rewards atomically.

    A correct answer runs one transaction that claims the progress row,
    credits the reward and advances the streak. A repeat correct answer for a
    task the user already completed is acknowledged without paying out again.
    """

    def __init__(self, store: LedgerStore, clock: Callable[[], datetime] = _utcnow) -> None:
        self.store = store
        self.clock = clock

    async def submit(
        self,
        user_id: int,
        task_id: int,
        answer: str,
        answer_index: int | None = None,
    ) -> SubmissionResult:
        async with self.store.session() as db:
            task = await db.get(Task, task_id)
            if task is None:
                raise NotFound("Task", task_id)

            answer = resolve_answer(task, answer, answer_index)
            correct_answer = task.correct_answer if task.type == TASK_TYPE_QUIZ else None

            if not grade(task, answer):
                user = await db.get(User, user_id)
                if user is None:
                    raise NotFound("User", user_id)
                return SubmissionResult(
                    success=False,
                    earned=0,
                    new_balance=user.balance,
                    current_streak=user.current_streak,
                    correct_answer=correct_answer,
                )

        now = self.clock()
        async with self.store.transaction() as db:
            user = await db.get(User, user_id)
            if user is None:
                raise NotFound("User", user_id)

            if not await self._claim_completion(db, user_id, task, now):
                logger.info("Task %s already completed by user %s, no reward", task_id, user_id)
                return SubmissionResult(
                    success=True,
                    earned=0,
                    already_completed=True,
                    new_balance=user.balance,
                    current_streak=user.current_streak,
                    correct_answer=correct_answer,
                )

            await db.execute(
                update(User)
                .where(User.id == user_id)
                .values(balance=User.balance + task.reward)
                .execution_options(synchronize_session=False)
            )

            # Re-read after the credit; the balance UPDATE already holds the row lock.
            fresh = (
                await db.execute(
                    select(User)
                    .where(User.id == user_id)
                    .execution_options(populate_existing=True)
                )
            ).scalar_one()
            streak = next_streak(fresh.last_task_date, utc_today(now), fresh.current_streak)
            if (streak.streak, streak.last_date) != (fresh.current_streak, fresh.last_task_date):
                await db.execute(
                    update(User)
                    .where(User.id == user_id)
                    .values(current_streak=streak.streak, last_task_date=streak.last_date)
                    .execution_options(synchronize_session=False)
                )

            new_balance = fresh.balance

        logger.info(
            "User %s completed task %s: +%d points (balance %d, streak %d)",
            user_id, task_id, task.reward, new_balance, streak.streak,
        )
        return SubmissionResult(
            success=True,
            earned=task.reward,
            new_balance=new_balance,
            current_streak=streak.streak,
            correct_answer=correct_answer,
        )

    async def _claim_completion(self, db: AsyncSession, user_id: int, task: Task, now: datetime) -> bool:
        """Insert the completed progress row; False if the pair already exists."""
        insert = _INSERTS.get(self.store.dialect)
        if insert is None:
            msg = f"Unsupported database dialect: {self.store.dialect}"
            raise RuntimeError(msg)

        stmt = (
            insert(UserTaskProgress)
            .values(
                user_id=user_id,
                task_id=task.id,
                status=PROGRESS_COMPLETED,
                earned=task.reward,
                completed_at=now,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "task_id"])
            .returning(UserTaskProgress.id)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none() is not None
