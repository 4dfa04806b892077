"""SubmissionEvaluator: grading, reward credit and streak updates."""

from __future__ import annotations

import sqlite3
from datetime import date, timedelta

import pytest
from sqlalchemy import event, func, select

from questmap.db.models import User, UserTaskProgress
from questmap.errors import NotFound, TransactionFailure
from questmap.progression.submission import SubmissionEvaluator


async def _user(store, user_id: int) -> User:
    async with store.session() as db:
        return await db.get(User, user_id)


async def _progress_count(store, user_id: int) -> int:
    async with store.session() as db:
        result = await db.execute(select(func.count(UserTaskProgress.id)).where(UserTaskProgress.user_id == user_id))
        return result.scalar_one()


class TestQuizSubmission:
    @pytest.mark.asyncio
    async def test_correct_answer_credits_reward_and_starts_streak(self, store, clock, make_user, make_task):
        task = await make_task(0, reward=100, correct_answer="var")
        user = await make_user()

        result = await SubmissionEvaluator(store, clock=clock).submit(user.id, task.id, "var")

        assert result.success is True
        assert result.earned == 100
        assert result.new_balance == 100
        assert result.current_streak == 1
        assert result.already_completed is False
        fresh = await _user(store, user.id)
        assert fresh.balance == 100
        assert fresh.last_task_date == date(2026, 3, 10)

    @pytest.mark.asyncio
    async def test_wrong_answer_changes_nothing(self, store, clock, make_user, make_task):
        task = await make_task(0, reward=100, correct_answer="var")
        user = await make_user(balance=40)

        result = await SubmissionEvaluator(store, clock=clock).submit(user.id, task.id, "let")

        assert result.success is False
        assert result.earned == 0
        assert result.new_balance == 40
        assert result.correct_answer == "var"
        assert await _progress_count(store, user.id) == 0
        assert (await _user(store, user.id)).last_task_date is None

    @pytest.mark.asyncio
    async def test_answer_by_index(self, store, clock, make_user, make_task):
        task = await make_task(0, correct_answer="var")
        user = await make_user()
        result = await SubmissionEvaluator(store, clock=clock).submit(user.id, task.id, "", answer_index=0)
        assert result.success is True

    @pytest.mark.asyncio
    async def test_repeat_correct_answer_pays_once(self, store, clock, make_user, make_task):
        task = await make_task(0, reward=100)
        user = await make_user()
        evaluator = SubmissionEvaluator(store, clock=clock)

        await evaluator.submit(user.id, task.id, "var")
        again = await evaluator.submit(user.id, task.id, "var")

        assert again.success is True
        assert again.already_completed is True
        assert again.earned == 0
        assert again.new_balance == 100
        assert await _progress_count(store, user.id) == 1

    @pytest.mark.asyncio
    async def test_unknown_task(self, store, clock, make_user):
        user = await make_user()
        with pytest.raises(NotFound):
            await SubmissionEvaluator(store, clock=clock).submit(user.id, 999, "var")


class TestSurveySubmission:
    @pytest.mark.asyncio
    async def test_any_answer_is_accepted(self, store, clock, make_user, make_task):
        survey = await make_task(0, task_type="survey", reward=50)
        user = await make_user()

        result = await SubmissionEvaluator(store, clock=clock).submit(user.id, survey.id, "")

        assert result.success is True
        assert result.earned == 50
        assert result.correct_answer is None


class TestStreakAcrossDays:
    @pytest.mark.asyncio
    async def test_same_day_then_next_day_then_gap(self, store, clock, make_user, make_task):
        tasks = [await make_task(i, reward=10) for i in range(4)]
        user = await make_user()
        evaluator = SubmissionEvaluator(store, clock=clock)

        first = await evaluator.submit(user.id, tasks[0].id, "var")
        second = await evaluator.submit(user.id, tasks[1].id, "var")
        assert (first.current_streak, second.current_streak) == (1, 1)

        clock.now += timedelta(days=1)
        third = await evaluator.submit(user.id, tasks[2].id, "var")
        assert third.current_streak == 2

        clock.now += timedelta(days=3)
        fourth = await evaluator.submit(user.id, tasks[3].id, "var")
        assert fourth.current_streak == 1
        assert fourth.new_balance == 40

    @pytest.mark.asyncio
    async def test_wrong_answer_does_not_touch_streak(self, store, clock, make_user, make_task):
        task = await make_task(0)
        yesterday = date(2026, 3, 9)
        user = await make_user(current_streak=5, last_task_date=yesterday)

        result = await SubmissionEvaluator(store, clock=clock).submit(user.id, task.id, "def")

        assert result.current_streak == 5
        assert (await _user(store, user.id)).last_task_date == yesterday


class TestStoreFailure:
    @pytest.mark.asyncio
    async def test_failure_on_streak_write_rolls_back_everything(self, store, clock, make_user, make_task):
        task = await make_task(0, reward=100)
        user = await make_user()

        def fail_streak_update(conn, cursor, statement, parameters, context, executemany):
            if statement.startswith("UPDATE users") and "current_streak" in statement:
                raise sqlite3.OperationalError("disk I/O error")

        event.listen(store.engine.sync_engine, "before_cursor_execute", fail_streak_update)
        try:
            with pytest.raises(TransactionFailure):
                await SubmissionEvaluator(store, clock=clock).submit(user.id, task.id, "var")
        finally:
            event.remove(store.engine.sync_engine, "before_cursor_execute", fail_streak_update)

        fresh = await _user(store, user.id)
        assert fresh.balance == 0
        assert fresh.current_streak == 0
        assert fresh.last_task_date is None
        assert await _progress_count(store, user.id) == 0

    @pytest.mark.asyncio
    async def test_retry_after_failure_credits_once(self, store, clock, make_user, make_task):
        task = await make_task(0, reward=100)
        user = await make_user()
        evaluator = SubmissionEvaluator(store, clock=clock)

        def fail_balance_update(conn, cursor, statement, parameters, context, executemany):
            if statement.startswith("UPDATE users") and "balance" in statement:
                raise sqlite3.OperationalError("database is locked")

        event.listen(store.engine.sync_engine, "before_cursor_execute", fail_balance_update)
        try:
            with pytest.raises(TransactionFailure):
                await evaluator.submit(user.id, task.id, "var")
        finally:
            event.remove(store.engine.sync_engine, "before_cursor_execute", fail_balance_update)

        result = await evaluator.submit(user.id, task.id, "var")
        assert result.earned == 100
        assert result.already_completed is False
        assert (await _user(store, user.id)).balance == 100
        assert await _progress_count(store, user.id) == 1
