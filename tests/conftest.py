"""Shared test fixtures.

Every test gets its own file-backed SQLite database (aiosqlite) with the
schema created from the ORM metadata, so the suite needs no external
services. The HTTP client talks to the app in-process through
``httpx.ASGITransport``; the lifespan does not run, so Redis stays
uninitialised and rate limiting is a pass-through.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("QM_JWT_SECRET", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("QM_SEED_ON_STARTUP", "false")
os.environ.setdefault("QM_REDIS_URL", "")

from questmap.auth.jwt import create_access_token  # noqa: E402
from questmap.config import get_settings  # noqa: E402
from questmap.database import LedgerStore  # noqa: E402
from questmap.db.models import ROLE_STUDENT, TASK_TYPE_QUIZ, TASK_TYPE_SURVEY, ShopItem, Task, User  # noqa: E402

get_settings.cache_clear()


class FixedClock:
    """Injectable clock; tests move it forward explicitly."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest_asyncio.fixture
async def store(tmp_path: Path) -> AsyncGenerator[LedgerStore, None]:
    """Fresh ledger store on a throwaway SQLite file."""
    ledger = LedgerStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'questmap.db'}")
    await ledger.create_all()
    yield ledger
    await ledger.dispose()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_user(store: LedgerStore) -> Callable[..., Any]:
    async def _make_user(
        username: str = "student",
        balance: int = 0,
        role: str = ROLE_STUDENT,
        **fields: Any,
    ) -> User:
        async with store.transaction() as db:
            user = User(username=username, first_name=username.title(), balance=balance, role=role, **fields)
            db.add(user)
        return user

    return _make_user


@pytest.fixture
def make_task(store: LedgerStore) -> Callable[..., Any]:
    async def _make_task(
        position: int,
        *,
        language: str = "en",
        task_type: str = TASK_TYPE_QUIZ,
        reward: int = 100,
        correct_answer: str = "var",
        options: list[str] | None = None,
        questions: list[dict[str, Any]] | None = None,
    ) -> Task:
        async with store.transaction() as db:
            task = Task(
                title=f"Task {position}",
                description="",
                type=task_type,
                question="What is the keyword to define a variable in Go?",
                options=options if options is not None else ["var", "let", "const", "def"],
                questions=questions or [],
                correct_answer=correct_answer if task_type == TASK_TYPE_QUIZ else "",
                reward=reward,
                position=position,
                language=language,
            )
            db.add(task)
        return task

    return _make_task


@pytest.fixture
def make_item(store: LedgerStore) -> Callable[..., Any]:
    async def _make_item(name: str = "Mug", price: int = 600, stock: int = 10) -> ShopItem:
        async with store.transaction() as db:
            item = ShopItem(name=name, description="", price=price, image="", stock=stock)
            db.add(item)
        return item

    return _make_item


@pytest_asyncio.fixture
async def survey_then_quizzes(make_task: Callable[..., Any]) -> list[Task]:
    """Survey at position 0 followed by two quizzes."""
    return [
        await make_task(0, task_type=TASK_TYPE_SURVEY, reward=50),
        await make_task(1, reward=100, correct_answer="var"),
        await make_task(2, reward=150, correct_answer="func", options=["func", "function", "def", "fn"]),
    ]


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Bearer header for a user, signed the same way the auth router signs."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.username, user.role)}"}

    return _headers


@pytest_asyncio.fixture
async def client(store: LedgerStore) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to an app that uses the test store."""
    from questmap.main import create_app

    app = create_app()
    app.state.store = store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
