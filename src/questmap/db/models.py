"""ORM models for the ledger store.

Five tables: users, tasks, user_tasks (progress), shop_items, purchases.
Progress rows exist only for completed tasks; a missing row means the task
is locked or available, decided by the sequencer.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questmap.db.base import Base

# BIGINT on PostgreSQL; SQLite only autoincrements a plain INTEGER primary key.
BigIntPK = BigInteger().with_variant(Integer, "sqlite")
JSONList = JSON().with_variant(JSONB, "postgresql")

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"

TASK_TYPE_QUIZ = "quiz"
TASK_TYPE_SURVEY = "survey"

PROGRESS_COMPLETED = "completed"

PURCHASE_PENDING = "pending"
PURCHASE_REDEEMED = "redeemed"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """A student or admin. Balance and streak change only through engine transactions."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
        CheckConstraint("current_streak >= 0", name="ck_users_streak_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    telegram_id: Mapped[int | None] = mapped_column(BigInteger, unique=True, nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(32), unique=True, nullable=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, server_default="")
    first_name: Mapped[str] = mapped_column(String(255), nullable=False, server_default="")
    last_name: Mapped[str] = mapped_column(String(255), nullable=False, server_default="")
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_task_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    role: Mapped[str] = mapped_column(String(50), nullable=False, default=ROLE_STUDENT, server_default=ROLE_STUDENT)
    password_hash: Mapped[str | None] = mapped_column(String(256), nullable=True)
    resume_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    stack: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    progress: Mapped[list[UserTaskProgress]] = relationship("UserTaskProgress", back_populates="user")
    purchases: Mapped[list[Purchase]] = relationship("Purchase", back_populates="user")

    @property
    def display_name(self) -> str:
        """First name, plus last name when present."""
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class Task(Base):
    """A quiz or survey step. ``position`` orders tasks within one ``language``."""

    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint("reward > 0", name="ck_tasks_reward_positive"),
        Index("idx_tasks_language_position", "language", "position"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    options: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    questions: Mapped[list[dict[str, Any]]] = mapped_column(JSONList, nullable=False, default=list)
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    reward: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    language: Mapped[str] = mapped_column(String(10), nullable=False, default="ru", server_default="ru")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class UserTaskProgress(Base):
    """Completion of a task by a user, UNIQUE(user_id, task_id)."""

    __tablename__ = "user_tasks"
    __table_args__ = (
        UniqueConstraint("user_id", "task_id", name="uq_user_task"),
        Index("idx_user_tasks_user_status", "user_id", "status"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    task_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=PROGRESS_COMPLETED)
    earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[User] = relationship("User", back_populates="progress")
    task: Mapped[Task] = relationship("Task")


# ---------------------------------------------------------------------------
# Shop
# ---------------------------------------------------------------------------


class ShopItem(Base):
    """Merch item. Stock may reach zero, never below."""

    __tablename__ = "shop_items"
    __table_args__ = (
        CheckConstraint("price > 0", name="ck_shop_items_price_positive"),
        CheckConstraint("stock >= 0", name="ck_shop_items_stock_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    image: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Purchase(Base):
    """A bought item awaiting (or past) admin redemption.

    ``purchase_id`` is the opaque token shown to the user and scanned by the
    admin; it is independent of the primary key.
    """

    __tablename__ = "purchases"
    __table_args__ = (Index("idx_purchases_user", "user_id"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    item_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("shop_items.id"), nullable=False)
    # Set by EconomyEngine.buy via new_purchase_token.
    purchase_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=PURCHASE_PENDING)
    email: Mapped[str] = mapped_column(String(255), nullable=False, server_default="")
    purchased_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    redeemed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[User] = relationship("User", back_populates="purchases")
    item: Mapped[ShopItem] = relationship("ShopItem")
