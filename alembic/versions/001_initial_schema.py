"""Initial schema — users, tasks, progress, shop items, purchases.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("telegram_id", sa.BigInteger, unique=True, nullable=True),
        sa.Column("phone_number", sa.String(32), unique=True, nullable=True),
        sa.Column("username", sa.String(255), nullable=False, server_default=""),
        sa.Column("first_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("photo_url", sa.Text, nullable=True),
        sa.Column("balance", sa.Integer, nullable=False, server_default="0"),
        sa.Column("current_streak", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_task_date", sa.Date, nullable=True),
        sa.Column("role", sa.String(50), nullable=False, server_default="student"),
        sa.Column("password_hash", sa.String(256), nullable=True),
        sa.Column("resume_link", sa.Text, nullable=True),
        sa.Column("stack", postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
        sa.CheckConstraint("current_streak >= 0", name="ck_users_streak_non_negative"),
    )

    # --- Tasks ---
    op.create_table(
        "tasks",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("question", sa.Text, nullable=False, server_default=""),
        sa.Column("options", postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("questions", postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("correct_answer", sa.Text, nullable=False, server_default=""),
        sa.Column("reward", sa.Integer, nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("language", sa.String(10), nullable=False, server_default="ru"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.CheckConstraint("reward > 0", name="ck_tasks_reward_positive"),
    )
    op.create_index("idx_tasks_language_position", "tasks", ["language", "position"])

    # --- User task progress ---
    op.create_table(
        "user_tasks",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("task_id", sa.BigInteger, sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="completed"),
        sa.Column("earned", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "task_id", name="uq_user_task"),
    )
    op.create_index("idx_user_tasks_user_status", "user_tasks", ["user_id", "status"])

    # --- Shop ---
    op.create_table(
        "shop_items",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("price", sa.Integer, nullable=False),
        sa.Column("image", sa.Text, nullable=False, server_default=""),
        sa.Column("stock", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.CheckConstraint("price > 0", name="ck_shop_items_price_positive"),
        sa.CheckConstraint("stock >= 0", name="ck_shop_items_stock_non_negative"),
    )

    op.create_table(
        "purchases",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_id", sa.BigInteger, sa.ForeignKey("shop_items.id"), nullable=False),
        sa.Column("purchase_id", sa.String(36), unique=True, nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("email", sa.String(255), nullable=False, server_default=""),
        sa.Column("purchased_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_purchases_user", "purchases", ["user_id"])


def downgrade() -> None:
    op.drop_table("purchases")
    op.drop_table("shop_items")
    op.drop_table("user_tasks")
    op.drop_table("tasks")
    op.drop_table("users")
