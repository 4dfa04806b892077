"""Pydantic models for admin endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class AdminMetricsResponse(BaseModel):
    total_users: int
    total_tasks: int
    total_completed_tasks: int
    total_purchases: int
    total_revenue: int
    active_users_today: int
    avg_tasks_per_user: float


class AdminUserResponse(BaseModel):
    id: int
    username: str
    first_name: str
    last_name: str
    phone_number: str | None = None
    balance: int
    current_streak: int
    completed_tasks_count: int
    role: str
    created_at: datetime | None = None
