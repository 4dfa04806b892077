"""Pydantic models for user profile endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    id: int
    username: str
    first_name: str
    last_name: str
    photo_url: str | None = None
    balance: int
    current_streak: int
    completed_tasks_count: int
    role: str
    resume_link: str | None = None
    stack: list[str] = []


class UpdateUserRequest(BaseModel):
    resume_link: str | None = Field(None, max_length=2048)
    stack: list[str] | None = Field(None, max_length=50)


class UserMetricsResponse(BaseModel):
    user_id: int
    username: str
    balance: int
    current_streak: int
    completed_tasks_count: int
    total_earned: int
    total_spent: int
    items_purchased: int
    items_redeemed: int
    net_balance: int
