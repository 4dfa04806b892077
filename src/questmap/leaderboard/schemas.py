"""Pydantic models for the leaderboard."""

from __future__ import annotations

from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    username: str
    balance: int
    completed_tasks_count: int
    current_streak: int


class LeaderboardResponse(BaseModel):
    top_users: list[LeaderboardEntry]
    current_user: LeaderboardEntry | None = None
