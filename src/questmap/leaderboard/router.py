"""Leaderboard endpoint. Works with or without authentication."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from questmap.auth.dependencies import get_current_user_optional
from questmap.db.models import User
from questmap.dependencies import get_ranker
from questmap.leaderboard.ranker import LeaderboardRanker
from questmap.leaderboard.schemas import LeaderboardResponse

router = APIRouter(prefix="/api", tags=["Leaderboard"])


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    user: User | None = Depends(get_current_user_optional),
    ranker: LeaderboardRanker = Depends(get_ranker),
) -> LeaderboardResponse:
    """Top users by balance; includes the caller's own rank when signed in."""
    return await ranker.leaderboard(user.id if user else None)
