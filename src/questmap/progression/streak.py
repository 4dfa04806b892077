"""Daily streak tracking.

A streak counts consecutive UTC calendar days with at least one completed
task. ``next_streak`` is pure; the submission transaction applies its result
to ``current_streak`` and ``last_task_date`` in a single UPDATE.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import NamedTuple


class StreakUpdate(NamedTuple):
    streak: int
    last_date: date


def utc_today(now: datetime | None = None) -> date:
    """Calendar date of ``now`` in UTC. Naive datetimes are taken as UTC."""
    if now is None:
        now = datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.date()


def next_streak(last_date: date | None, today: date, current_streak: int) -> StreakUpdate:
    """Decide streak continuation, reset, or initialization.

    - no previous completion: start at 1
    - same day: unchanged (a second task today does not double-count)
    - previous day: +1
    - gap of two or more days: reset to 1
    """
    if last_date is None:
        return StreakUpdate(1, today)

    days = (today - last_date).days
    if days <= 0:
        # Same day, or a stored date ahead of our clock: leave it alone.
        return StreakUpdate(current_streak, last_date)
    if days == 1:
        return StreakUpdate(current_streak + 1, today)
    return StreakUpdate(1, today)
