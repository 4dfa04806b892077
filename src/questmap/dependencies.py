"""Shared FastAPI dependencies: engine components bound to the app's store."""

from fastapi import Depends

from questmap.config import get_settings
from questmap.database import LedgerStore, get_store
from questmap.leaderboard.ranker import LeaderboardRanker
from questmap.progression.sequencer import TaskSequencer
from questmap.progression.submission import SubmissionEvaluator
from questmap.shop.economy import EconomyEngine


def get_sequencer(store: LedgerStore = Depends(get_store)) -> TaskSequencer:
    return TaskSequencer(store)


def get_evaluator(store: LedgerStore = Depends(get_store)) -> SubmissionEvaluator:
    return SubmissionEvaluator(store)


def get_economy(store: LedgerStore = Depends(get_store)) -> EconomyEngine:
    return EconomyEngine(store)


def get_ranker(store: LedgerStore = Depends(get_store)) -> LeaderboardRanker:
    return LeaderboardRanker(store, top_size=get_settings().leaderboard_size)
