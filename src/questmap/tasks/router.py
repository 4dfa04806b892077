"""Task API endpoints: list, open and submit."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from questmap.auth.dependencies import get_current_user
from questmap.config import get_settings
from questmap.db.models import Task, User
from questmap.dependencies import get_evaluator, get_sequencer
from questmap.errors import NotFound, TaskLocked
from questmap.progression.schemas import SubmissionResult, SubmitTaskRequest, TaskDetail, TaskStatusView
from questmap.progression.sequencer import TaskSequencer
from questmap.progression.submission import SubmissionEvaluator

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


@router.get("", response_model=list[TaskStatusView])
async def list_tasks(
    language: str | None = Query(None, min_length=2, max_length=10),
    user: User = Depends(get_current_user),
    sequencer: TaskSequencer = Depends(get_sequencer),
) -> list[TaskStatusView]:
    """The task map for one language with the caller's status on each task."""
    return await sequencer.list_tasks(user.id, language or get_settings().default_language)


@router.get("/{task_id}", response_model=TaskDetail)
async def get_task(
    task_id: int,
    user: User = Depends(get_current_user),
    sequencer: TaskSequencer = Depends(get_sequencer),
) -> TaskDetail:
    """Open a task. Locked tasks are rejected with 403."""
    return await sequencer.get_task(user.id, task_id)


@router.post("/{task_id}/submit", response_model=SubmissionResult)
async def submit_task(
    task_id: int,
    body: SubmitTaskRequest,
    user: User = Depends(get_current_user),
    sequencer: TaskSequencer = Depends(get_sequencer),
    evaluator: SubmissionEvaluator = Depends(get_evaluator),
) -> SubmissionResult:
    """Grade an answer; a correct one credits the reward and advances the streak."""
    async with sequencer.store.session() as db:
        task = await db.get(Task, task_id)
    if task is None:
        raise NotFound("Task", task_id)
    if await sequencer.task_status(user.id, task) == "locked":
        raise TaskLocked()

    return await evaluator.submit(user.id, task_id, body.answer, body.answer_index)
