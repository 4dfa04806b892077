"""Task sequencing: which tasks a user may open.

Tasks of one language form an independent sequence ordered by
``(position, id)``. A task is:

- ``completed`` when the user has a progress row for it;
- ``available`` when it sits at position 0, heads the loaded sequence, or
  the task right before it in the sequence is completed;
- ``locked`` otherwise.

If a task is deleted, the nearest remaining lower-position task becomes the
predecessor of the next one, and the head of the sequence is never locked.
Nothing here writes to the store.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import select

from questmap.database import LedgerStore
from questmap.db.models import PROGRESS_COMPLETED, Task, UserTaskProgress
from questmap.errors import NotFound, TaskLocked
from questmap.progression.schemas import QuestionItem, TaskDetail, TaskStatus, TaskStatusView

logger = logging.getLogger(__name__)


def compute_statuses(tasks: Sequence[Task], completed_ids: Iterable[int]) -> list[tuple[Task, TaskStatus]]:
    """Single walk over ``tasks`` (already in sequence order), carrying the
    previous task's completion forward."""
    completed = set(completed_ids)
    result: list[tuple[Task, TaskStatus]] = []
    prev_completed = True  # nothing precedes the head

    for task in tasks:
        status: TaskStatus
        if task.id in completed:
            status = "completed"
        elif task.position == 0 or prev_completed:
            status = "available"
        else:
            status = "locked"
        result.append((task, status))
        prev_completed = status == "completed"

    return result


class TaskSequencer:
    """Read-only view of a user's progress through a language's tasks."""

    def __init__(self, store: LedgerStore) -> None:
        self.store = store

    async def list_tasks(self, user_id: int, language: str) -> list[TaskStatusView]:
        """All tasks of ``language`` with the user's status for each."""
        async with self.store.session() as db:
            tasks_result = await db.execute(
                select(Task).where(Task.language == language).order_by(Task.position, Task.id)
            )
            tasks = list(tasks_result.scalars().all())

            completed_result = await db.execute(
                select(UserTaskProgress.task_id)
                .join(Task, Task.id == UserTaskProgress.task_id)
                .where(
                    UserTaskProgress.user_id == user_id,
                    UserTaskProgress.status == PROGRESS_COMPLETED,
                    Task.language == language,
                )
            )
            completed_ids = completed_result.scalars().all()

        return [
            TaskStatusView(
                id=task.id,
                title=task.title,
                type=task.type,
                status=status,
                reward=task.reward,
                position=task.position,
            )
            for task, status in compute_statuses(tasks, completed_ids)
        ]

    async def task_status(self, user_id: int, task: Task) -> TaskStatus:
        """Status of a single task, using its nearest lower-position predecessor."""
        async with self.store.session() as db:
            own = await db.execute(
                select(UserTaskProgress.id).where(
                    UserTaskProgress.user_id == user_id,
                    UserTaskProgress.task_id == task.id,
                    UserTaskProgress.status == PROGRESS_COMPLETED,
                )
            )
            if own.scalar_one_or_none() is not None:
                return "completed"
            if task.position == 0:
                return "available"

            prev_result = await db.execute(
                select(Task.id)
                .where(
                    Task.language == task.language,
                    (Task.position < task.position)
                    | ((Task.position == task.position) & (Task.id < task.id)),
                )
                .order_by(Task.position.desc(), Task.id.desc())
                .limit(1)
            )
            prev_id = prev_result.scalar_one_or_none()
            if prev_id is None:
                return "available"

            prev_done = await db.execute(
                select(UserTaskProgress.id).where(
                    UserTaskProgress.user_id == user_id,
                    UserTaskProgress.task_id == prev_id,
                    UserTaskProgress.status == PROGRESS_COMPLETED,
                )
            )
            return "available" if prev_done.scalar_one_or_none() is not None else "locked"

    async def get_task(self, user_id: int, task_id: int) -> TaskDetail:
        """Task detail for an unlocked task. The correct answer is never included."""
        async with self.store.session() as db:
            task = await db.get(Task, task_id)
        if task is None:
            raise NotFound("Task", task_id)

        status = await self.task_status(user_id, task)
        if status == "locked":
            logger.info("User %s tried to open locked task %s", user_id, task_id)
            raise TaskLocked()

        return TaskDetail(
            id=task.id,
            title=task.title,
            description=task.description,
            type=task.type,
            question=task.question,
            options=list(task.options or []),
            questions=[
                QuestionItem(type=q.get("type", "text"), text=q.get("text", ""), options=q.get("options") or [])
                for q in (task.questions or [])
            ],
            reward=task.reward,
            position=task.position,
            language=task.language,
            status=status,
        )
