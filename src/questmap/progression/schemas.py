"""Pydantic models for task listing, detail and submission."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

TaskStatus = Literal["locked", "available", "completed"]


class TaskStatusView(BaseModel):
    id: int
    title: str
    type: str
    status: TaskStatus
    reward: int
    position: int


class QuestionItem(BaseModel):
    type: str
    text: str
    options: list[str] = []


class TaskDetail(BaseModel):
    id: int
    title: str
    description: str
    type: str
    question: str
    options: list[str] = []
    questions: list[QuestionItem] = []
    reward: int
    position: int
    language: str
    status: TaskStatus


class SubmitTaskRequest(BaseModel):
    answer: str = ""
    answer_index: int | None = Field(default=None, ge=0)


class SubmissionResult(BaseModel):
    success: bool
    earned: int
    already_completed: bool = False
    new_balance: int
    current_streak: int
    correct_answer: str | None = None
