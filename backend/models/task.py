"""Queued task records and the handles returned to callers."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    pending = "pending"
    active = "active"
    completed = "completed"
    failed = "failed"
    dead = "dead"
    cancelled = "cancelled"


TERMINAL_STATUSES = frozenset({TaskStatus.completed, TaskStatus.dead, TaskStatus.cancelled})

ExecutionMode = Literal["queued", "inline"]


class TaskOptions(BaseModel):
    priority: int | None = None  # lower runs first
    max_attempts: int | None = Field(default=None, ge=1)
    delay_ms: int = Field(default=0, ge=0)


class Task(BaseModel):
    id: str
    type: str  # queue name
    payload: dict[str, Any] = {}
    attempt: int = 0  # failed attempts so far
    max_attempts: int = 1
    priority: int = 5
    status: TaskStatus = TaskStatus.pending
    progress: int = 0  # 0-100
    created_at: datetime
    next_run_at: datetime
    sequence: int = 0  # creation order, for stable claiming
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    lease_expires_at: datetime | None = None
    result: dict[str, Any] | None = None
    error: str | None = None


class TaskHandle(BaseModel):
    """What ``enqueue`` returns. ``mode`` tells queued and inline runs apart."""
    task_id: str
    mode: ExecutionMode
    status: TaskStatus = TaskStatus.pending
    result: dict[str, Any] | None = None
    error: str | None = None


class TaskStatusView(BaseModel):
    task_id: str
    status: TaskStatus
    progress: int = 0
    result: dict[str, Any] | None = None
    error: str | None = None
    completed_at: datetime | None = None
    mode: ExecutionMode = "queued"
