"""Task persistence for the queue manager.

The store hands out copies: callers change a task and ``save`` it back,
the way they would against an external backend.
"""

import itertools
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from models.task import Task, TaskStatus

logger = logging.getLogger(__name__)


class TaskStore(ABC):
    """Storage interface the queue manager runs against.

    Implementations raise ``BackendUnavailable`` when their infrastructure
    cannot be reached.
    """

    @abstractmethod
    def next_sequence(self) -> int:
        """Monotonic counter used to break claim ties by creation order."""

    @abstractmethod
    def add(self, task: Task) -> None: ...

    @abstractmethod
    def get(self, task_id: str) -> Task | None: ...

    @abstractmethod
    def save(self, task: Task) -> None: ...

    @abstractmethod
    def claim(self, queue: str, now: datetime, lease_seconds: float) -> Task | None:
        """Atomically take the best runnable task of ``queue`` and mark it active.

        Runnable means pending with ``next_run_at <= now``, or active with
        an expired lease. Best means lowest priority number, then earliest
        ``next_run_at``, then creation order.
        """

    @abstractmethod
    def next_due(self, queue: str) -> datetime | None:
        """Earliest time a task of ``queue`` becomes claimable, if any."""

    @abstractmethod
    def list(self, queue: str | None = None, status: TaskStatus | None = None) -> list[Task]: ...

    @abstractmethod
    def prune_completed(self, queue: str, keep: int) -> int:
        """Drop the oldest completed tasks of ``queue`` beyond ``keep``."""


class MemoryTaskStore(TaskStore):
    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._counter = itertools.count(1)

    def next_sequence(self) -> int:
        return next(self._counter)

    def add(self, task: Task) -> None:
        self._tasks[task.id] = task.model_copy(deep=True)

    def get(self, task_id: str) -> Task | None:
        task = self._tasks.get(task_id)
        return task.model_copy(deep=True) if task is not None else None

    def save(self, task: Task) -> None:
        self._tasks[task.id] = task.model_copy(deep=True)

    @staticmethod
    def _runnable(task: Task, now: datetime) -> bool:
        if task.status == TaskStatus.pending:
            return task.next_run_at <= now
        if task.status == TaskStatus.active:
            return task.lease_expires_at is not None and task.lease_expires_at <= now
        return False

    def claim(self, queue: str, now: datetime, lease_seconds: float) -> Task | None:
        candidates = [
            t for t in self._tasks.values() if t.type == queue and self._runnable(t, now)
        ]
        if not candidates:
            return None
        task = min(candidates, key=lambda t: (t.priority, t.next_run_at, t.sequence))
        if task.status == TaskStatus.active:
            logger.warning("Reclaiming task %s after its lease expired", task.id)
        task.status = TaskStatus.active
        task.started_at = now
        task.lease_expires_at = now + timedelta(seconds=lease_seconds)
        return task.model_copy(deep=True)

    def next_due(self, queue: str) -> datetime | None:
        times = []
        for t in self._tasks.values():
            if t.type != queue:
                continue
            if t.status == TaskStatus.pending:
                times.append(t.next_run_at)
            elif t.status == TaskStatus.active and t.lease_expires_at is not None:
                times.append(t.lease_expires_at)
        return min(times) if times else None

    def list(self, queue: str | None = None, status: TaskStatus | None = None) -> list[Task]:
        return [
            t.model_copy(deep=True)
            for t in sorted(self._tasks.values(), key=lambda t: t.sequence)
            if (queue is None or t.type == queue) and (status is None or t.status == status)
        ]

    def prune_completed(self, queue: str, keep: int) -> int:
        completed = sorted(
            (t for t in self._tasks.values()
             if t.type == queue and t.status == TaskStatus.completed),
            key=lambda t: (t.completed_at or t.created_at, t.sequence),
        )
        excess = completed[:max(0, len(completed) - keep)]
        for task in excess:
            del self._tasks[task.id]
        return len(excess)
