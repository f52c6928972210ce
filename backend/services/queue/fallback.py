"""Inline execution used when the task queue is unavailable.

Runs a task and everything it chains to on the caller's coroutine: each
task is retried immediately up to its attempt limit under the same
timeout as queued runs, then its continuations are drained from a work
list. The handler output is identical to what the queued path stores.
"""

import logging
from collections import deque
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel

from models.task import TaskHandle, TaskStatus, TaskStatusView
from services.errors import InvalidTaskInput, TaskNotFound, describe
from services.queue.tasks import TaskContext, TaskDefinition, run_handler

logger = logging.getLogger(__name__)

INLINE_PREFIX = "inline-"


def is_inline_id(task_id: str) -> bool:
    return task_id.startswith(INLINE_PREFIX)


class FallbackExecutor:
    def __init__(
        self,
        settings,
        definitions: Mapping[str, TaskDefinition],
        clock: Callable[[], datetime],
    ) -> None:
        self.settings = settings
        self.definitions = definitions
        self.clock = clock
        self._records: dict[str, TaskStatusView] = {}
        self._queues: dict[str, str] = {}
        self._warned = False

    def _warn_once(self) -> None:
        if not self._warned:
            logger.warning("Task queue unavailable; running tasks inline on the caller")
            self._warned = True

    def status(self, task_id: str) -> TaskStatusView:
        record = self._records.get(task_id)
        if record is None:
            raise TaskNotFound(task_id)
        return record.model_copy()

    async def run(
        self,
        definition: TaskDefinition,
        payload: BaseModel,
        max_attempts: int,
    ) -> TaskHandle:
        """Run ``definition`` and its continuations; return the first task's handle."""
        self._warn_once()
        first_id = f"{INLINE_PREFIX}{uuid4().hex}"
        work: deque[tuple[TaskDefinition, BaseModel, int, str]] = deque(
            [(definition, payload, max_attempts, first_id)]
        )
        handle: TaskHandle | None = None

        while work:
            current, current_payload, attempts, task_id = work.popleft()
            status, result, error = await self._run_one(current, current_payload, attempts, task_id)
            if handle is None:
                handle = TaskHandle(
                    task_id=task_id, mode="inline", status=status, result=result, error=error,
                )
            if status != TaskStatus.completed:
                continue
            for cont in current.continuations:
                try:
                    data = cont.build_payload(current_payload, result or {})
                except Exception:
                    logger.exception(
                        "Continuation payload for %s -> %s failed", current.queue, cont.target
                    )
                    continue
                if data is None:
                    continue
                target = self.definitions.get(cont.target)
                if target is None:
                    logger.error("Continuation %s -> %s has no registered queue", current.queue, cont.target)
                    continue
                try:
                    next_payload = target.validate_payload(data)
                except InvalidTaskInput as e:
                    logger.error("Skipping continuation %s -> %s: %s", current.queue, cont.target, e)
                    continue
                work.append((
                    target,
                    next_payload,
                    self.settings.queue_settings(cont.target).max_attempts,
                    f"{INLINE_PREFIX}{uuid4().hex}",
                ))

        return handle

    def _prune(self, queue: str) -> None:
        keep = self.settings.queue_settings(queue).keep_completed
        completed = [
            task_id for task_id, record in self._records.items()
            if self._queues[task_id] == queue and record.status == TaskStatus.completed
        ]
        # records are kept in insertion order, so the oldest come first
        for task_id in completed[: max(0, len(completed) - keep)]:
            del self._records[task_id]
            del self._queues[task_id]

    async def _run_one(
        self,
        definition: TaskDefinition,
        payload: BaseModel,
        max_attempts: int,
        task_id: str,
    ) -> tuple[TaskStatus, dict[str, Any] | None, str | None]:
        record = TaskStatusView(task_id=task_id, status=TaskStatus.active, mode="inline")
        self._records[task_id] = record
        self._queues[task_id] = definition.queue

        def on_progress(percent: int) -> None:
            record.progress = percent

        error: str | None = None
        for attempt in range(1, max_attempts + 1):
            context = TaskContext(task_id, definition.queue, attempt, on_progress)
            try:
                result = await run_handler(
                    definition, payload, context, self.settings.handler_timeout_seconds
                )
            except Exception as e:
                error = describe(e)
                logger.warning(
                    "Inline %s task %s failed attempt %d/%d: %s",
                    definition.queue, task_id, attempt, max_attempts, error,
                )
                continue
            record.status = TaskStatus.completed
            record.progress = 100
            record.result = result
            record.error = None
            record.completed_at = self.clock()
            logger.info("Inline %s task %s completed", definition.queue, task_id)
            self._prune(definition.queue)
            return TaskStatus.completed, result, None

        record.status = TaskStatus.dead
        record.error = error
        logger.error(
            "Inline %s task %s is dead after %d attempts: %s",
            definition.queue, task_id, max_attempts, error,
        )
        return TaskStatus.dead, None, error
