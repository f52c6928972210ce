"""Asynchronous task queue with retries, backoff and inline fallback.

Flow:
    enqueue(queue, payload)
      ├─ validate payload          → InvalidTaskInput (no attempt used)
      ├─ queue available?  no      → FallbackExecutor.run (inline)
      └─ store.add(pending task)   → TaskHandle(mode="queued")

    worker loop (per queue, ``workers`` coroutines)
      └─ process_next(queue)
            ├─ store.claim         → active, leased
            ├─ run_handler         → completed │ pending+backoff │ dead
            └─ continuations       → enqueue(target, build_payload(...))
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any
from uuid import uuid4

from pydantic import BaseModel

from models.responses import QueueCounts
from models.task import (
    TERMINAL_STATUSES,
    Task,
    TaskHandle,
    TaskOptions,
    TaskStatus,
    TaskStatusView,
)
from services.capabilities import Capabilities
from services.errors import BackendUnavailable, InvalidTaskInput, TaskNotFound, describe
from services.queue.backoff import compute_backoff
from services.queue.fallback import FallbackExecutor, is_inline_id
from services.queue.store import MemoryTaskStore, TaskStore
from services.queue.tasks import TaskContext, TaskDefinition, run_handler
from services.result_cache import utc_now

logger = logging.getLogger(__name__)


class QueueManager:
    def __init__(
        self,
        settings,
        capabilities: Capabilities,
        store: TaskStore | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings
        self.capabilities = capabilities
        self.store = store if store is not None else MemoryTaskStore()
        self.clock = clock
        self._definitions: dict[str, TaskDefinition] = {}
        self._wakeups: dict[str, asyncio.Event] = {}
        self._paused: set[str] = set()
        self._workers: list[asyncio.Task] = []
        self.fallback = FallbackExecutor(settings, self._definitions, clock)

    # ------------------------------------------------------------------
    # Task graph
    # ------------------------------------------------------------------

    def register(self, definition: TaskDefinition) -> None:
        if definition.queue in self._definitions:
            raise ValueError(f"Queue already registered: {definition.queue}")
        self._definitions[definition.queue] = definition
        self._wakeups[definition.queue] = asyncio.Event()
        logger.debug("Registered queue %s", definition.queue)

    @property
    def queues(self) -> list[str]:
        return list(self._definitions)

    def task_graph(self) -> dict[str, tuple[str, ...]]:
        """Declared "on success, enqueue" edges, keyed by source queue."""
        return {
            queue: tuple(c.target for c in definition.continuations)
            for queue, definition in self._definitions.items()
        }

    def validate_graph(self) -> None:
        for queue, targets in self.task_graph().items():
            missing = [t for t in targets if t not in self._definitions]
            if missing:
                raise ValueError(f"Queue {queue} continues to unregistered queue(s): {missing}")

    def _definition(self, queue: str) -> TaskDefinition:
        definition = self._definitions.get(queue)
        if definition is None:
            raise InvalidTaskInput(f"Unknown queue: {queue}")
        return definition

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    async def enqueue(
        self,
        queue_type: str,
        payload: dict[str, Any] | BaseModel,
        options: TaskOptions | None = None,
    ) -> TaskHandle:
        """Submit a task. Returns without waiting for the handler when queued."""
        definition = self._definition(queue_type)
        model = definition.validate_payload(payload)
        options = options or TaskOptions()
        queue_settings = self.settings.queue_settings(queue_type)
        max_attempts = options.max_attempts or queue_settings.max_attempts
        priority = options.priority if options.priority is not None else queue_settings.default_priority

        if not self.capabilities.queue_available:
            return await self.fallback.run(definition, model, max_attempts)

        now = self.clock()
        task = Task(
            id=uuid4().hex,
            type=queue_type,
            payload=model.model_dump(mode="json"),
            max_attempts=max_attempts,
            priority=priority,
            created_at=now,
            next_run_at=now + timedelta(milliseconds=options.delay_ms),
        )
        try:
            task.sequence = self.store.next_sequence()
            self.store.add(task)
        except BackendUnavailable as e:
            logger.warning("Task store unavailable (%s); running %s inline", e, queue_type)
            return await self.fallback.run(definition, model, max_attempts)

        self._wakeups[queue_type].set()
        logger.info(
            "Enqueued %s task %s (priority=%d, delay=%dms)",
            queue_type, task.id, priority, options.delay_ms,
        )
        return TaskHandle(task_id=task.id, mode="queued", status=TaskStatus.pending)

    def get_status(self, task_id: str) -> TaskStatusView:
        if is_inline_id(task_id):
            return self.fallback.status(task_id)
        task = self.store.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        return _status_view(task)

    def cancel(self, task_id: str) -> bool:
        """Cancel a task that has not started. Returns False otherwise."""
        if is_inline_id(task_id):
            self.fallback.status(task_id)
            return False
        task = self.store.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        if task.status != TaskStatus.pending:
            return False
        task.status = TaskStatus.cancelled
        self.store.save(task)
        logger.info("Cancelled %s task %s", task.type, task_id)
        return True

    async def wait(self, task_id: str, timeout: float = 30.0, interval: float = 0.05) -> TaskStatusView:
        """Poll until the task reaches a terminal status or ``timeout`` elapses.

        Returns the last observed status either way.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            view = self.get_status(task_id)
            if view.status in TERMINAL_STATUSES or loop.time() >= deadline:
                return view
            await asyncio.sleep(interval)

    def queue_counts(self) -> dict[str, QueueCounts]:
        counts: dict[str, QueueCounts] = {}
        for queue in self._definitions:
            tally = {status.value: 0 for status in TaskStatus}
            for task in self.store.list(queue=queue):
                tally[_status_view(task).status.value] += 1
            counts[queue] = QueueCounts(**tally)
        return counts

    def dead_letters(self, queue: str | None = None) -> list[Task]:
        return self.store.list(queue=queue, status=TaskStatus.dead)

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    async def process_next(self, queue: str) -> bool:
        """Claim and run one task of ``queue``. Returns False when none was runnable."""
        definition = self._definition(queue)
        if queue in self._paused:
            return False
        task = self.store.claim(queue, self.clock(), self.settings.lease_seconds)
        if task is None:
            return False
        await self._execute(definition, task)
        return True

    async def _execute(self, definition: TaskDefinition, task: Task) -> None:
        context = TaskContext(
            task.id, task.type, task.attempt + 1,
            on_progress=lambda percent: self._set_progress(task.id, percent),
        )
        logger.debug("Running %s task %s attempt %d", task.type, task.id, task.attempt + 1)
        try:
            payload = definition.validate_payload(task.payload)
            result = await run_handler(
                definition, payload, context, self.settings.handler_timeout_seconds
            )
        except Exception as e:
            self._record_failure(task, e)
            return

        self._record_success(task, result)
        await self._enqueue_continuations(definition, payload, result)

    def _set_progress(self, task_id: str, percent: int) -> None:
        task = self.store.get(task_id)
        if task is not None and task.status == TaskStatus.active:
            task.progress = percent
            self.store.save(task)

    def _record_success(self, task: Task, result: dict[str, Any]) -> None:
        current = self.store.get(task.id) or task
        current.status = TaskStatus.completed
        current.progress = 100
        current.result = result
        current.error = None
        current.completed_at = self.clock()
        current.lease_expires_at = None
        self.store.save(current)
        logger.info("Completed %s task %s", task.type, task.id)

        keep = self.settings.queue_settings(task.type).keep_completed
        pruned = self.store.prune_completed(task.type, keep)
        if pruned:
            logger.debug("Pruned %d completed %s tasks", pruned, task.type)

    def _record_failure(self, task: Task, exc: Exception) -> None:
        current = self.store.get(task.id) or task
        now = self.clock()
        current.attempt += 1
        current.error = describe(exc)
        current.failed_at = now
        current.lease_expires_at = None

        if current.attempt < current.max_attempts:
            queue_settings = self.settings.queue_settings(task.type)
            delay_ms = compute_backoff(
                current.attempt, queue_settings.backoff_base_ms, queue_settings.backoff_max_ms
            )
            current.status = TaskStatus.pending
            current.next_run_at = now + timedelta(milliseconds=delay_ms)
            logger.warning(
                "%s task %s failed attempt %d/%d, retrying in %dms: %s",
                task.type, task.id, current.attempt, current.max_attempts, delay_ms, current.error,
            )
        else:
            current.status = TaskStatus.dead
            logger.error(
                "%s task %s is dead after %d attempts: %s",
                task.type, task.id, current.attempt, current.error,
            )
        self.store.save(current)

    async def _enqueue_continuations(
        self, definition: TaskDefinition, payload: BaseModel, result: dict[str, Any]
    ) -> None:
        for cont in definition.continuations:
            try:
                data = cont.build_payload(payload, result)
            except Exception:
                logger.exception(
                    "Continuation payload for %s -> %s failed", definition.queue, cont.target
                )
                continue
            if data is None:
                continue
            try:
                await self.enqueue(
                    cont.target,
                    data,
                    TaskOptions(priority=cont.priority, delay_ms=cont.delay_ms),
                )
            except InvalidTaskInput as e:
                logger.error("Skipping continuation %s -> %s: %s", definition.queue, cont.target, e)

    # ------------------------------------------------------------------
    # Worker lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if not self.capabilities.queue_available:
            logger.info("Queue workers not started (inline mode)")
            return
        if self._workers:
            return
        self.validate_graph()
        for queue in self._definitions:
            count = self.settings.queue_settings(queue).workers
            for index in range(count):
                self._workers.append(
                    asyncio.create_task(self._worker(queue), name=f"{queue}-worker-{index}")
                )
        logger.info("Started %d queue workers", len(self._workers))

    async def stop(self) -> None:
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        if self._workers:
            logger.info("Stopped %d queue workers", len(self._workers))
        self._workers = []

    def pause(self, queue: str) -> None:
        self._definition(queue)
        self._paused.add(queue)
        logger.info("Paused queue %s", queue)

    def resume(self, queue: str) -> None:
        self._definition(queue)
        self._paused.discard(queue)
        self._wakeups[queue].set()
        logger.info("Resumed queue %s", queue)

    @property
    def running(self) -> bool:
        return bool(self._workers)

    async def _worker(self, queue: str) -> None:
        wakeup = self._wakeups[queue]
        while True:
            wakeup.clear()
            try:
                if not await self.process_next(queue):
                    await self._idle(queue, wakeup)
            except BackendUnavailable as e:
                logger.warning("Task store unavailable for %s: %s", queue, e)
                await asyncio.sleep(self.settings.poll_interval_seconds)
            except Exception:
                logger.exception("Worker for %s hit an unexpected error", queue)
                await asyncio.sleep(self.settings.poll_interval_seconds)

    async def _idle(self, queue: str, wakeup: asyncio.Event) -> None:
        timeout = self.settings.poll_interval_seconds
        if queue not in self._paused:
            due = self.store.next_due(queue)
            if due is not None:
                timeout = min(timeout, max(0.0, (due - self.clock()).total_seconds()))
        try:
            await asyncio.wait_for(wakeup.wait(), timeout)
        except asyncio.TimeoutError:
            return


def _status_view(task: Task) -> TaskStatusView:
    status = task.status
    if status == TaskStatus.pending and task.error:
        status = TaskStatus.failed
    return TaskStatusView(
        task_id=task.id,
        status=status,
        progress=task.progress,
        result=task.result,
        error=task.error,
        completed_at=task.completed_at,
        mode="queued",
    )
