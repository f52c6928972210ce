"""Task type declarations shared by the queue manager and the inline executor.

Each queue has one ``TaskDefinition``: the payload model that ``enqueue``
validates against, the async handler, and the continuations that run
after the handler succeeds. Continuations are data, so the whole task
graph can be inspected without running anything.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from services.errors import HandlerTimeout, InvalidTaskInput


class TaskContext:
    """Per-invocation information handed to a handler."""

    def __init__(
        self,
        task_id: str,
        queue: str,
        attempt: int,
        on_progress: Callable[[int], None] | None = None,
    ) -> None:
        self.task_id = task_id
        self.queue = queue
        self.attempt = attempt  # 1-based number of the running attempt
        self._on_progress = on_progress

    def report_progress(self, percent: int) -> None:
        if self._on_progress is not None:
            self._on_progress(max(0, min(100, int(percent))))


Handler = Callable[[Any, TaskContext], Awaitable[dict[str, Any]]]

# (validated payload of the finished task, handler result) -> next payload,
# or None to skip the edge for this run
PayloadBuilder = Callable[[Any, dict[str, Any]], dict[str, Any] | None]


class Continuation(BaseModel):
    """An "on success, enqueue" edge of the task graph."""
    model_config = ConfigDict(frozen=True)

    target: str
    build_payload: PayloadBuilder
    delay_ms: int = 0
    priority: int | None = None


class TaskDefinition(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    queue: str
    handler: Handler
    payload_model: type[BaseModel]
    continuations: tuple[Continuation, ...] = ()

    def validate_payload(self, payload: dict[str, Any] | BaseModel) -> BaseModel:
        """Parse ``payload`` with the queue's model; raises InvalidTaskInput."""
        if isinstance(payload, BaseModel):
            payload = payload.model_dump()
        try:
            return self.payload_model.model_validate(payload)
        except ValidationError as e:
            raise InvalidTaskInput(
                f"Invalid payload for {self.queue}: {e.error_count()} error(s): "
                + "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
            ) from e


async def run_handler(
    definition: TaskDefinition,
    payload: BaseModel,
    context: TaskContext,
    timeout_seconds: float | None,
) -> dict[str, Any]:
    """Run one handler invocation, converting a timeout into HandlerTimeout."""
    try:
        result = await asyncio.wait_for(definition.handler(payload, context), timeout_seconds)
    except asyncio.TimeoutError as e:
        raise HandlerTimeout(
            f"{definition.queue} handler exceeded {timeout_seconds:g}s"
        ) from e
    return result if result is not None else {}
