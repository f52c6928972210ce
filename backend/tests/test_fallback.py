"""Tests for inline execution when the queue is unavailable."""

import pytest
from pydantic import BaseModel

from config import QueueSettings
from models.task import TaskOptions, TaskStatus
from services.capabilities import Capabilities
from services.errors import BackendUnavailable, TaskNotFound
from services.queue.manager import QueueManager
from services.queue.store import MemoryTaskStore
from services.queue.tasks import Continuation, TaskDefinition


class CountPayload(BaseModel):
    n: int


class Counter:
    def __init__(self, failures: int = 0):
        self.calls: list[int] = []
        self.failures = failures

    async def __call__(self, payload: CountPayload, context) -> dict:
        self.calls.append(payload.n)
        if len(self.calls) <= self.failures:
            raise RuntimeError(f"failure {len(self.calls)}")
        return {"n": payload.n, "square": payload.n * payload.n}


def _next(payload: CountPayload, result: dict) -> dict:
    return {"n": payload.n + 1}


def _inline_manager(make_settings, clock, store=None, queue_available=False):
    settings = make_settings()
    return QueueManager(
        settings,
        Capabilities(queue_available=queue_available),
        store or MemoryTaskStore(),
        clock=clock,
    )


@pytest.mark.asyncio
async def test_inline_run_returns_result(make_settings, clock):
    manager = _inline_manager(make_settings, clock)
    handler = Counter()
    manager.register(TaskDefinition(queue="square", handler=handler, payload_model=CountPayload))

    handle = await manager.enqueue("square", {"n": 4})
    assert handle.mode == "inline"
    assert handle.task_id.startswith("inline-")
    assert handle.status == TaskStatus.completed
    assert handle.result == {"n": 4, "square": 16}

    status = manager.get_status(handle.task_id)
    assert status.status == TaskStatus.completed
    assert status.mode == "inline"
    assert status.progress == 100
    assert manager.store.list() == []


@pytest.mark.asyncio
async def test_inline_matches_queued_result(make_settings, clock):
    queued = _inline_manager(make_settings, clock, queue_available=True)
    queued.register(TaskDefinition(queue="square", handler=Counter(), payload_model=CountPayload))
    handle = await queued.enqueue("square", {"n": 9})
    await queued.process_next("square")
    queued_result = queued.store.get(handle.task_id).result

    inline = _inline_manager(make_settings, clock)
    inline.register(TaskDefinition(queue="square", handler=Counter(), payload_model=CountPayload))
    inline_handle = await inline.enqueue("square", {"n": 9})

    assert inline_handle.result == queued_result


@pytest.mark.asyncio
async def test_inline_retries_immediately_up_to_limit(make_settings, clock):
    manager = _inline_manager(make_settings, clock)
    handler = Counter(failures=2)
    manager.register(TaskDefinition(queue="square", handler=handler, payload_model=CountPayload))

    handle = await manager.enqueue("square", {"n": 2})
    assert handle.status == TaskStatus.completed
    assert len(handler.calls) == 3


@pytest.mark.asyncio
async def test_inline_dead_after_attempts(make_settings, clock):
    manager = _inline_manager(make_settings, clock)
    handler = Counter(failures=10)
    manager.register(TaskDefinition(queue="square", handler=handler, payload_model=CountPayload))

    handle = await manager.enqueue("square", {"n": 2}, TaskOptions(max_attempts=2))
    assert handle.status == TaskStatus.dead
    assert handle.error == "RuntimeError: failure 2"
    assert len(handler.calls) == 2
    assert manager.get_status(handle.task_id).status == TaskStatus.dead
    assert manager.cancel(handle.task_id) is False


@pytest.mark.asyncio
async def test_inline_drains_long_chain_without_recursion(make_settings, clock):
    manager = _inline_manager(make_settings, clock)
    handler = Counter()
    depth = 200
    for i in range(depth):
        continuations = ()
        if i + 1 < depth:
            continuations = (Continuation(target=f"step-{i + 1}", build_payload=_next),)
        manager.register(TaskDefinition(
            queue=f"step-{i}", handler=handler, payload_model=CountPayload,
            continuations=continuations,
        ))

    handle = await manager.enqueue("step-0", {"n": 0})
    assert handle.status == TaskStatus.completed
    assert handler.calls == list(range(depth))


@pytest.mark.asyncio
async def test_inline_skips_continuation_when_builder_returns_none(make_settings, clock):
    manager = _inline_manager(make_settings, clock)
    follow = Counter()
    manager.register(TaskDefinition(
        queue="first", handler=Counter(), payload_model=CountPayload,
        continuations=(Continuation(target="second", build_payload=lambda p, r: None),),
    ))
    manager.register(TaskDefinition(queue="second", handler=follow, payload_model=CountPayload))
    await manager.enqueue("first", {"n": 1})
    assert follow.calls == []


@pytest.mark.asyncio
async def test_store_outage_falls_back_inline(make_settings, clock):
    class DownStore(MemoryTaskStore):
        def add(self, task):
            raise BackendUnavailable("store offline")

    manager = _inline_manager(make_settings, clock, store=DownStore(), queue_available=True)
    manager.register(TaskDefinition(queue="square", handler=Counter(), payload_model=CountPayload))
    handle = await manager.enqueue("square", {"n": 3})
    assert handle.mode == "inline"
    assert handle.result == {"n": 3, "square": 9}


def test_unknown_inline_id(make_settings, clock):
    manager = _inline_manager(make_settings, clock)
    with pytest.raises(TaskNotFound):
        manager.get_status("inline-deadbeef")


def test_workers_not_started_inline(make_settings, clock):
    manager = _inline_manager(make_settings, clock)
    manager.start()
    assert manager.running is False


@pytest.mark.asyncio
async def test_inline_failing_continuation_builder_keeps_first_result(make_settings, clock):
    manager = _inline_manager(make_settings, clock)
    follow = Counter()
    manager.register(TaskDefinition(
        queue="first", handler=Counter(), payload_model=CountPayload,
        continuations=(Continuation(target="second", build_payload=lambda p, r: {"n": r["missing"]}),),
    ))
    manager.register(TaskDefinition(queue="second", handler=follow, payload_model=CountPayload))
    handle = await manager.enqueue("first", {"n": 2})
    assert handle.status == TaskStatus.completed
    assert handle.result == {"n": 2, "square": 4}
    assert follow.calls == []


@pytest.mark.asyncio
async def test_inline_records_pruned_beyond_retention(make_settings, clock):
    settings = make_settings(queues={"square": QueueSettings(max_attempts=1, keep_completed=2)})
    manager = QueueManager(settings, Capabilities(queue_available=False), clock=clock)
    manager.register(TaskDefinition(queue="square", handler=Counter(), payload_model=CountPayload))
    failing = Counter(failures=10)
    manager.register(TaskDefinition(queue="broken", handler=failing, payload_model=CountPayload))

    dead = await manager.enqueue("broken", {"n": 0}, TaskOptions(max_attempts=1))
    handles = [await manager.enqueue("square", {"n": n}) for n in range(5)]

    for handle in handles[:3]:
        with pytest.raises(TaskNotFound):
            manager.get_status(handle.task_id)
    assert [manager.get_status(h.task_id).status for h in handles[3:]] == [TaskStatus.completed] * 2
    assert manager.get_status(dead.task_id).status == TaskStatus.dead
