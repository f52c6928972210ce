from pydantic import BaseModel

from models.task import ExecutionMode


class EnqueueResponse(BaseModel):
    task_id: str
    mode: ExecutionMode


class HealthResponse(BaseModel):
    status: str = "ok"
    queue_available: bool = False
    cache_available: bool = False
    mode: ExecutionMode = "queued"


class QueueCounts(BaseModel):
    pending: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    dead: int = 0
    cancelled: int = 0


class MarketInsights(BaseModel):
    skills: list[str] = []
    location: str | None = None
    total_jobs: int = 0
    remote_share: float = 0.0
    average_salary_min: float | None = None
    average_salary_max: float | None = None
    skill_demand: dict[str, int] = {}
