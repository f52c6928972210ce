import os

from pydantic import BaseModel, field_validator, model_validator
from pydantic_settings import BaseSettings

from models.match import MatchWeights


def _parse_cors_origins() -> list[str] | None:
    """Parse CORS_ORIGINS env var as comma-separated string or JSON list."""
    raw = os.environ.get("CORS_ORIGINS")
    if not raw:
        return None
    if raw.startswith("["):
        import json
        return json.loads(raw)
    return [o.strip() for o in raw.split(",") if o.strip()]


class QueueSettings(BaseModel):
    """Per-queue retry, retention and concurrency policy."""
    max_attempts: int = 3
    backoff_base_ms: int = 1000
    backoff_max_ms: int = 60_000
    keep_completed: int = 100
    workers: int = 1
    default_priority: int = 5


# Defaults carried over from the production queue setup
DEFAULT_QUEUES: dict[str, QueueSettings] = {
    "document-processing": QueueSettings(
        max_attempts=3, backoff_base_ms=2000, keep_completed=100, workers=2, default_priority=1,
    ),
    "match-generation": QueueSettings(
        max_attempts=2, backoff_base_ms=1000, keep_completed=200, workers=2, default_priority=2,
    ),
    "notification": QueueSettings(
        max_attempts=5, backoff_base_ms=5000, keep_completed=50, workers=1, default_priority=3,
    ),
    "analytics": QueueSettings(
        max_attempts=2, backoff_base_ms=3000, keep_completed=50, workers=1, default_priority=4,
    ),
}


class Settings(BaseSettings):
    debug: bool = False
    log_level: str = "INFO"
    max_upload_size_mb: int = 5
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Infrastructure: "memory" runs the in-process backend, "" or "disabled"
    # puts the pipeline in degraded (inline) mode.
    queue_backend: str = "memory"
    cache_backend: str = "memory"

    queues: dict[str, QueueSettings] = {k: v.model_copy() for k, v in DEFAULT_QUEUES.items()}
    handler_timeout_seconds: float = 60.0
    lease_seconds: float = 300.0
    poll_interval_seconds: float = 0.5
    document_processing_delay_ms: int = 5000

    # Extraction
    skill_confidence: float = 0.8
    high_confidence_threshold: float = 0.9
    skill_dictionary_path: str = ""
    section_header_max_words: int = 4

    # Matching
    match_weights: MatchWeights = MatchWeights()
    salary_neutral_score: float = 0.5
    recommendation_limit: int = 20
    recommendation_ttl_seconds: int = 3600
    insights_ttl_seconds: int = 7200
    posting_set_id: str = "catalog"
    catalog_path: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_nested_delimiter": "__"}

    @field_validator("queues", mode="before")
    @classmethod
    def _merge_queue_overrides(cls, value):
        """Layer overrides on the built-in queue defaults.

        Names may use ``_`` for ``-`` so queues can be set from the
        environment, e.g. ``QUEUES__DOCUMENT_PROCESSING__WORKERS=4`` or
        ``QUEUES='{"document-processing": {"workers": 4}}'``.
        """
        merged = {k: v.model_dump() for k, v in DEFAULT_QUEUES.items()}
        for name, override in (value or {}).items():
            name = name.replace("_", "-")
            if isinstance(override, QueueSettings):
                override = override.model_dump(exclude_unset=True)
            merged[name] = {**merged.get(name, {}), **override}
        return merged

    @model_validator(mode="after")
    def _check_lease(self) -> "Settings":
        if self.lease_seconds <= self.handler_timeout_seconds:
            raise ValueError(
                "lease_seconds must exceed handler_timeout_seconds so a running task "
                "is not claimed twice"
            )
        return self

    def queue_settings(self, queue: str) -> QueueSettings:
        """Settings for a queue, falling back to built-in defaults."""
        if queue in self.queues:
            return self.queues[queue]
        return DEFAULT_QUEUES.get(queue, QueueSettings())


_cors_override = _parse_cors_origins()
settings = Settings(**{"cors_origins": _cors_override} if _cors_override else {})
