"""Infrastructure capability probe, run once at startup."""

import logging

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

_SUPPORTED_BACKENDS = frozenset({"memory"})
_DISABLED = frozenset({"", "disabled", "none", "off"})


class Capabilities(BaseModel):
    model_config = ConfigDict(frozen=True)

    queue_available: bool = True
    cache_available: bool = True

    @property
    def mode(self) -> str:
        return "queued" if self.queue_available else "inline"


def _backend_available(kind: str, backend: str) -> bool:
    name = backend.strip().lower()
    if name in _DISABLED:
        return False
    if name not in _SUPPORTED_BACKENDS:
        logger.warning("Unknown %s backend %r, treating it as unavailable", kind, backend)
        return False
    return True


def probe_capabilities(settings) -> Capabilities:
    caps = Capabilities(
        queue_available=_backend_available("queue", settings.queue_backend),
        cache_available=_backend_available("cache", settings.cache_backend),
    )
    if not caps.queue_available:
        logger.warning("Task queue unavailable; tasks will run inline")
    logger.info(
        "Capabilities: queue=%s cache=%s", caps.queue_available, caps.cache_available
    )
    return caps
