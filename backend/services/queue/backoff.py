"""Exponential retry backoff."""


def compute_backoff(attempt: int, base_ms: int, max_ms: int | None = None) -> int:
    """Delay in milliseconds before retry number ``attempt`` (1-based).

    ``attempt`` is the failure count after incrementing, so the first
    retry waits ``base_ms``; each later one doubles, capped at ``max_ms``.
    Non-decreasing in ``attempt``.
    """
    if attempt < 1:
        return 0
    delay = base_ms * (2 ** (attempt - 1))
    if max_ms is not None:
        delay = min(delay, max_ms)
    return delay
