"""Shared test configuration, pytest markers and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from config import Settings


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: runs the full pipeline through a runtime"
    )


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, ms: float = 0) -> None:
        self.now += timedelta(seconds=seconds, milliseconds=ms)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_settings():
    """Settings factory with fast, test-friendly defaults."""
    def _make(**overrides) -> Settings:
        values = {
            "queue_backend": "memory",
            "cache_backend": "memory",
            "handler_timeout_seconds": 5.0,
            "poll_interval_seconds": 0.01,
            "document_processing_delay_ms": 0,
            "catalog_path": "",
            "skill_dictionary_path": "",
        }
        values.update(overrides)
        return Settings(**values)
    return _make


SAMPLE_DOCUMENT = """Jane Smith
jane@example.com | (555) 123-4567
linkedin.com/in/janesmith | github.com/janesmith

Summary
Backend engineer building Python, Docker and AWS services since 2016.

Experience
Senior Software Engineer | Acme Inc. | Jan 2020 - Present
• Built REST APIs with Python and FastAPI
Software Engineer | Beta LLC | 2016 - 2019
• Maintained PostgreSQL databases

Education
B.S. in Computer Science, State University, 2012 - 2016

Projects
Resume Matcher
• Built a matching engine in Python

Certifications
AWS Certified Solutions Architect - Amazon Web Services, 2021

Languages
English (native), Spanish (intermediate)
"""


@pytest.fixture
def sample_document():
    return SAMPLE_DOCUMENT
