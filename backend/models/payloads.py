"""Task payloads, validated by ``QueueManager.enqueue`` per queue."""

from typing import Any

from pydantic import BaseModel, Field

from models.match import MatchFilters
from models.profile import Location


class DocumentProcessingPayload(BaseModel):
    subject_id: str = Field(..., min_length=1)
    source_ref: str = Field(..., min_length=1, description="Document store reference or file path")
    file_type: str = "txt"
    profile_id: str | None = None  # re-process an existing profile
    location: Location | None = None
    notify: bool = False


class MatchGenerationPayload(BaseModel):
    subject_id: str = Field(..., min_length=1)
    profile_id: str = Field(..., min_length=1)
    filters: MatchFilters = MatchFilters()
    notify: bool = False


class NotificationPayload(BaseModel):
    subject_id: str = Field(..., min_length=1)
    kind: str = Field(..., min_length=1)
    data: dict[str, Any] = {}


class AnalyticsPayload(BaseModel):
    skills: list[str] = Field(..., min_length=1)
    location: str | None = None
