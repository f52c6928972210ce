from pydantic import BaseModel, Field

from models.profile import Location


class TextDocumentRequest(BaseModel):
    subject_id: str = Field(..., min_length=1, max_length=200)
    text: str = Field(..., max_length=50000, description="Plain text document content")
    location: Location | None = None
    notify: bool = False


class MarketInsightsRequest(BaseModel):
    skills: list[str] = Field(..., min_length=1, max_length=50)
    location: str | None = None
