"""Posting records a profile is matched against."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict

from models.profile import DegreeLevel, Location


class Importance(str, Enum):
    required = "required"
    preferred = "preferred"
    nice_to_have = "nice-to-have"


class SkillRequirement(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    importance: Importance = Importance.required


class ExperienceRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_years: float | None = None
    max_years: float | None = None


class SalaryRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float | None = None
    max: float | None = None


class Posting(BaseModel):
    """Immutable once published."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    company: str = ""
    description: str = ""
    skills: tuple[SkillRequirement, ...] = ()
    keywords: tuple[str, ...] = ()  # extra terms beyond the named requirements
    experience_range: ExperienceRange | None = None
    minimum_degree_level: DegreeLevel | None = None
    location: Location = Location()
    salary_range: SalaryRange | None = None
    employment_type: str | None = None  # full-time, part-time, contract, ...
    seniority_level: str | None = None  # junior, mid, senior, ...
    created_at: datetime | None = None
