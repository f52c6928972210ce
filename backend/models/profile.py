"""Profile records built from an uploaded document."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, computed_field


class DegreeLevel(str, Enum):
    high_school = "high_school"
    associate = "associate"
    bachelor = "bachelor"
    master = "master"
    doctorate = "doctorate"


# Ordinal used when comparing a profile against a posting's minimum degree
DEGREE_ORDINAL: dict[DegreeLevel, int] = {
    DegreeLevel.high_school: 1,
    DegreeLevel.associate: 2,
    DegreeLevel.bachelor: 3,
    DegreeLevel.master: 4,
    DegreeLevel.doctorate: 5,
}


class Skill(BaseModel):
    name: str
    category: str = "other"
    confidence: float = 0.8  # 0.0-1.0


class ExperienceEntry(BaseModel):
    employer: str = ""
    title: str = ""
    start: date | None = None
    end: date | None = None
    is_current: bool = False  # "Present" / "Current"; end stays unknown
    description: str = ""


class EducationEntry(BaseModel):
    institution: str = ""
    degree: str = ""  # degree text as written
    degree_level: DegreeLevel | None = None
    field: str = ""
    start_year: int | None = None
    end_year: int | None = None


class ContactInfo(BaseModel):
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    linkedin: str | None = None
    github: str | None = None


class ProjectEntry(BaseModel):
    name: str
    description: str = ""


class Certification(BaseModel):
    name: str
    issuing_organization: str = ""


class LanguageEntry(BaseModel):
    name: str
    proficiency: str = "conversational"


class JobTitle(BaseModel):
    title: str
    confidence: float = 0.8


class IndustryMatch(BaseModel):
    industry: str
    confidence: float  # share of the industry's keywords present


class Location(BaseModel):
    city: str | None = None
    state: str | None = None  # region
    country: str | None = None
    is_remote: bool = False

    @property
    def is_known(self) -> bool:
        return bool(self.city or self.state or self.country)


class QualityScore(BaseModel):
    """Profile quality sub-scores (0-100).

    ``overall`` is derived from the three sub-scores and cannot be set.
    """
    skills: int = 0
    experience: int = 0
    education: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall(self) -> int:
        # sum/3 never lands on .5, so round() matches round-half-up here
        return round((self.skills + self.experience + self.education) / 3)


class Suggestion(BaseModel):
    category: str
    suggestion: str
    priority: str = "medium"
    impact: int = 0


class Profile(BaseModel):
    id: str
    subject_id: str = ""
    raw_text: str = ""
    contact: ContactInfo = ContactInfo()
    location: Location | None = None
    skills: list[Skill] = []
    experience: list[ExperienceEntry] = []
    education: list[EducationEntry] = []
    projects: list[ProjectEntry] = []
    certifications: list[Certification] = []
    languages: list[LanguageEntry] = []
    job_titles: list[JobTitle] = []
    industries: list[IndustryMatch] = []
    summary_text: str = ""
    quality_score: QualityScore = QualityScore()
    suggestions: list[Suggestion] = []
    updated_at: datetime | None = None
