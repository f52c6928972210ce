"""Profile quality scoring.

Sub-scores (0-100):
    skills     = min(100, 10*count + 5*high_confidence + 10*distinct_categories)
    experience = min(100, 20*total_years)
    education  = sum of per-degree points, capped at 100
The overall score is derived from these three by ``QualityScore``.
"""

import logging
import math
from datetime import datetime

from models.profile import (
    DegreeLevel,
    EducationEntry,
    ExperienceEntry,
    Profile,
    QualityScore,
    Skill,
    Suggestion,
)

logger = logging.getLogger(__name__)

DEGREE_POINTS: dict[DegreeLevel, int] = {
    DegreeLevel.doctorate: 40,
    DegreeLevel.master: 30,
    DegreeLevel.bachelor: 20,
    DegreeLevel.associate: 10,
}

DEFAULT_HIGH_CONFIDENCE = 0.9
_DAYS_PER_YEAR = 365.25


def skills_score(skills: list[Skill], high_confidence_threshold: float = DEFAULT_HIGH_CONFIDENCE) -> int:
    if not skills:
        return 0
    high_confidence = sum(1 for s in skills if s.confidence >= high_confidence_threshold)
    categories = len({s.category for s in skills})
    return min(100, 10 * len(skills) + 5 * high_confidence + 10 * categories)


def total_experience_years(experience: list[ExperienceEntry]) -> float:
    """Sum of dated spans in years; entries missing either date add nothing."""
    total = 0.0
    for entry in experience:
        if entry.start is None or entry.end is None:
            continue
        total += max(0.0, (entry.end - entry.start).days / _DAYS_PER_YEAR)
    return total


def experience_score(experience: list[ExperienceEntry]) -> int:
    # round half up
    return min(100, math.floor(20 * total_experience_years(experience) + 0.5))


def education_score(education: list[EducationEntry]) -> int:
    points = sum(DEGREE_POINTS.get(e.degree_level, 0) for e in education if e.degree_level)
    return min(100, points)


def score_profile(
    profile: Profile, high_confidence_threshold: float = DEFAULT_HIGH_CONFIDENCE
) -> QualityScore:
    return QualityScore(
        skills=skills_score(profile.skills, high_confidence_threshold),
        experience=experience_score(profile.experience),
        education=education_score(profile.education),
    )


def suggest_improvements(profile: Profile, quality: QualityScore) -> list[Suggestion]:
    suggestions: list[Suggestion] = []
    if quality.overall < 50:
        suggestions.append(Suggestion(
            category="content",
            suggestion="Consider adding more detailed work experience and achievements",
            priority="high",
            impact=80,
        ))
    if len(profile.skills) < 5:
        suggestions.append(Suggestion(
            category="skills",
            suggestion="Add more technical skills and specify proficiency levels",
            priority="high",
            impact=70,
        ))
    if len(profile.summary_text) < 100:
        suggestions.append(Suggestion(
            category="content",
            suggestion="Add a compelling professional summary",
            priority="medium",
            impact=60,
        ))
    return suggestions


def apply_scores(
    profile: Profile,
    high_confidence_threshold: float = DEFAULT_HIGH_CONFIDENCE,
    now: datetime | None = None,
) -> Profile:
    """Return a copy of ``profile`` with freshly computed score fields.

    Pure in its inputs: re-scoring the same entities yields the same
    scores, so concurrent re-processing of one profile is safe.
    """
    quality = score_profile(profile, high_confidence_threshold)
    logger.debug(
        "Scored profile %s: skills=%d experience=%d education=%d overall=%d",
        profile.id, quality.skills, quality.experience, quality.education, quality.overall,
    )
    update = {
        "quality_score": quality,
        "suggestions": suggest_improvements(profile, quality),
    }
    if now is not None:
        update["updated_at"] = now
    return profile.model_copy(update=update)
