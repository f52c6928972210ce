"""Multi-factor profile/posting compatibility scoring.

Five factor scores in [0, 1] are combined as a fixed-weight sum:

    total = w_skills*skills + w_experience*experience + w_location*location
            + w_salary*salary + w_education*education

Scoring is a pure function of (profile, posting, weights): no clock, no
randomness, no cached state, so repeated calls reproduce the same
totals, breakdowns and ranking.
"""

import logging
from abc import ABC, abstractmethod

import numpy as np

from models.match import MatchBreakdown, MatchResult, MatchWeights
from models.posting import Importance, Posting
from models.profile import DEGREE_ORDINAL, DegreeLevel, Location, Profile
from services.profile_scorer import total_experience_years

logger = logging.getLogger(__name__)

IMPORTANCE_WEIGHTS: dict[Importance, float] = {
    Importance.required: 1.0,
    Importance.preferred: 0.7,
    Importance.nice_to_have: 0.3,
}

NEUTRAL_SKILLS = 0.5
MAX_KEYWORD_BONUS = 0.2
KEYWORD_BONUS_STEP = 0.05
NEUTRAL_EXPERIENCE = 0.8
NEUTRAL_LOCATION = 0.5
NEUTRAL_EDUCATION = 0.7
DEFAULT_SALARY_SCORE = 0.5

_PRECISION = 4


# ---------------------------------------------------------------------------
# Factors
# ---------------------------------------------------------------------------

def skills_factor(profile: Profile, posting: Posting) -> float:
    """Weighted share of the posting's skill requirements the profile covers.

    Posting keywords that are not named requirements add a bonus of
    0.05 each, capped at 0.2. A posting without requirements is neutral.
    """
    if not posting.skills:
        return NEUTRAL_SKILLS

    have = {s.name.lower() for s in profile.skills}
    total = 0.0
    earned = 0.0
    for req in posting.skills:
        weight = IMPORTANCE_WEIGHTS[req.importance]
        total += weight
        if req.name.lower() in have:
            earned += weight
    base = earned / total if total > 0 else NEUTRAL_SKILLS

    named = {req.name.lower() for req in posting.skills}
    extra = {k.lower() for k in posting.keywords} - named
    overlap = len(extra & have)
    bonus = min(MAX_KEYWORD_BONUS, KEYWORD_BONUS_STEP * overlap)
    return min(1.0, base + bonus)


def experience_factor(years: float, posting: Posting) -> float:
    rng = posting.experience_range
    min_years = rng.min_years if rng else None
    max_years = rng.max_years if rng else None
    if min_years is None and max_years is None:
        return NEUTRAL_EXPERIENCE

    floor = min_years or 0.0
    if years < floor:
        return max(0.1, 1.0 - 0.2 * (floor - years))
    if max_years is not None and years > max_years:
        return max(0.7, 1.0 - 0.1 * (years - max_years))
    return 1.0


def _same(a: str | None, b: str | None) -> bool:
    return bool(a and b and a.strip().lower() == b.strip().lower())


def location_factor(profile_location: Location | None, posting: Posting) -> float:
    if posting.location.is_remote:
        return 1.0
    if profile_location is None or not profile_location.is_known:
        return NEUTRAL_LOCATION
    if _same(profile_location.city, posting.location.city):
        return 1.0
    if _same(profile_location.state, posting.location.state):
        return 0.8
    if _same(profile_location.country, posting.location.country):
        return 0.6
    return 0.2


def highest_degree(profile: Profile) -> DegreeLevel | None:
    levels = [e.degree_level for e in profile.education if e.degree_level is not None]
    if not levels:
        return None
    return max(levels, key=lambda level: DEGREE_ORDINAL[level])


def education_factor(profile: Profile, posting: Posting) -> float:
    required = posting.minimum_degree_level
    have = highest_degree(profile)
    if required is None or have is None:
        return NEUTRAL_EDUCATION
    gap = DEGREE_ORDINAL[required] - DEGREE_ORDINAL[have]
    if gap <= 0:
        return 1.0
    return max(0.2, 1.0 - 0.3 * gap)


class SalaryComparator(ABC):
    """Extension point for salary matching.

    A real comparison needs market data this service does not own, so the
    default implementation returns a constant neutral score.
    """

    @abstractmethod
    def compare(self, profile: Profile, posting: Posting) -> float:
        """Return a score in [0, 1]."""


class NeutralSalaryComparator(SalaryComparator):
    def __init__(self, score: float = DEFAULT_SALARY_SCORE) -> None:
        self.score = score

    def compare(self, profile: Profile, posting: Posting) -> float:
        return self.score


# ---------------------------------------------------------------------------
# Scorer
# ---------------------------------------------------------------------------

class MatchScorer:
    def __init__(
        self,
        weights: MatchWeights | None = None,
        salary_comparator: SalaryComparator | None = None,
    ) -> None:
        self.weights = weights or MatchWeights()
        self.salary_comparator = salary_comparator or NeutralSalaryComparator()
        self._weight_vector = np.array(self.weights.as_tuple(), dtype=float)

    def breakdown(self, profile: Profile, posting: Posting) -> MatchBreakdown:
        years = total_experience_years(profile.experience)
        salary = min(1.0, max(0.0, float(self.salary_comparator.compare(profile, posting))))
        return MatchBreakdown(
            skills=round(skills_factor(profile, posting), _PRECISION),
            experience=round(experience_factor(years, posting), _PRECISION),
            location=round(location_factor(profile.location, posting), _PRECISION),
            salary=round(salary, _PRECISION),
            education=round(education_factor(profile, posting), _PRECISION),
        )

    def score(self, profile: Profile, posting: Posting) -> MatchResult:
        breakdown = self.breakdown(profile, posting)
        total = float(np.dot(self._weight_vector, np.array(breakdown.as_tuple(), dtype=float)))
        total = min(1.0, max(0.0, total))
        return MatchResult(
            profile_id=profile.id,
            posting_id=posting.id,
            total_score=round(total, _PRECISION),
            breakdown=breakdown,
        )

    def rank(self, profile: Profile, postings: list[Posting]) -> list[MatchResult]:
        """Score every posting and order best first.

        Ties on total score go to the more recently created posting, then
        to the lower posting id.
        """
        scored = [(self.score(profile, posting), posting) for posting in postings]
        scored.sort(key=lambda pair: _rank_key(*pair))
        logger.debug("Ranked %d postings for profile %s", len(scored), profile.id)
        return [result for result, _ in scored]


def _rank_key(result: MatchResult, posting: Posting) -> tuple[float, float, str]:
    created = posting.created_at.timestamp() if posting.created_at else float("-inf")
    return (-result.total_score, -created, posting.id)
