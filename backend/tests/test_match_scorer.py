"""Tests for multi-factor match scoring."""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from models.match import MatchWeights
from models.posting import ExperienceRange, Importance, Posting, SkillRequirement
from models.profile import DegreeLevel, EducationEntry, ExperienceEntry, Location, Profile, Skill
from services.match_scorer import (
    MatchScorer,
    SalaryComparator,
    education_factor,
    experience_factor,
    location_factor,
    skills_factor,
)


def _profile(skills=("python",), **fields) -> Profile:
    return Profile(id="profile-1", skills=[Skill(name=s) for s in skills], **fields)


def _posting(posting_id="job-1", skills=(), **fields) -> Posting:
    return Posting(
        id=posting_id,
        skills=tuple(SkillRequirement(name=n, importance=i) for n, i in skills),
        **fields,
    )


# --- Skills ---


def test_skills_factor_worked_example():
    posting = _posting(skills=[("python", Importance.required), ("docker", Importance.preferred)])
    assert skills_factor(_profile(["python"]), posting) == pytest.approx(1.0 / 1.7)
    assert round(skills_factor(_profile(["python"]), posting), 3) == 0.588


def test_skills_factor_is_case_insensitive():
    posting = _posting(skills=[("Python", Importance.required)])
    assert skills_factor(_profile(["PYTHON"]), posting) == 1.0


def test_skills_factor_no_requirements_is_neutral():
    assert skills_factor(_profile(), _posting()) == 0.5


def test_skills_factor_keyword_bonus_capped():
    posting = _posting(
        skills=[("python", Importance.required), ("go", Importance.nice_to_have)],
        keywords=("docker", "aws", "redis", "kafka", "git", "python"),
    )
    profile = _profile(["python", "docker", "aws"])
    # base 1.0/1.3, plus two extra keywords ("python" is already a requirement)
    assert skills_factor(profile, posting) == pytest.approx(1.0 / 1.3 + 0.1)

    everything = _profile(["python", "docker", "aws", "redis", "kafka", "git"])
    assert skills_factor(everything, posting) == pytest.approx(min(1.0, 1.0 / 1.3 + 0.2))


def test_skills_factor_never_exceeds_one():
    posting = _posting(skills=[("python", Importance.required)], keywords=("docker",))
    assert skills_factor(_profile(["python", "docker"]), posting) == 1.0


# --- Experience ---


@pytest.mark.parametrize("years, expected", [
    (3.0, 1.0),
    (2.0, 1.0),
    (1.0, 0.8),
    (0.0, 0.6),
    (8.0, 0.7),
    (6.0, 0.9),
])
def test_experience_factor_with_range(years, expected):
    posting = _posting(experience_range=ExperienceRange(min_years=2, max_years=5))
    assert experience_factor(years, posting) == pytest.approx(expected)


def test_experience_factor_floor_and_open_max():
    posting = _posting(experience_range=ExperienceRange(min_years=10))
    assert experience_factor(0.0, posting) == pytest.approx(0.1)
    assert experience_factor(25.0, posting) == 1.0


def test_experience_factor_without_range():
    assert experience_factor(4.0, _posting()) == 0.8
    assert experience_factor(4.0, _posting(experience_range=ExperienceRange())) == 0.8


# --- Location ---


def test_location_factor_levels():
    here = Location(city="Austin", state="TX", country="US")
    assert location_factor(here, _posting(location=Location(is_remote=True))) == 1.0
    assert location_factor(None, _posting(location=Location(city="Austin"))) == 0.5
    assert location_factor(here, _posting(location=Location(city="austin", state="TX"))) == 1.0
    assert location_factor(here, _posting(location=Location(city="Dallas", state="TX"))) == 0.8
    assert location_factor(here, _posting(location=Location(city="Boston", country="US"))) == 0.6
    assert location_factor(here, _posting(location=Location(city="Berlin", country="DE"))) == 0.2


def test_unlocated_posting_scores_as_no_match():
    here = Location(city="Austin", state="TX", country="US")
    assert location_factor(here, _posting(location=Location())) == 0.2
    assert location_factor(None, _posting(location=Location())) == 0.5


# --- Education ---


def test_education_factor():
    master = _profile(education=[
        EducationEntry(degree_level=DegreeLevel.bachelor),
        EducationEntry(degree_level=DegreeLevel.master),
    ])
    high_school = _profile(education=[EducationEntry(degree_level=DegreeLevel.high_school)])

    assert education_factor(master, _posting(minimum_degree_level=DegreeLevel.bachelor)) == 1.0
    assert education_factor(master, _posting(minimum_degree_level=DegreeLevel.doctorate)) == pytest.approx(0.7)
    assert education_factor(high_school, _posting(minimum_degree_level=DegreeLevel.doctorate)) == pytest.approx(0.2)
    assert education_factor(master, _posting()) == 0.7
    assert education_factor(_profile(), _posting(minimum_degree_level=DegreeLevel.bachelor)) == 0.7


# --- Combination ---


def test_score_combines_weighted_factors():
    profile = _profile(
        ["python"],
        experience=[ExperienceEntry(start=date(2018, 1, 1), end=date(2021, 1, 1))],
        education=[EducationEntry(degree_level=DegreeLevel.master)],
    )
    posting = _posting(
        skills=[("python", Importance.required), ("docker", Importance.preferred)],
        experience_range=ExperienceRange(min_years=2, max_years=5),
        minimum_degree_level=DegreeLevel.bachelor,
        location=Location(is_remote=True),
    )
    result = MatchScorer().score(profile, posting)
    assert result.breakdown.skills == pytest.approx(0.5882)
    assert result.breakdown.experience == 1.0
    assert result.breakdown.location == 1.0
    assert result.breakdown.salary == 0.5
    assert result.breakdown.education == 1.0
    assert result.total_score == pytest.approx(0.4 * 0.5882 + 0.25 + 0.15 + 0.05 + 0.1, abs=1e-4)
    assert 0.0 <= result.total_score <= 1.0


def test_scoring_is_deterministic():
    profile = _profile(["python", "sql"], location=Location(city="Austin"))
    postings = [
        _posting(f"job-{i}", skills=[("python", Importance.required), ("sql", Importance.preferred)],
                 location=Location(city="Austin" if i % 2 else "Dallas"))
        for i in range(5)
    ]
    scorer = MatchScorer()
    assert scorer.rank(profile, postings) == scorer.rank(profile, postings)
    assert MatchScorer().score(profile, postings[0]) == scorer.score(profile, postings[0])


def test_weights_must_sum_to_one():
    with pytest.raises(ValidationError):
        MatchWeights(skills=0.5, experience=0.5, location=0.5, salary=0.0, education=0.0)
    with pytest.raises(ValidationError):
        MatchWeights(skills=1.2, experience=-0.2, location=0.0, salary=0.0, education=0.0)
    assert sum(MatchWeights().as_tuple()) == pytest.approx(1.0)


def test_custom_weights_change_total():
    profile = _profile(["python"])
    posting = _posting(skills=[("python", Importance.required)])
    skills_only = MatchWeights(skills=1.0, experience=0.0, location=0.0, salary=0.0, education=0.0)
    assert MatchScorer(weights=skills_only).score(profile, posting).total_score == 1.0


def test_salary_comparator_extension_point():
    class Fixed(SalaryComparator):
        def compare(self, profile, posting):
            return 1.0

    profile = _profile()
    posting = _posting()
    default = MatchScorer().score(profile, posting)
    custom = MatchScorer(salary_comparator=Fixed()).score(profile, posting)
    assert custom.breakdown.salary == 1.0
    assert custom.total_score == pytest.approx(default.total_score + 0.1 * 0.5, abs=1e-4)


def test_rank_orders_by_score_then_recency_then_id():
    profile = _profile(["python"])
    strong = _posting("z-strong", skills=[("python", Importance.required)])
    older = _posting("b-older", created_at=datetime(2023, 1, 1, tzinfo=timezone.utc))
    newer = _posting("c-newer", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    undated_b = _posting("b-undated")
    undated_a = _posting("a-undated")

    ranked = MatchScorer().rank(profile, [undated_b, older, newer, undated_a, strong])
    assert [r.posting_id for r in ranked] == [
        "z-strong", "c-newer", "b-older", "a-undated", "b-undated",
    ]
