"""Match queries over the posting catalog, with result caching.

    get_matches(profile_id, filters)
      ├─ cache hit                  → cached recommendation set
      └─ miss → generate_matches
            ├─ filter_postings      → candidate postings
            ├─ MatchScorer.rank     → ordered MatchResults
            └─ cache top-N          → RecommendationCacheEntry (TTL)

    similar_postings(posting_id)   → catalog ranked by posting_similarity
"""

import logging
import re
from collections.abc import Callable
from datetime import datetime, timedelta

import numpy as np

from models.match import (
    MatchFilters,
    MatchItem,
    MatchQueryResponse,
    RecommendationCacheEntry,
    SimilarPosting,
)
from models.posting import Posting
from models.responses import MarketInsights
from services.errors import PostingNotFound
from services.match_scorer import MatchScorer
from services.repository import PostingRepository, ProfileRepository
from services.result_cache import ResultCache, insights_key, recommendations_key, utc_now

logger = logging.getLogger(__name__)


def _location_text(posting: Posting) -> str:
    loc = posting.location
    parts = [p for p in (loc.city, loc.state, loc.country) if p]
    if loc.is_remote:
        parts.append("remote")
    return ", ".join(parts).lower()


def _same_label(a: str | None, b: str) -> bool:
    return (a or "").strip().lower() == b.strip().lower()


def filter_postings(postings: list[Posting], filters: MatchFilters) -> list[Posting]:
    """Apply the caller's filters. Postings lacking a filtered field are excluded."""
    result = []
    for posting in postings:
        if filters.location and filters.location.strip().lower() not in _location_text(posting):
            continue
        if filters.remote_only and not posting.location.is_remote:
            continue
        salary = posting.salary_range
        if filters.min_salary is not None:
            if salary is None or salary.max is None or salary.max < filters.min_salary:
                continue
        if filters.max_salary is not None:
            if salary is None or salary.min is None or salary.min > filters.max_salary:
                continue
        if filters.employment_type and not _same_label(posting.employment_type, filters.employment_type):
            continue
        if filters.seniority_level and not _same_label(posting.seniority_level, filters.seniority_level):
            continue
        result.append(posting)
    return result


def _mentions(posting: Posting, skill: str) -> bool:
    names = {s.name.lower() for s in posting.skills} | {k.lower() for k in posting.keywords}
    return skill in names


# Posting-to-posting similarity: title, required skills, company, location
SIMILARITY_WEIGHTS = (0.3, 0.4, 0.2, 0.1)

_WORD_RE = re.compile(r"[a-z0-9+#]+")


def jaccard(a: set[str], b: set[str]) -> float:
    """Intersection over union; 0.0 when either side is empty."""
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def _words(text: str) -> set[str]:
    return set(_WORD_RE.findall(text.lower()))


def posting_similarity(a: Posting, b: Posting) -> float:
    factors = (
        jaccard(_words(a.title), _words(b.title)),
        jaccard({s.name.lower() for s in a.skills}, {s.name.lower() for s in b.skills}),
        jaccard(_words(a.company), _words(b.company)),
        jaccard(_words(_location_text(a)), _words(_location_text(b))),
    )
    return sum(w * f for w, f in zip(SIMILARITY_WEIGHTS, factors))


class MatchService:
    def __init__(
        self,
        profiles: ProfileRepository,
        postings: PostingRepository,
        scorer: MatchScorer,
        cache: ResultCache,
        posting_set_id: str = "catalog",
        default_limit: int = 20,
        ttl_seconds: int = 3600,
        insights_ttl_seconds: int = 7200,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.profiles = profiles
        self.postings = postings
        self.scorer = scorer
        self.cache = cache
        self.posting_set_id = posting_set_id
        self.default_limit = default_limit
        self.ttl_seconds = ttl_seconds
        self.insights_ttl_seconds = insights_ttl_seconds
        self.clock = clock

    def cache_key(self, profile_id: str, filters: MatchFilters) -> str:
        return recommendations_key(profile_id, self.posting_set_id, filters)

    def get_cached_matches(
        self, profile_id: str, filters: MatchFilters | None = None
    ) -> MatchQueryResponse | None:
        filters = filters or MatchFilters()
        cached = self.cache.get(self.cache_key(profile_id, filters))
        if cached is None:
            return None
        entry = RecommendationCacheEntry.model_validate(cached)
        return MatchQueryResponse(matches=entry.recommendations, total_considered=entry.total_considered)

    def generate_matches(
        self, profile_id: str, filters: MatchFilters | None = None
    ) -> MatchQueryResponse:
        """Score the filtered catalog for a profile and cache the top results.

        Raises ProfileNotFound for unknown profiles.
        """
        filters = filters or MatchFilters()
        profile = self.profiles.get(profile_id)
        candidates = filter_postings(self.postings.list(), filters)
        ranked = self.scorer.rank(profile, candidates)
        limit = filters.limit if filters.limit is not None else self.default_limit

        response = MatchQueryResponse(
            matches=[
                MatchItem(posting_id=r.posting_id, total_score=r.total_score, breakdown=r.breakdown)
                for r in ranked[:limit]
            ],
            total_considered=len(candidates),
        )
        now = self.clock()
        entry = RecommendationCacheEntry(
            recommendations=response.matches,
            total_considered=response.total_considered,
            generated_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )
        self.cache.put(self.cache_key(profile_id, filters), entry.model_dump(mode="json"), self.ttl_seconds)
        logger.info(
            "Generated %d matches for profile %s (%d considered)",
            len(response.matches), profile_id, len(candidates),
        )
        return response

    def get_matches(self, profile_id: str, filters: MatchFilters | None = None) -> MatchQueryResponse:
        filters = filters or MatchFilters()
        cached = self.get_cached_matches(profile_id, filters)
        if cached is not None:
            logger.debug("Recommendation cache hit for profile %s", profile_id)
            return cached
        return self.generate_matches(profile_id, filters)

    def similar_postings(self, posting_id: str, limit: int = 5) -> list[SimilarPosting]:
        """Other catalog postings most like ``posting_id``, best first.

        Raises PostingNotFound for unknown postings.
        """
        target = self.postings.get(posting_id)
        if target is None:
            raise PostingNotFound(posting_id)
        scored = [
            SimilarPosting(posting_id=p.id, similarity=round(posting_similarity(target, p) * 100))
            for p in self.postings.list()
            if p.id != posting_id
        ]
        scored.sort(key=lambda s: (-s.similarity, s.posting_id))
        return scored[:limit]

    def market_insights(self, skills: list[str], location: str | None = None) -> MarketInsights:
        """Demand summary for ``skills`` over the catalog, cached per skill set and location."""
        key = insights_key(skills, location)
        cached = self.cache.get(key)
        if cached is not None:
            return MarketInsights.model_validate(cached)

        wanted = [s.strip().lower() for s in skills if s.strip()]
        postings = self.postings.list()
        if location:
            postings = [p for p in postings if location.strip().lower() in _location_text(p)]
        relevant = [p for p in postings if any(_mentions(p, s) for s in wanted)]

        mins = [p.salary_range.min for p in relevant if p.salary_range and p.salary_range.min is not None]
        maxes = [p.salary_range.max for p in relevant if p.salary_range and p.salary_range.max is not None]
        remote = sum(1 for p in relevant if p.location.is_remote)

        insights = MarketInsights(
            skills=wanted,
            location=location,
            total_jobs=len(relevant),
            remote_share=round(remote / len(relevant), 4) if relevant else 0.0,
            average_salary_min=round(float(np.mean(mins)), 2) if mins else None,
            average_salary_max=round(float(np.mean(maxes)), 2) if maxes else None,
            skill_demand={s: sum(1 for p in relevant if _mentions(p, s)) for s in wanted},
        )
        self.cache.put(key, insights.model_dump(mode="json"), self.insights_ttl_seconds)
        logger.info("Market analysis completed for %d jobs", insights.total_jobs)
        return insights
