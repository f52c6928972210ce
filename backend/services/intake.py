"""Document text -> populated, scored profile.

    text
      ├─ segment_sections        → {section: [lines]}
      ├─ section_blocks          → same, plus long keyword lines (education, experience)
      ├─ extract_contact(text)
      ├─ skill_extractor(text)   → skills from the whole document
      ├─ extract_job_titles(text), extract_industries(text)
      ├─ extract_* per section   → experience, education, projects, ...
      └─ apply_scores            → quality score + suggestions
"""

import logging
from datetime import datetime
from uuid import uuid4

from models.profile import Location, Profile
from services.entity_extractor import (
    extract_certifications,
    extract_contact,
    extract_education,
    extract_experience,
    extract_industries,
    extract_job_titles,
    extract_languages,
    extract_projects,
    extract_summary,
)
from services.profile_scorer import DEFAULT_HIGH_CONFIDENCE, apply_scores
from services.section_parser import (
    DEFAULT_HEADER_MAX_WORDS,
    detected_sections,
    section_blocks,
    segment_sections,
)
from services.skill_extractor import DictionarySkillExtractor, SkillExtractor

logger = logging.getLogger(__name__)


def build_profile(
    text: str,
    profile_id: str | None = None,
    subject_id: str = "",
    location: Location | None = None,
    skill_extractor: SkillExtractor | None = None,
    header_max_words: int = DEFAULT_HEADER_MAX_WORDS,
    high_confidence_threshold: float = DEFAULT_HIGH_CONFIDENCE,
    now: datetime | None = None,
) -> Profile:
    extractor = skill_extractor or DictionarySkillExtractor()
    lines = text.split("\n")
    sections = segment_sections(lines)
    blocks = section_blocks(lines, header_max_words=header_max_words)
    found = detected_sections(blocks)
    if not found:
        logger.debug("No section headers recognized; only contact and skills extracted")

    profile = Profile(
        id=profile_id or uuid4().hex,
        subject_id=subject_id,
        raw_text=text,
        contact=extract_contact(text),
        location=location,
        skills=extractor.extract(text),
        experience=extract_experience(blocks["experience"]),
        education=extract_education(blocks["education"]),
        projects=extract_projects(sections["projects"]),
        certifications=extract_certifications(sections["certifications"]),
        languages=extract_languages(sections["languages"]),
        job_titles=extract_job_titles(text),
        industries=extract_industries(text),
        summary_text=extract_summary(sections["summary"]),
    )
    profile = apply_scores(profile, high_confidence_threshold, now=now)
    logger.info(
        "Built profile %s: sections=%s skills=%d experience=%d education=%d overall=%d",
        profile.id, ",".join(found) or "-", len(profile.skills), len(profile.experience),
        len(profile.education), profile.quality_score.overall,
    )
    return profile
