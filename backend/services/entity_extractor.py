"""Pattern-based entity extraction over segmented document text.

Every function here is tolerant of missing data: a field that cannot be
parsed comes back empty (``None``, ``""`` or ``[]``) and is logged at
debug level. Nothing in this module raises on odd input.
"""

import logging
import re
from datetime import date

from models.profile import (
    Certification,
    ContactInfo,
    DegreeLevel,
    EducationEntry,
    ExperienceEntry,
    IndustryMatch,
    JobTitle,
    LanguageEntry,
    ProjectEntry,
)
from services.skill_extractor import SKILL_CATEGORIES

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Contact info
# ---------------------------------------------------------------------------

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
PHONE_RE = re.compile(r"(?:\+\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
LINKEDIN_RE = re.compile(r"(?:https?://)?(?:www\.)?linkedin\.com/in/[\w-]+/?", re.IGNORECASE)
GITHUB_RE = re.compile(r"(?:https?://)?(?:www\.)?github\.com/[\w-]+/?", re.IGNORECASE)

_MAX_NAME_LENGTH = 60


def extract_contact(text: str) -> ContactInfo:
    """Extract contact details; the first match of each kind wins."""
    email_match = EMAIL_RE.search(text)
    phone_match = PHONE_RE.search(text)
    linkedin_match = LINKEDIN_RE.search(text)
    github_match = GITHUB_RE.search(text)

    full_name = None
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        # Name is usually the first line of the document
        if "@" not in stripped and "http" not in stripped and len(stripped) <= _MAX_NAME_LENGTH:
            full_name = stripped
        break

    contact = ContactInfo(
        full_name=full_name,
        email=email_match.group() if email_match else None,
        phone=phone_match.group().strip() if phone_match else None,
        linkedin=linkedin_match.group() if linkedin_match else None,
        github=github_match.group() if github_match else None,
    )
    missing = [k for k, v in contact.model_dump().items() if v is None]
    if missing:
        logger.debug("Contact fields not found: %s", ", ".join(missing))
    return contact


# ---------------------------------------------------------------------------
# Shared line helpers
# ---------------------------------------------------------------------------

BULLET_MARKERS = frozenset("•-–—►▪✓*○◆⚫→▸▹◇■□●")

# Splits "Senior Engineer | Acme Inc. | Austin" style lines into parts
_SEGMENT_SPLIT_RE = re.compile(r"\s*[|•·;]\s*|,\s+|\s+[-–—]\s+|\s+at\s+|\s+@\s+")
_SUFFIX_ONLY_RE = re.compile(r"^(?:Inc|LLC|Corp|Co|Ltd|GmbH|PLC|LLP)\.?$")

_MONTHS = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|Jun(?:e)?|"
    r"Jul(?:y)?|Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)
DATE_RANGE_RE = re.compile(
    rf"({_MONTHS}\.?\s*\d{{4}}|\b\d{{4}})"
    r"\s*(?:-|–|—|to)\s*"
    rf"({_MONTHS}\.?\s*\d{{4}}|\d{{4}}\b|[Pp]resent|[Cc]urrent|[Nn]ow)",
    re.IGNORECASE,
)
YEAR_RE = re.compile(r"\b(19\d{2}|20\d{2})\b")

_MONTH_MAP = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6,
    "jul": 7, "july": 7, "aug": 8, "august": 8, "sep": 9, "sept": 9,
    "september": 9, "oct": 10, "october": 10, "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

_ONGOING = ("present", "current", "now")


def is_bullet(line: str) -> bool:
    stripped = line.strip()
    return bool(stripped) and stripped[0] in BULLET_MARKERS


def strip_bullet(line: str) -> str:
    return line.strip().lstrip("".join(BULLET_MARKERS) + " ").strip()


def split_segments(line: str) -> list[str]:
    segments: list[str] = []
    for part in _SEGMENT_SPLIT_RE.split(line):
        part = part.strip(" ,;") if part else ""
        if not part:
            continue
        # "Acme, Inc." splits on the comma; glue the suffix back on
        if segments and _SUFFIX_ONLY_RE.match(part):
            segments[-1] = f"{segments[-1]}, {part}"
            continue
        segments.append(part)
    return segments


def parse_date(date_str: str) -> date | None:
    """Parse "Mar 2019", "March 2019" or "2019" into a date (1st of month)."""
    date_str = date_str.strip().rstrip(".")
    parts = date_str.split()
    if len(parts) == 2:
        month = _MONTH_MAP.get(parts[0].lower().rstrip("."))
        if month and parts[1].isdigit() and 1900 <= int(parts[1]) <= 2100:
            return date(int(parts[1]), month, 1)
    compact = re.match(rf"^({_MONTHS})\.?(\d{{4}})$", date_str, re.IGNORECASE)
    if compact and 1900 <= int(compact.group(2)) <= 2100:
        return date(int(compact.group(2)), _MONTH_MAP[compact.group(1).lower().rstrip(".")], 1)
    if date_str.isdigit() and 1950 <= int(date_str) <= 2100:
        return date(int(date_str), 1, 1)
    return None


def find_date_range(line: str) -> tuple[date | None, date | None, bool, str] | None:
    """Find a date range in a line.

    Returns (start, end, is_current, line_without_range) or None. An
    ongoing range ("2020 - Present") has ``end=None`` and ``is_current=True``.
    """
    match = DATE_RANGE_RE.search(line)
    if not match:
        return None
    start = parse_date(match.group(1))
    end_raw = match.group(2)
    is_current = end_raw.lower() in _ONGOING
    end = None if is_current else parse_date(end_raw)
    remainder = (line[:match.start()] + " " + line[match.end():]).strip(" |,;-–—()")
    return start, end, is_current, remainder


# ---------------------------------------------------------------------------
# Education
# ---------------------------------------------------------------------------

_NB = r"(?<![A-Za-z])"  # no letter before
_NA = r"(?![A-Za-z])"  # no letter after

DEGREE_PATTERNS: dict[DegreeLevel, list[str]] = {
    DegreeLevel.doctorate: [
        r"ph\.?\s?d\.?", r"doctorate", r"doctoral", r"doctor\s+of",
    ],
    DegreeLevel.master: [
        r"master(?:'?s)?", r"m\.s\.?", r"m\.sc\.?", r"msc", r"m\.e\.", r"m\.tech",
        r"mtech", r"mba", r"m\.a\.", r"m\.eng\.?",
    ],
    DegreeLevel.bachelor: [
        r"bachelor(?:'?s)?", r"b\.s\.?", r"b\.sc\.?", r"bsc", r"b\.e\.", r"b\.tech",
        r"btech", r"b\.a\.", r"b\.eng\.?",
    ],
    DegreeLevel.associate: [
        r"associate(?:'?s)?\s+(?:degree|of)", r"a\.s\.", r"a\.a\.",
    ],
    DegreeLevel.high_school: [
        r"high\s+school", r"secondary\s+school", r"ged",
    ],
}

# Bare upper-case abbreviations ("BS Computer Science") are matched
# case-sensitively so words like "as" or "me" do not count.
_UPPER_ABBREVIATIONS: dict[DegreeLevel, str] = {
    DegreeLevel.master: r"\b(?:MS|MSc|MBA)\b",
    DegreeLevel.bachelor: r"\b(?:BS|BA|BSc|BE)\b",
    DegreeLevel.associate: r"\b(?:AS|AA)\b",
}

_DEGREE_COMPILED: dict[DegreeLevel, re.Pattern] = {
    level: re.compile(rf"{_NB}(?:{'|'.join(patterns)}){_NA}", re.IGNORECASE)
    for level, patterns in DEGREE_PATTERNS.items()
}
_UPPER_COMPILED: dict[DegreeLevel, re.Pattern] = {
    level: re.compile(pattern) for level, pattern in _UPPER_ABBREVIATIONS.items()
}

# Highest first
DEGREE_PRIORITY: tuple[DegreeLevel, ...] = (
    DegreeLevel.doctorate,
    DegreeLevel.master,
    DegreeLevel.bachelor,
    DegreeLevel.associate,
    DegreeLevel.high_school,
)

INSTITUTION_RE = re.compile(r"\b(?:University|College|Institute|School|Academy|Polytechnic)\b")
_FIELD_RE = re.compile(r"\b(?:in|of)\s+([A-Za-z][A-Za-z&/ ]+)$", re.IGNORECASE)


def classify_degree(text: str) -> DegreeLevel | None:
    """Map degree text to a level, highest level first."""
    for level in DEGREE_PRIORITY:
        if _DEGREE_COMPILED[level].search(text):
            return level
        upper = _UPPER_COMPILED.get(level)
        if upper is not None and upper.search(text):
            return level
    return None


def _degree_match(text: str, level: DegreeLevel) -> re.Match | None:
    match = _DEGREE_COMPILED[level].search(text)
    if match is None and level in _UPPER_COMPILED:
        match = _UPPER_COMPILED[level].search(text)
    return match


def _extract_field(segment: str, level: DegreeLevel) -> str:
    found = _FIELD_RE.search(segment)
    if found:
        # "Bachelor of Science in Computer Science" -> "Computer Science"
        tail = found.group(1)
        if " in " in f" {tail.lower()} ":
            tail = re.split(r"\bin\b", tail, flags=re.IGNORECASE)[-1]
        return tail.strip(" .,")
    match = _degree_match(segment, level)
    if match:
        return segment[match.end():].strip(" .,:")
    return ""


def extract_education(lines: list[str]) -> list[EducationEntry]:
    """Group education lines into records.

    A degree line opens a record (closing the prior one if it already has
    a degree); institution lines and a year pair attach to the open record.
    """
    entries: list[EducationEntry] = []
    current: EducationEntry | None = None

    def close() -> None:
        nonlocal current
        if current is not None and (current.degree or current.institution):
            entries.append(current)
        current = None

    for line in lines:
        stripped = strip_bullet(line) if is_bullet(line) else line.strip()
        if not stripped:
            continue

        level = classify_degree(stripped)
        segments = split_segments(stripped)
        years = [int(y) for y in YEAR_RE.findall(stripped)]

        if level is not None:
            if current is not None and current.degree:
                close()
            if current is None:
                current = EducationEntry()
            degree_segment = next(
                (s for s in segments if _degree_match(s, level)), stripped
            )
            current.degree = degree_segment
            current.degree_level = level
            current.field = _extract_field(degree_segment, level)

        institution = next(
            (s for s in segments if INSTITUTION_RE.search(s) and classify_degree(s) is None),
            None,
        )
        if institution:
            if current is None:
                current = EducationEntry()
            if not current.institution:
                current.institution = institution

        if years and current is not None:
            if len(years) >= 2:
                current.start_year, current.end_year = years[0], years[1]
            elif current.end_year is None:
                current.end_year = years[0]

    close()
    if not entries and lines:
        logger.debug("No education records recognized in %d lines", len(lines))
    return entries


# ---------------------------------------------------------------------------
# Experience
# ---------------------------------------------------------------------------

EMPLOYER_RE = re.compile(
    r"\b(?:Inc\.?|LLC|L\.L\.C\.?|Corp\.?|Corporation|Company|Co\.|Ltd\.?|Limited|GmbH|PLC|LLP)(?![A-Za-z])"
)
# Longer lines mentioning a role word are prose, not a job title
MAX_TITLE_WORDS = 6
ROLE_RE = re.compile(
    r"\b(?:developer|engineer|manager|analyst|designer|consultant|architect|"
    r"scientist|intern|director|administrator|specialist|programmer|lead)s?\b",
    re.IGNORECASE,
)


def _has_content(entry: ExperienceEntry) -> bool:
    return bool(entry.employer or entry.title or entry.start or entry.is_current)


def extract_experience(lines: list[str]) -> list[ExperienceEntry]:
    """Group experience lines into records keyed on employer and role lines.

    A line may carry a title, an employer and a date range at once
    ("Senior Engineer | Acme Inc. | 2019 - 2021"). A new employer closes
    the open record when it already has one; likewise for titles and
    date ranges. Bullets and other lines become the description.
    """
    entries: list[ExperienceEntry] = []
    current = ExperienceEntry()
    description: list[str] = []

    def close() -> None:
        nonlocal current, description
        current.description = " ".join(description)
        if _has_content(current):
            entries.append(current)
        elif description:
            logger.debug("Dropped experience text without employer, title or dates")
        current = ExperienceEntry()
        description = []

    for line in lines:
        if not line.strip():
            continue
        if is_bullet(line):
            text = strip_bullet(line)
            if text:
                description.append(text)
            continue

        stripped = line.strip()
        dates = find_date_range(stripped)
        remainder = dates[3] if dates else stripped
        segments = split_segments(remainder)

        employer = next((s for s in segments if EMPLOYER_RE.search(s)), None)
        title = next(
            (
                s for s in segments
                if s != employer and ROLE_RE.search(s) and len(s.split()) <= MAX_TITLE_WORDS
            ),
            None,
        )

        if employer and title:
            if current.employer or current.title:
                close()
            current.employer, current.title = employer, title
        elif employer:
            if current.employer:
                close()
            current.employer = employer
        elif title:
            if current.title:
                close()
            current.title = title

        if dates:
            start, end, is_current, _ = dates
            if current.start is not None or current.is_current:
                close()
            current.start, current.end, current.is_current = start, end, is_current
        elif not employer and not title:
            description.append(stripped)

    close()
    if not entries and lines:
        logger.debug("No experience records recognized in %d lines", len(lines))
    return entries


# ---------------------------------------------------------------------------
# Summary, projects, certifications, languages
# ---------------------------------------------------------------------------

SUMMARY_MAX_CHARS = 500


def extract_summary(lines: list[str]) -> str:
    text = " ".join(line.strip() for line in lines if line.strip())
    if len(text) > SUMMARY_MAX_CHARS:
        return text[:SUMMARY_MAX_CHARS] + "..."
    return text


def extract_projects(lines: list[str]) -> list[ProjectEntry]:
    """Plain lines name a project; bullet lines describe the current one."""
    projects: list[ProjectEntry] = []
    for line in lines:
        if not line.strip():
            continue
        if is_bullet(line):
            text = strip_bullet(line)
            if projects and text:
                current = projects[-1]
                current.description = f"{current.description} {text}".strip()
            continue
        projects.append(ProjectEntry(name=line.strip()))
    return projects


_ISSUER_SPLIT_RE = re.compile(r"\s+[-–—]\s+|\s*\|\s*|,\s+")


def extract_certifications(lines: list[str]) -> list[Certification]:
    certifications: list[Certification] = []
    for line in lines:
        if not line.strip() or is_bullet(line):
            continue
        text = YEAR_RE.sub("", line).strip(" ,|-–—()")
        parts = [p.strip() for p in _ISSUER_SPLIT_RE.split(text) if p.strip()]
        if not parts:
            continue
        certifications.append(Certification(
            name=parts[0],
            issuing_organization=parts[1] if len(parts) > 1 else "",
        ))
    return certifications


SPOKEN_LANGUAGES: frozenset[str] = SKILL_CATEGORIES["language"]
PROFICIENCY_LEVELS = (
    "native", "bilingual", "fluent", "professional", "advanced",
    "intermediate", "conversational", "basic", "elementary",
)
_WORD_RE = re.compile(r"[a-z]+")
_LANGUAGE_SPLIT_RE = re.compile(r"[,;|•]")


def extract_languages(lines: list[str]) -> list[LanguageEntry]:
    languages: list[LanguageEntry] = []
    seen: set[str] = set()
    for line in lines:
        for part in _LANGUAGE_SPLIT_RE.split(line.lower()):
            words = _WORD_RE.findall(part)
            proficiency = next((p for p in PROFICIENCY_LEVELS if p in words), "conversational")
            for word in words:
                if word in SPOKEN_LANGUAGES and word not in seen:
                    seen.add(word)
                    languages.append(LanguageEntry(name=word, proficiency=proficiency))
    return languages


# ---------------------------------------------------------------------------
# Job titles and industries
# ---------------------------------------------------------------------------

JOB_TITLE_TERMS: frozenset[str] = frozenset({
    "software engineer", "developer", "programmer", "full stack", "frontend",
    "backend", "devops", "data scientist", "analyst", "manager", "director",
    "lead", "architect", "consultant", "designer", "ui/ux", "product manager",
    "project manager", "qa engineer", "test engineer", "system administrator",
    "network engineer", "security engineer", "cloud engineer",
})
JOB_TITLE_CONFIDENCE = 0.8
MAX_JOB_TITLES = 5

INDUSTRY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "technology": ("software", "tech", "it", "development"),
    "finance": ("banking", "finance", "investment", "accounting"),
    "healthcare": ("medical", "health", "pharmaceutical", "hospital"),
    "education": ("education", "teaching", "academic", "university"),
}
MAX_INDUSTRIES = 3

_TERM_TOKEN_RE = re.compile(r"[a-z0-9][a-z0-9/+#]*")


def extract_job_titles(text: str) -> list[JobTitle]:
    """Role terms mentioned anywhere in the text, in order of first mention.

    Two-word terms win over a single word at the same position, so
    "product manager" is not also reported as "manager".
    """
    tokens = _TERM_TOKEN_RE.findall(text.lower())
    titles: list[JobTitle] = []
    seen: set[str] = set()
    i = 0
    while i < len(tokens) and len(titles) < MAX_JOB_TITLES:
        for size in (2, 1):
            term = " ".join(tokens[i:i + size])
            if len(tokens) - i >= size and term in JOB_TITLE_TERMS:
                if term not in seen:
                    seen.add(term)
                    titles.append(JobTitle(title=term, confidence=JOB_TITLE_CONFIDENCE))
                i += size
                break
        else:
            i += 1
    return titles


def extract_industries(text: str) -> list[IndustryMatch]:
    """Industries whose keywords appear; confidence is the share of keywords seen."""
    words = set(_TERM_TOKEN_RE.findall(text.lower()))
    matches = []
    for industry, keywords in INDUSTRY_KEYWORDS.items():
        hits = sum(1 for keyword in keywords if keyword in words)
        if hits:
            matches.append(IndustryMatch(industry=industry, confidence=hits / len(keywords)))
    matches.sort(key=lambda m: m.confidence, reverse=True)
    return matches[:MAX_INDUSTRIES]
