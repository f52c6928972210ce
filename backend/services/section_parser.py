"""Document section segmentation.

Walks the lines of an extracted document with a "current section" cursor.
A line containing any keyword of a section moves the cursor there; other
lines are attributed to whichever section is active. Lines seen before the
first recognized header are dropped.
"""

import logging

logger = logging.getLogger(__name__)

# Priority order matters: when a line matches keywords of several
# sections, the first one listed here wins.
SECTION_KEYWORDS: dict[str, tuple[str, ...]] = {
    "summary": ("summary", "objective", "profile", "about"),
    "education": ("education", "academic", "degree", "university", "college"),
    "experience": ("experience", "work", "employment", "career"),
    "projects": ("projects", "portfolio", "achievements"),
    "certifications": ("certifications", "certificates", "credentials"),
    "languages": ("languages", "language skills"),
}

SECTION_NAMES: tuple[str, ...] = tuple(SECTION_KEYWORDS)

# Keyword lines up to this many words are treated as pure headers
DEFAULT_HEADER_MAX_WORDS = 4


def match_section(line: str) -> str | None:
    """Return the highest-priority section whose keyword appears in ``line``."""
    lower = line.lower()
    for section, keywords in SECTION_KEYWORDS.items():
        if any(keyword in lower for keyword in keywords):
            return section
    return None


def _segment(
    lines: list[str], header_max_words: int | None
) -> dict[str, list[str]]:
    sections: dict[str, list[str]] = {name: [] for name in SECTION_NAMES}
    current: str | None = None
    discarded = 0

    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue

        matched = match_section(stripped)
        if matched is not None:
            current = matched
            if header_max_words is None or len(stripped.split()) <= header_max_words:
                continue

        if current is None:
            discarded += 1
            continue
        sections[current].append(stripped)

    if discarded:
        logger.debug("Dropped %d lines before the first section header", discarded)
    return sections


def segment_sections(lines: list[str]) -> dict[str, list[str]]:
    """Split document lines into labeled sections.

    Every section name is present in the result; unmatched ones map to an
    empty list. Keyword lines only move the cursor and are never content.
    """
    return _segment(lines, None)


def section_blocks(
    lines: list[str], header_max_words: int = DEFAULT_HEADER_MAX_WORDS
) -> dict[str, list[str]]:
    """Like ``segment_sections``, but keyword lines longer than
    ``header_max_words`` words are also kept in the section they open.

    Extractors read these blocks to recover entries such as
    "B.S. Computer Science, State University" that name a section keyword.
    """
    return _segment(lines, header_max_words)


def parse_sections(text: str) -> dict[str, list[str]]:
    """Segment raw text (newline separated) into sections."""
    return segment_sections(text.split("\n"))


def detected_sections(sections: dict[str, list[str]]) -> list[str]:
    """Names of sections that received at least one line, in priority order."""
    return [name for name in SECTION_NAMES if sections.get(name)]
