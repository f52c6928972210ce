"""Dictionary-based skill extraction.

Tokenizes text, compares every token (and 2-3 token phrase, for
multi-word entries like "machine learning") against a skill dictionary,
and attaches a category from a fixed table. Higher-quality extractors
(NER models, taxonomies) plug in by subclassing ``SkillExtractor``.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path

from models.profile import Skill

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.8
_MAX_PHRASE_TOKENS = 3

# Fixed category table; skills not listed fall into "other"
SKILL_CATEGORIES: dict[str, frozenset[str]] = {
    "programming": frozenset({
        "javascript", "typescript", "python", "java", "c++", "c#", "php",
        "ruby", "golang", "rust", "kotlin", "swift", "scala",
        "matlab", "perl", "bash", "shell",
    }),
    "framework": frozenset({
        "react", "angular", "vue", "vue.js", "express", "express.js", "node.js",
        "django", "flask", "fastapi", "spring", "rails", "next.js", "svelte",
    }),
    "database": frozenset({
        "sql", "mongodb", "mysql", "postgresql", "postgres", "redis",
        "elasticsearch", "sqlite", "oracle", "dynamodb", "cassandra",
    }),
    "cloud": frozenset({
        "aws", "azure", "gcp", "docker", "kubernetes", "terraform", "heroku",
    }),
    "tool": frozenset({
        "git", "jenkins", "jira", "confluence", "kafka", "rabbitmq",
        "figma", "sketch", "invision", "zeplin", "photoshop", "illustrator",
        "powerpoint", "tableau", "power bi",
    }),
    "data": frozenset({
        "machine learning", "deep learning", "data science", "statistics",
        "tensorflow", "pytorch", "scikit-learn", "pandas", "numpy",
        "matplotlib", "spark", "nlp", "ai",
    }),
    "language": frozenset({
        "english", "spanish", "french", "german", "chinese", "hindi",
        "arabic", "portuguese", "japanese",
    }),
}

_CATEGORY_BY_SKILL: dict[str, str] = {
    skill: category
    for category, skills in SKILL_CATEGORIES.items()
    for skill in skills
}

# Default dictionary: everything in the category table except spoken
# languages, which are extracted separately.
DEFAULT_SKILLS: frozenset[str] = frozenset(
    skill
    for category, skills in SKILL_CATEGORIES.items()
    if category != "language"
    for skill in skills
)

_TOKEN_RE = re.compile(r"[a-z0-9][a-z0-9+#.\-]*")


def categorize_skill(name: str) -> str:
    return _CATEGORY_BY_SKILL.get(name.lower(), "other")


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens; keeps ``+ # . -`` inside tokens (c++, node.js)."""
    tokens = []
    for raw in _TOKEN_RE.findall(text.lower()):
        token = raw.rstrip(".-")
        if token:
            tokens.append(token)
    return tokens


def _candidates(tokens: list[str]):
    """Yield tokens and the 2..N token phrases starting at each position, in order."""
    for i in range(len(tokens)):
        yield tokens[i]
        for n in range(2, _MAX_PHRASE_TOKENS + 1):
            if i + n <= len(tokens):
                yield " ".join(tokens[i:i + n])


def load_dictionary(path: str | Path) -> frozenset[str]:
    """Load a skill dictionary from a JSON list of names."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"Skill dictionary must be a JSON list: {path}")
    return frozenset(str(s).strip().lower() for s in data if str(s).strip())


class SkillExtractor(ABC):
    """Extension point for skill extraction strategies."""

    name: str = ""

    @abstractmethod
    def extract(self, text: str) -> list[Skill]:
        """Return deduplicated skills found in ``text``, in first-seen order."""


class DictionarySkillExtractor(SkillExtractor):
    name = "dictionary"

    def __init__(
        self,
        dictionary: frozenset[str] | set[str] | None = None,
        confidence: float = DEFAULT_CONFIDENCE,
    ) -> None:
        self.dictionary = frozenset(
            s.lower() for s in (dictionary if dictionary is not None else DEFAULT_SKILLS)
        )
        self.confidence = confidence

    @classmethod
    def from_settings(cls, settings) -> "DictionarySkillExtractor":
        dictionary = None
        if settings.skill_dictionary_path:
            try:
                dictionary = load_dictionary(settings.skill_dictionary_path)
                logger.info(
                    "Loaded %d skills from %s", len(dictionary), settings.skill_dictionary_path
                )
            except (OSError, ValueError) as e:
                logger.warning("Skill dictionary not loaded, using defaults: %s", e)
        return cls(dictionary=dictionary, confidence=settings.skill_confidence)

    def extract(self, text: str) -> list[Skill]:
        found: dict[str, Skill] = {}
        for candidate in _candidates(tokenize(text)):
            if candidate in self.dictionary and candidate not in found:
                found[candidate] = Skill(
                    name=candidate,
                    category=categorize_skill(candidate),
                    confidence=self.confidence,
                )
        if not found:
            logger.debug("No dictionary skills found in %d chars of text", len(text))
        return list(found.values())


def extract_skills(
    text: str,
    dictionary: frozenset[str] | set[str] | None = None,
    confidence: float = DEFAULT_CONFIDENCE,
) -> list[Skill]:
    """Extract skills from text using the dictionary extractor."""
    return DictionarySkillExtractor(dictionary=dictionary, confidence=confidence).extract(text)
