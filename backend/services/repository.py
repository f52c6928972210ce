"""In-memory profile and posting stores.

The persistence technology is outside this service; these classes define
the create/read/update contract the pipeline relies on.
"""

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter

from models.posting import Posting
from models.profile import Profile
from services.errors import ProfileNotFound

logger = logging.getLogger(__name__)

_POSTINGS = TypeAdapter(list[Posting])


class ProfileRepository:
    def __init__(self) -> None:
        self._profiles: dict[str, Profile] = {}

    def create(self, profile: Profile) -> Profile:
        if profile.id in self._profiles:
            raise ValueError(f"Profile already exists: {profile.id}")
        self._profiles[profile.id] = profile
        return profile

    def get(self, profile_id: str) -> Profile:
        profile = self._profiles.get(profile_id)
        if profile is None:
            raise ProfileNotFound(profile_id)
        return profile

    def update(self, profile: Profile) -> Profile:
        """Replace the stored profile. Last writer wins."""
        if profile.id not in self._profiles:
            raise ProfileNotFound(profile.id)
        self._profiles[profile.id] = profile
        return profile

    def upsert(self, profile: Profile) -> Profile:
        self._profiles[profile.id] = profile
        return profile

    def exists(self, profile_id: str) -> bool:
        return profile_id in self._profiles


class PostingRepository:
    def __init__(self, postings: list[Posting] | None = None) -> None:
        self._postings: dict[str, Posting] = {}
        for posting in postings or []:
            self.create(posting)

    def create(self, posting: Posting) -> Posting:
        if posting.id in self._postings:
            raise ValueError(f"Posting already exists: {posting.id}")
        self._postings[posting.id] = posting
        return posting

    def get(self, posting_id: str) -> Posting | None:
        return self._postings.get(posting_id)

    def update(self, posting: Posting) -> Posting:
        if posting.id not in self._postings:
            raise KeyError(posting.id)
        self._postings[posting.id] = posting
        return posting

    def list(self) -> list[Posting]:
        return list(self._postings.values())

    def __len__(self) -> int:
        return len(self._postings)


def load_catalog(path: str | Path) -> list[Posting]:
    """Load postings from a JSON list (the shape of ``Posting``)."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    postings = _POSTINGS.validate_python(data)
    logger.info("Loaded %d postings from %s", len(postings), path)
    return postings
