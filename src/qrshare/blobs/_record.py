"""BlobEntry and BlobRecord: immutable metadata and payload of a stored file."""

from dataclasses import dataclass
from datetime import datetime, timedelta

DEFAULT_MEDIA_TYPE = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class BlobEntry:
    """Store-side metadata for one uploaded file."""

    id: str
    display_name: str
    media_type: str
    size: int
    sha256: str
    created_at: datetime
    expires_at: datetime

    def time_remaining(self, now: datetime) -> timedelta:
        """Return how long the entry stays retrievable, clamped at zero."""
        remaining = self.expires_at - now
        if remaining < timedelta(0):
            return timedelta(0)
        return remaining


@dataclass(frozen=True, slots=True)
class BlobRecord:
    """A stored payload together with its metadata."""

    entry: BlobEntry
    payload: bytes

    @property
    def id(self) -> str:
        return self.entry.id

    @property
    def display_name(self) -> str:
        return self.entry.display_name

    @property
    def media_type(self) -> str:
        return self.entry.media_type

    @property
    def size(self) -> int:
        return self.entry.size

    @property
    def created_at(self) -> datetime:
        return self.entry.created_at

    @property
    def expires_at(self) -> datetime:
        return self.entry.expires_at
