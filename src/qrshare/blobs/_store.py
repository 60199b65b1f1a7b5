"""BlobStore: protocol and shared expiry helpers for blob storage backends."""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from qrshare.blobs._record import DEFAULT_MEDIA_TYPE, BlobEntry
from qrshare.errors import PayloadTooLargeError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from qrshare.blobs._record import BlobRecord

DEFAULT_TTL = timedelta(hours=24)
DEFAULT_MAX_SIZE_BYTES = 100 * 1024 * 1024


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def new_blob_id() -> str:
    """Return a fresh random blob ID (122 random bits, hex encoded)."""
    return uuid.uuid4().hex


def normalize_ttl(ttl: timedelta | float | None, *, default: timedelta) -> timedelta:
    """Normalize a ttl given as timedelta or seconds; ``None`` selects the default."""
    if ttl is None:
        return default
    if isinstance(ttl, bool):
        msg = "ttl must be a timedelta or a number of seconds."
        raise TypeError(msg)
    if not isinstance(ttl, timedelta):
        ttl = timedelta(seconds=ttl)
    if ttl <= timedelta(0):
        msg = "ttl must be positive."
        raise ValueError(msg)
    return ttl


def normalize_media_type(media_type: str | None) -> str:
    """Fall back to a generic binary type when the media type is unknown."""
    if not media_type:
        return DEFAULT_MEDIA_TYPE
    return media_type


def coerce_payload(data: object) -> bytes:
    """Return an immutable copy of a bytes-like payload; reject anything else."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        msg = f"data must be bytes-like, got {type(data).__name__}."
        raise TypeError(msg)
    return bytes(data)


def check_payload_size(size: int, max_size_bytes: int | None) -> None:
    """Raise PayloadTooLargeError when ``size`` exceeds the configured limit."""
    if max_size_bytes is not None and size > max_size_bytes:
        raise PayloadTooLargeError(size, max_size_bytes)


def build_entry(
    data: bytes,
    *,
    display_name: str,
    media_type: str | None,
    ttl: timedelta,
    now: datetime,
) -> BlobEntry:
    """Create metadata for a new payload stored at ``now``."""
    return BlobEntry(
        id=new_blob_id(),
        display_name=display_name,
        media_type=normalize_media_type(media_type),
        size=len(data),
        sha256=hashlib.sha256(data).hexdigest(),
        created_at=now,
        expires_at=now + ttl,
    )


def is_expired(entry: BlobEntry, now: datetime) -> bool:
    """Return whether an entry is past its expiry.

    The boundary instant counts as expired, so an entry is visible exactly
    during ``[created_at, expires_at)``. Lazy eviction and sweeps share this.
    """
    return now >= entry.expires_at


def sort_entries(entries: Iterable[BlobEntry]) -> tuple[BlobEntry, ...]:
    """Order entries oldest first (`created_at`, then `id`)."""
    return tuple(sorted(entries, key=lambda entry: (entry.created_at, entry.id)))


@dataclass(frozen=True, slots=True)
class StoreStats:
    """Number and total size of records physically held by a store."""

    count: int
    total_bytes: int


@runtime_checkable
class BlobStore(Protocol):
    """Expiring blob storage protocol.

    Records are immutable and visible from ``put_blob`` until either
    ``delete_blob`` or their expiry. Expired records are never returned by
    reads, whether or not a sweep has physically removed them yet.
    """

    @property
    def default_ttl(self) -> timedelta:
        """Return the ttl used when ``put_blob`` is called without one."""
        ...

    @property
    def max_size_bytes(self) -> int | None:
        """Return the largest accepted payload size, or ``None`` for unbounded."""
        ...

    def put_blob(
        self,
        data: bytes,
        *,
        display_name: str,
        media_type: str | None = None,
        ttl: timedelta | float | None = None,
    ) -> BlobEntry:
        """Store bytes and return the new entry."""
        ...

    def get_blob(self, blob_id: str) -> BlobRecord:
        """Retrieve a live record, evicting it if it has expired."""
        ...

    def stat_blob(self, blob_id: str) -> BlobEntry:
        """Retrieve a live record's metadata without its payload."""
        ...

    def has_blob(self, blob_id: str) -> bool:
        """Check whether a blob is currently retrievable."""
        ...

    def delete_blob(self, blob_id: str) -> bool:
        """Delete a blob by ID. Return ``True`` when something was removed."""
        ...

    def list_blobs(self, *, media_type: str | None = None) -> tuple[BlobEntry, ...]:
        """List retrievable blobs, optionally filtered by media type."""
        ...

    def sweep_expired(self) -> int:
        """Remove every expired blob and return how many were removed."""
        ...

    def stats(self) -> StoreStats:
        """Return count and total bytes of physically held blobs."""
        ...
