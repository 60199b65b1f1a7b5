"""InMemoryBlobStore: dict-based expiring blob storage."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from qrshare.blobs._record import BlobEntry, BlobRecord
from qrshare.blobs._store import (
    DEFAULT_MAX_SIZE_BYTES,
    DEFAULT_TTL,
    StoreStats,
    build_entry,
    check_payload_size,
    coerce_payload,
    is_expired,
    normalize_ttl,
    sort_entries,
    utc_now,
)
from qrshare.errors import BlobExpiredError, BlobNotFoundError

if TYPE_CHECKING:
    from datetime import timedelta


class InMemoryBlobStore:
    """In-memory blob store for single-process deployments and testing.

    All map mutations happen under one lock, so the store can be shared by
    request handlers running on several threads.
    """

    def __init__(
        self,
        *,
        default_ttl: timedelta | float = DEFAULT_TTL,
        max_size_bytes: int | None = DEFAULT_MAX_SIZE_BYTES,
    ) -> None:
        """Initialize an empty in-memory store."""
        if max_size_bytes is not None and max_size_bytes < 0:
            msg = "max_size_bytes must be >= 0."
            raise ValueError(msg)
        self._default_ttl = normalize_ttl(default_ttl, default=DEFAULT_TTL)
        self._max_size_bytes = max_size_bytes
        self._records: dict[str, BlobRecord] = {}
        self._lock = threading.Lock()

    @property
    def default_ttl(self) -> timedelta:
        """Return the ttl used when ``put_blob`` is called without one."""
        return self._default_ttl

    @property
    def max_size_bytes(self) -> int | None:
        """Return the largest accepted payload size."""
        return self._max_size_bytes

    def put_blob(
        self,
        data: bytes,
        *,
        display_name: str,
        media_type: str | None = None,
        ttl: timedelta | float | None = None,
    ) -> BlobEntry:
        """Store bytes and return the new entry."""
        payload = coerce_payload(data)
        check_payload_size(len(payload), self._max_size_bytes)
        lifetime = normalize_ttl(ttl, default=self._default_ttl)
        entry = build_entry(
            payload,
            display_name=display_name,
            media_type=media_type,
            ttl=lifetime,
            now=utc_now(),
        )
        record = BlobRecord(entry=entry, payload=payload)
        with self._lock:
            self._records[entry.id] = record
        return entry

    def _live_record(self, blob_id: str) -> BlobRecord:
        """Return the record for ``blob_id`` or evict it when expired. Lock must be held."""
        record = self._records.get(blob_id)
        if record is None:
            raise BlobNotFoundError(blob_id)
        if is_expired(record.entry, utc_now()):
            del self._records[blob_id]
            raise BlobExpiredError(blob_id, record.expires_at)
        return record

    def get_blob(self, blob_id: str) -> BlobRecord:
        """Retrieve a live record, evicting it if it has expired."""
        with self._lock:
            return self._live_record(blob_id)

    def stat_blob(self, blob_id: str) -> BlobEntry:
        """Retrieve a live record's metadata."""
        with self._lock:
            return self._live_record(blob_id).entry

    def has_blob(self, blob_id: str) -> bool:
        """Check whether a blob is currently retrievable."""
        with self._lock:
            record = self._records.get(blob_id)
        return record is not None and not is_expired(record.entry, utc_now())

    def delete_blob(self, blob_id: str) -> bool:
        """Delete a blob by ID."""
        with self._lock:
            return self._records.pop(blob_id, None) is not None

    def list_blobs(self, *, media_type: str | None = None) -> tuple[BlobEntry, ...]:
        """List retrievable blobs, optionally filtered by media type."""
        now = utc_now()
        with self._lock:
            entries = [record.entry for record in self._records.values()]
        return sort_entries(
            entry
            for entry in entries
            if not is_expired(entry, now) and (media_type is None or entry.media_type == media_type)
        )

    def sweep_expired(self) -> int:
        """Remove every expired blob and return how many were removed."""
        now = utc_now()
        with self._lock:
            expired_ids = [blob_id for blob_id, record in self._records.items() if is_expired(record.entry, now)]
            for blob_id in expired_ids:
                del self._records[blob_id]
        return len(expired_ids)

    def stats(self) -> StoreStats:
        """Return count and total bytes of held blobs, including expired ones not yet swept."""
        with self._lock:
            sizes = [record.size for record in self._records.values()]
        return StoreStats(count=len(sizes), total_bytes=sum(sizes))
