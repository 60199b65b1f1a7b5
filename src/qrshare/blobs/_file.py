"""FileBlobStore: file-system-based expiring blob storage."""

import hashlib
import json
import os
import threading
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

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
from qrshare.errors import BlobExpiredError, BlobIntegrityError, BlobNotFoundError

_PAYLOAD_SUFFIX = ".blob"
_META_SUFFIX = ".meta.json"
_TEMP_SUFFIX = ".tmp"


class FileBlobStore:
    """File-system-based blob store.

    Store each blob payload as ``<id>.blob`` and metadata as ``<id>.meta.json`` under a root directory.
    Both files are written to a temporary name first and renamed into place, and the metadata
    index is rebuilt from the sidecars when the store is reopened.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        default_ttl: timedelta | float = DEFAULT_TTL,
        max_size_bytes: int | None = DEFAULT_MAX_SIZE_BYTES,
    ) -> None:
        """Initialize with a root directory, creating it if needed."""
        if max_size_bytes is not None and max_size_bytes < 0:
            msg = "max_size_bytes must be >= 0."
            raise ValueError(msg)
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        self._default_ttl = normalize_ttl(default_ttl, default=DEFAULT_TTL)
        self._max_size_bytes = max_size_bytes
        self._entries: dict[str, BlobEntry] = {}
        self._lock = threading.Lock()
        self._load_entries()

    @property
    def root(self) -> Path:
        """Return the root directory path."""
        return self._root

    @property
    def default_ttl(self) -> timedelta:
        """Return the ttl used when ``put_blob`` is called without one."""
        return self._default_ttl

    @property
    def max_size_bytes(self) -> int | None:
        """Return the largest accepted payload size."""
        return self._max_size_bytes

    def _resolve_path(self, blob_id: str, *, suffix: str = "") -> Path | None:
        """Resolve blob path and ensure it stays under the store root."""
        try:
            root = self._root.resolve()
            candidate = (self._root / f"{blob_id}{suffix}").resolve()
            candidate.relative_to(root)
        except (ValueError, OSError):
            # Outside the root, or not representable as a path (e.g. an embedded NUL byte).
            return None
        return candidate

    def _payload_path(self, blob_id: str) -> Path | None:
        """Resolve payload path for a blob ID."""
        return self._resolve_path(blob_id, suffix=_PAYLOAD_SUFFIX)

    def _meta_path(self, blob_id: str) -> Path | None:
        """Resolve metadata path for a blob ID."""
        return self._resolve_path(blob_id, suffix=_META_SUFFIX)

    def _entry_to_payload(self, entry: BlobEntry) -> dict[str, object]:
        """Serialize a BlobEntry for sidecar metadata."""
        return {
            "id": entry.id,
            "display_name": entry.display_name,
            "media_type": entry.media_type,
            "size": entry.size,
            "sha256": entry.sha256,
            "created_at": entry.created_at.isoformat(),
            "expires_at": entry.expires_at.isoformat(),
        }

    def _parse_iso_timestamp(self, value: object) -> datetime | None:
        """Parse one ISO-8601 timestamp string, treating naive values as UTC."""
        if not isinstance(value, str):
            return None
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    def _entry_from_payload(self, payload: object, *, blob_id: str) -> BlobEntry | None:
        """Deserialize one metadata sidecar payload."""
        if not isinstance(payload, dict):
            return None

        payload_id = payload.get("id")
        display_name = payload.get("display_name")
        media_type = payload.get("media_type")
        size = payload.get("size")
        sha256 = payload.get("sha256")

        if (
            not isinstance(payload_id, str)
            or payload_id != blob_id
            or not isinstance(display_name, str)
            or not isinstance(media_type, str)
            or not media_type
            or not isinstance(size, int)
            or isinstance(size, bool)
            or not isinstance(sha256, str)
            or not sha256
        ):
            return None

        created_at = self._parse_iso_timestamp(payload.get("created_at"))
        expires_at = self._parse_iso_timestamp(payload.get("expires_at"))
        if created_at is None or expires_at is None:
            return None

        return BlobEntry(
            id=payload_id,
            display_name=display_name,
            media_type=media_type,
            size=size,
            sha256=sha256,
            created_at=created_at,
            expires_at=expires_at,
        )

    def _write_atomic(self, path: Path, data: bytes) -> None:
        """Write bytes to a temporary sibling and rename it over ``path``."""
        temp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}{_TEMP_SUFFIX}")
        try:
            temp_path.write_bytes(data)
            os.replace(temp_path, path)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

    def _unlink(self, path: Path | None) -> bool:
        """Remove one file, returning whether it existed."""
        if path is None:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def _remove_files(self, blob_id: str) -> bool:
        """Delete payload and sidecar; return whether the payload was removed."""
        removed_payload = self._unlink(self._payload_path(blob_id))
        self._unlink(self._meta_path(blob_id))
        return removed_payload

    def _load_entries(self) -> None:
        """Load metadata sidecars into the in-memory index and reclaim orphaned files.

        Leftover temporary files, sidecars without a payload, unreadable sidecars and
        payloads without a valid sidecar can never be served, so they are removed.
        """
        for temp_path in self._root.glob(f"*{_TEMP_SUFFIX}"):
            self._unlink(temp_path)

        for meta_path in self._root.glob(f"*{_META_SUFFIX}"):
            blob_id = meta_path.name[: -len(_META_SUFFIX)]
            payload_path = self._payload_path(blob_id)
            if payload_path is None or not payload_path.exists():
                self._unlink(meta_path)
                continue

            try:
                raw = json.loads(meta_path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError, UnicodeDecodeError):
                raw = None

            entry = self._entry_from_payload(raw, blob_id=blob_id)
            if entry is None:
                self._unlink(meta_path)
                continue
            self._entries[blob_id] = entry

        for payload_path in self._root.glob(f"*{_PAYLOAD_SUFFIX}"):
            if payload_path.name[: -len(_PAYLOAD_SUFFIX)] not in self._entries:
                self._unlink(payload_path)

    def put_blob(
        self,
        data: bytes,
        *,
        display_name: str,
        media_type: str | None = None,
        ttl: timedelta | float | None = None,
    ) -> BlobEntry:
        """Store bytes as a file and return the new entry."""
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
        payload_path = self._payload_path(entry.id)
        meta_path = self._meta_path(entry.id)
        if payload_path is None or meta_path is None:
            msg = f"Generated blob ID {entry.id!r} resolves outside store root."
            raise ValueError(msg)

        meta = json.dumps(self._entry_to_payload(entry), ensure_ascii=False).encode("utf-8")
        with self._lock:
            self._write_atomic(payload_path, payload)
            try:
                self._write_atomic(meta_path, meta)
            except BaseException:
                self._unlink(payload_path)
                raise
            self._entries[entry.id] = entry
        return entry

    def _live_entry(self, blob_id: str) -> BlobEntry:
        """Return the indexed entry for ``blob_id`` or evict it when expired. Lock must be held."""
        entry = self._entries.get(blob_id)
        if entry is None:
            raise BlobNotFoundError(blob_id)
        if is_expired(entry, utc_now()):
            self._entries.pop(blob_id, None)
            self._remove_files(blob_id)
            raise BlobExpiredError(blob_id, entry.expires_at)
        return entry

    def get_blob(self, blob_id: str) -> BlobRecord:
        """Read a blob file and verify SHA-256 integrity."""
        with self._lock:
            entry = self._live_entry(blob_id)
            path = self._payload_path(blob_id)
            if path is None:
                raise BlobNotFoundError(blob_id)
            try:
                data = path.read_bytes()
            except FileNotFoundError:
                self._entries.pop(blob_id, None)
                self._unlink(self._meta_path(blob_id))
                raise BlobNotFoundError(blob_id) from None
        actual = hashlib.sha256(data).hexdigest()
        if actual != entry.sha256:
            raise BlobIntegrityError(blob_id, entry.sha256, actual)
        return BlobRecord(entry=entry, payload=data)

    def stat_blob(self, blob_id: str) -> BlobEntry:
        """Retrieve a live record's metadata without reading the payload."""
        with self._lock:
            return self._live_entry(blob_id)

    def has_blob(self, blob_id: str) -> bool:
        """Check whether a blob is indexed, unexpired and present on disk."""
        with self._lock:
            entry = self._entries.get(blob_id)
        if entry is None or is_expired(entry, utc_now()):
            return False
        path = self._payload_path(blob_id)
        return path is not None and path.exists()

    def delete_blob(self, blob_id: str) -> bool:
        """Delete a blob payload and metadata sidecar by ID."""
        with self._lock:
            indexed = self._entries.pop(blob_id, None) is not None
            removed_files = self._remove_files(blob_id)
        return indexed or removed_files

    def list_blobs(self, *, media_type: str | None = None) -> tuple[BlobEntry, ...]:
        """List retrievable blobs, optionally filtered by media type."""
        now = utc_now()
        with self._lock:
            entries = list(self._entries.values())
        return sort_entries(
            entry
            for entry in entries
            if not is_expired(entry, now) and (media_type is None or entry.media_type == media_type)
        )

    def sweep_expired(self) -> int:
        """Remove every expired blob from disk and return how many were removed."""
        now = utc_now()
        with self._lock:
            expired_ids = [blob_id for blob_id, entry in self._entries.items() if is_expired(entry, now)]
            for blob_id in expired_ids:
                self._entries.pop(blob_id, None)
                self._remove_files(blob_id)
        return len(expired_ids)

    def stats(self) -> StoreStats:
        """Return count and total bytes of indexed blobs, including expired ones not yet swept."""
        with self._lock:
            sizes = [entry.size for entry in self._entries.values()]
        return StoreStats(count=len(sizes), total_bytes=sum(sizes))
