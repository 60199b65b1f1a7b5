"""FileShare: upload, download and status handlers over one owned BlobStore.

The handlers are framework-agnostic: each returns a ShareResponse carrying
the HTTP status, a JSON-ready body (or the raw payload) and headers, so any
web layer can translate it directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, BinaryIO

from qrshare.blobs import FileBlobStore, InMemoryBlobStore, put_stream
from qrshare.config import DEFAULT_SWEEP_INTERVAL
from qrshare.errors import BlobExpiredError, BlobIntegrityError, BlobNotFoundError, PayloadTooLargeError
from qrshare.sweeper import ExpirySweeper

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from qrshare.blobs import BlobStore
    from qrshare.config import Settings

logger = logging.getLogger(__name__)


def _isoformat(value: datetime) -> str:
    """Format a timestamp as UTC ISO-8601 with a trailing ``Z``."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def content_disposition(filename: str) -> str:
    """Build an attachment ``Content-Disposition`` value for a display name."""
    safe = filename.replace("\r", "").replace("\n", "").replace("\\", "\\\\").replace('"', '\\"')
    return f'attachment; filename="{safe}"'


@dataclass(frozen=True, slots=True)
class ShareResponse:
    """Status, body and headers produced by a FileShare handler."""

    status: int
    body: Mapping[str, object] | bytes
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def _error(status: int, message: str) -> ShareResponse:
    return ShareResponse(status=status, body={"success": False, "error": message})


class FileShare:
    """Own a blob store and its expiry sweeper for the lifetime of a service.

    Construct once at startup, call ``start()`` to begin periodic sweeps and
    ``close()`` at shutdown; pass the instance to whatever serves requests.
    """

    def __init__(
        self,
        store: BlobStore,
        *,
        sweep_interval: timedelta | float = DEFAULT_SWEEP_INTERVAL,
        base_url: str = "",
    ) -> None:
        self._store = store
        self._sweeper = ExpirySweeper(store, sweep_interval)
        self._base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> FileShare:
        """Build the configured backend and wrap it."""
        store: BlobStore
        if settings.backend == "file":
            store = FileBlobStore(
                settings.storage_dir,
                default_ttl=settings.ttl,
                max_size_bytes=settings.max_upload_bytes,
            )
        else:
            store = InMemoryBlobStore(default_ttl=settings.ttl, max_size_bytes=settings.max_upload_bytes)
        return cls(store, sweep_interval=settings.sweep_interval, base_url=settings.base_url)

    @property
    def store(self) -> BlobStore:
        return self._store

    @property
    def sweeper(self) -> ExpirySweeper:
        return self._sweeper

    def start(self) -> None:
        """Start background sweeping."""
        self._sweeper.start()

    def close(self) -> None:
        """Stop background sweeping."""
        self._sweeper.stop()

    def __enter__(self) -> FileShare:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def download_url(self, file_id: str) -> str:
        """Return the shareable download link for a file ID."""
        return f"{self._base_url}/download/{file_id}"

    def upload(
        self,
        file: bytes | BinaryIO | None,
        *,
        filename: str | None,
        media_type: str | None = None,
        ttl: timedelta | float | None = None,
    ) -> ShareResponse:
        """Store one uploaded file and describe it."""
        if file is None or not filename:
            return _error(400, "No file uploaded")
        try:
            if isinstance(file, (bytes, bytearray, memoryview)):
                entry = self._store.put_blob(bytes(file), display_name=filename, media_type=media_type, ttl=ttl)
            else:
                entry = put_stream(self._store, file, display_name=filename, media_type=media_type, ttl=ttl)
        except PayloadTooLargeError as exc:
            logger.warning("Rejected upload %r: %s", filename, exc)
            return _error(413, f"File too large (limit {exc.limit} bytes)")

        logger.info("Stored %r as %s (%d bytes)", filename, entry.id, entry.size)
        return ShareResponse(
            status=200,
            body={
                "success": True,
                "fileId": entry.id,
                "originalName": entry.display_name,
                "expiresAt": _isoformat(entry.expires_at),
                "size": entry.size,
                "shareableLink": self.download_url(entry.id),
            },
        )

    def download(self, file_id: str) -> ShareResponse:
        """Return a stored payload with attachment headers."""
        try:
            record = self._store.get_blob(file_id)
        except BlobExpiredError:
            return _error(404, "File has expired")
        except BlobNotFoundError:
            return _error(404, "File not found or has expired")
        except BlobIntegrityError:
            logger.exception("Stored payload for %s is corrupted", file_id)
            return _error(500, "Failed to download file")

        return ShareResponse(
            status=200,
            body=record.payload,
            headers={
                "Content-Type": record.media_type,
                "Content-Disposition": content_disposition(record.display_name),
                "Content-Length": str(record.size),
            },
        )

    def status(self, file_id: str, *, now: datetime | None = None) -> ShareResponse:
        """Describe a live file and how long it has left."""
        try:
            entry = self._store.stat_blob(file_id)
        except BlobNotFoundError:
            return _error(404, "File not found or has expired")

        if now is None:
            now = datetime.now(timezone.utc)
        remaining = entry.time_remaining(now)
        return ShareResponse(
            status=200,
            body={
                "exists": True,
                "originalName": entry.display_name,
                "expiresAt": _isoformat(entry.expires_at),
                "timeRemaining": int(remaining.total_seconds() * 1000),
                "size": entry.size,
            },
        )
