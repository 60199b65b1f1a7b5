"""Typed errors for qrshare."""

from datetime import datetime


class QrshareError(Exception):
    """Base exception for all qrshare errors."""


class BlobNotFoundError(QrshareError):
    """Raised when a blob ID cannot be resolved in a BlobStore."""

    def __init__(self, blob_id: str) -> None:
        """Initialize with the missing blob's ID."""
        self.blob_id = blob_id
        super().__init__(f"Blob not found: {blob_id}")


class BlobExpiredError(BlobNotFoundError):
    """Raised when a blob exists but its expiry time has passed.

    Subclasses BlobNotFoundError so callers that don't care about the
    distinction can catch both with one handler.
    """

    def __init__(self, blob_id: str, expires_at: datetime) -> None:
        """Initialize with the blob ID and the moment it expired."""
        super().__init__(blob_id)
        self.expires_at = expires_at
        self.args = (f"Blob expired: {blob_id} (at {expires_at.isoformat()})",)


class PayloadTooLargeError(QrshareError):
    """Raised when a payload exceeds the store's size limit."""

    def __init__(self, size: int, limit: int) -> None:
        """Initialize with the observed size and the configured limit."""
        self.size = size
        self.limit = limit
        super().__init__(f"Payload too large: {size} bytes exceeds limit of {limit} bytes")


class BlobIntegrityError(QrshareError):
    """Raised when blob data does not match its expected SHA-256 digest."""

    def __init__(self, blob_id: str, expected: str, actual: str) -> None:
        """Initialize with the blob ID and mismatched digests."""
        self.blob_id = blob_id
        self.expected = expected
        self.actual = actual
        super().__init__(f"Blob integrity check failed for {blob_id}: expected sha256={expected}, got {actual}")


class ConfigError(QrshareError):
    """Raised when settings cannot be parsed from the environment."""
