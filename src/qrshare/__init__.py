"""qrshare: disposable file sharing backed by an expiring blob store."""

import importlib.metadata as importlib_metadata

from qrshare.blobs import (
    BlobEntry,
    BlobRecord,
    BlobStore,
    FileBlobStore,
    InMemoryBlobStore,
    StoreStats,
    put_file,
    put_stream,
)
from qrshare.config import Settings
from qrshare.errors import (
    BlobExpiredError,
    BlobIntegrityError,
    BlobNotFoundError,
    ConfigError,
    PayloadTooLargeError,
    QrshareError,
)
from qrshare.share import FileShare, ShareResponse
from qrshare.sweeper import ExpirySweeper


def _detect_version() -> str:
    """Return installed package version or a local fallback when metadata is unavailable."""
    try:
        return importlib_metadata.version("qrshare")
    except importlib_metadata.PackageNotFoundError:
        return "0.0.0+unknown"


__version__ = _detect_version()

__all__ = [
    "BlobEntry",
    "BlobExpiredError",
    "BlobIntegrityError",
    "BlobNotFoundError",
    "BlobRecord",
    "BlobStore",
    "ConfigError",
    "ExpirySweeper",
    "FileBlobStore",
    "FileShare",
    "InMemoryBlobStore",
    "PayloadTooLargeError",
    "QrshareError",
    "Settings",
    "ShareResponse",
    "StoreStats",
    "put_file",
    "put_stream",
]
