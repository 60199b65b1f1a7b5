"""Expiring blob storage for qrshare."""

from qrshare.blobs._file import FileBlobStore
from qrshare.blobs._helpers import put_file, put_stream, read_limited
from qrshare.blobs._memory import InMemoryBlobStore
from qrshare.blobs._record import DEFAULT_MEDIA_TYPE, BlobEntry, BlobRecord
from qrshare.blobs._store import DEFAULT_MAX_SIZE_BYTES, DEFAULT_TTL, BlobStore, StoreStats, is_expired

__all__ = [
    "DEFAULT_MAX_SIZE_BYTES",
    "DEFAULT_MEDIA_TYPE",
    "DEFAULT_TTL",
    "BlobEntry",
    "BlobRecord",
    "BlobStore",
    "FileBlobStore",
    "InMemoryBlobStore",
    "StoreStats",
    "is_expired",
    "put_file",
    "put_stream",
    "read_limited",
]
