"""Helper functions for feeding uploads into a BlobStore."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from qrshare.errors import PayloadTooLargeError

if TYPE_CHECKING:
    from datetime import timedelta

    from qrshare.blobs._record import BlobEntry
    from qrshare.blobs._store import BlobStore

CHUNK_SIZE = 64 * 1024


def read_limited(stream: BinaryIO, limit: int | None, *, chunk_size: int = CHUNK_SIZE) -> bytes:
    """Read a binary stream to the end, refusing to buffer more than ``limit`` bytes.

    Reading stops as soon as the running total passes the limit, so an
    oversized upload is rejected after at most ``limit + chunk_size`` bytes.
    The size on the raised error is the amount read so far, a lower bound.
    """
    if chunk_size <= 0:
        msg = "chunk_size must be > 0."
        raise ValueError(msg)
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        total += len(chunk)
        if limit is not None and total > limit:
            raise PayloadTooLargeError(total, limit)
        chunks.append(chunk)
    return b"".join(chunks)


def put_stream(
    store: BlobStore,
    stream: BinaryIO,
    *,
    display_name: str,
    media_type: str | None = None,
    ttl: timedelta | float | None = None,
) -> BlobEntry:
    """Store the contents of a binary stream, enforcing the store's size limit while reading."""
    data = read_limited(stream, store.max_size_bytes)
    return store.put_blob(data, display_name=display_name, media_type=media_type, ttl=ttl)


def put_file(
    store: BlobStore,
    path: str | Path,
    *,
    ttl: timedelta | float | None = None,
) -> BlobEntry:
    """Store a file in a BlobStore, guessing media_type from the extension.

    The file name becomes the entry's display name.
    """
    path = Path(path)
    media_type, _ = mimetypes.guess_type(str(path))
    with path.open("rb") as stream:
        return put_stream(store, stream, display_name=path.name, media_type=media_type, ttl=ttl)
