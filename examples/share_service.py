"""Run a FileShare end to end: upload, status, download, expiry and sweep."""

import io
import tempfile
import time
from pathlib import Path

from qrshare import FileBlobStore, FileShare, InMemoryBlobStore, put_file
from qrshare.log import setup_logging

setup_logging("INFO")

# ---- InMemoryBlobStore ----
# Single-process deployments; everything is gone on restart.

with FileShare(InMemoryBlobStore(), sweep_interval=0.5, base_url="http://localhost:3001") as share:
    upload = share.upload(b"hello", filename="a.txt", media_type="text/plain")
    print(f"[upload] {upload.status} {upload.body}")

    file_id = str(upload.body["fileId"])  # type: ignore[index]
    print(f"[status] {share.status(file_id).body}")

    download = share.download(file_id)
    print(f"[download] {download.status} headers={dict(download.headers)} body={download.body!r}")

    short = share.upload(io.BytesIO(b"gone soon"), filename="short.txt", ttl=0.2)
    short_id = str(short.body["fileId"])  # type: ignore[index]
    time.sleep(1.0)
    print(f"[expired] {share.download(short_id).status} stats={share.store.stats()}")

# ---- FileBlobStore ----
# Payloads and metadata sidecars on disk; survives restarts until expiry.

with tempfile.TemporaryDirectory() as tmpdir:
    root = Path(tmpdir) / "uploads"
    store = FileBlobStore(root, default_ttl=60)

    sample = Path(tmpdir) / "photo.png"
    sample.write_bytes(b"\x89PNG fake image")
    entry = put_file(store, sample)
    print(f"\n[file] id={entry.id[:8]}... media_type={entry.media_type} size={entry.size}")

    reopened = FileBlobStore(root)
    print(f"  reopened get_blob() = {reopened.get_blob(entry.id).payload!r}")
    print(f"  delete_blob() = {reopened.delete_blob(entry.id)}, again = {reopened.delete_blob(entry.id)}")
