"""Command-line maintenance for file-backed qrshare stores.

Meant for cron-style cleanup, e.g. ``python -m qrshare sweep --root /srv/qrshare/uploads``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from qrshare.blobs import FileBlobStore
from qrshare.config import Settings
from qrshare.errors import ConfigError
from qrshare.log import setup_logging

logger = logging.getLogger("qrshare.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qrshare", description="Maintain a file-backed qrshare store.")
    parser.add_argument("--env-file", type=Path, default=None, help="Path to a .env file to load first.")
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("sweep", "Remove expired uploads and print how many were removed."),
        ("stats", "Print the number and total size of stored uploads."),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--root", type=Path, default=None, help="Store directory (default: QRSHARE_STORAGE_DIR).")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return a process exit code."""
    args = _build_parser().parse_args(argv)
    try:
        settings = Settings.from_env(args.env_file)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    setup_logging(settings.log_level)

    root = args.root if args.root is not None else settings.storage_dir
    store = FileBlobStore(root, default_ttl=settings.ttl, max_size_bytes=settings.max_upload_bytes)

    if args.command == "sweep":
        removed = store.sweep_expired()
        logger.info("Removed %d expired upload(s) from %s", removed, store.root)
        print(removed)
    else:
        stats = store.stats()
        print(f"count={stats.count} total_bytes={stats.total_bytes}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
