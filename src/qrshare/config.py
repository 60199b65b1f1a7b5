"""Settings: service configuration read from the environment and an optional ``.env`` file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from dotenv import load_dotenv

from qrshare.blobs import DEFAULT_MAX_SIZE_BYTES, DEFAULT_TTL
from qrshare.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

Backend = Literal["memory", "file"]

DEFAULT_SWEEP_INTERVAL = timedelta(hours=1)
_BACKENDS: tuple[Backend, ...] = ("memory", "file")


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got {raw!r}."
        raise ConfigError(msg) from None


def _read_seconds(env: Mapping[str, str], name: str, default: timedelta) -> timedelta:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        seconds = float(raw)
    except ValueError:
        msg = f"{name} must be a number of seconds, got {raw!r}."
        raise ConfigError(msg) from None
    if seconds <= 0:
        msg = f"{name} must be positive, got {raw!r}."
        raise ConfigError(msg)
    return timedelta(seconds=seconds)


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime settings for a qrshare deployment."""

    backend: Backend = "memory"
    storage_dir: Path = Path("uploads")
    ttl: timedelta = DEFAULT_TTL
    max_upload_bytes: int = DEFAULT_MAX_SIZE_BYTES
    sweep_interval: timedelta = DEFAULT_SWEEP_INTERVAL
    base_url: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> Settings:
        """Build settings from ``QRSHARE_*`` environment variables.

        A ``.env`` file (``env_file``, or ``.env`` in the working directory)
        is loaded first; variables already set in the process win.
        """
        if env_file is None:
            env_file = Path.cwd() / ".env"
        load_dotenv(env_file, override=False)
        return cls.from_mapping(os.environ)

    @classmethod
    def from_mapping(cls, env: Mapping[str, str]) -> Settings:
        """Build settings from an explicit mapping of variables."""
        backend = env.get("QRSHARE_BACKEND", "memory").strip().lower() or "memory"
        if backend not in _BACKENDS:
            msg = f"QRSHARE_BACKEND must be one of {', '.join(_BACKENDS)}, got {backend!r}."
            raise ConfigError(msg)

        max_upload_bytes = _read_int(env, "QRSHARE_MAX_UPLOAD_BYTES", DEFAULT_MAX_SIZE_BYTES)
        if max_upload_bytes < 0:
            msg = "QRSHARE_MAX_UPLOAD_BYTES must be >= 0."
            raise ConfigError(msg)

        return cls(
            backend=backend,  # type: ignore[arg-type]
            storage_dir=Path(env.get("QRSHARE_STORAGE_DIR", "").strip() or "uploads"),
            ttl=_read_seconds(env, "QRSHARE_TTL_SECONDS", DEFAULT_TTL),
            max_upload_bytes=max_upload_bytes,
            sweep_interval=_read_seconds(env, "QRSHARE_SWEEP_INTERVAL_SECONDS", DEFAULT_SWEEP_INTERVAL),
            base_url=env.get("QRSHARE_BASE_URL", "").strip().rstrip("/"),
            log_level=env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )
