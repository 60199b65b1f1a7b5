"""ExpirySweeper: background thread that reclaims expired blobs on a fixed interval."""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import TracebackType

    from qrshare.blobs import BlobStore

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Periodically call ``sweep_expired`` on a store.

    Lazy eviction in ``get_blob`` already hides expired records; the sweeper
    bounds storage for uploads nobody downloads again.
    """

    def __init__(self, store: BlobStore, interval: timedelta | float = timedelta(hours=1)) -> None:
        """Initialize with the store to sweep and the pause between sweeps."""
        if not isinstance(interval, timedelta):
            interval = timedelta(seconds=interval)
        if interval <= timedelta(0):
            msg = "interval must be positive."
            raise ValueError(msg)
        self._store = store
        self._interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def interval(self) -> timedelta:
        """Return the pause between sweeps."""
        return self._interval

    @property
    def running(self) -> bool:
        """Return whether the background thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> int:
        """Sweep once and return the number of removed blobs."""
        removed = self._store.sweep_expired()
        if removed:
            logger.info("Swept %d expired blob(s)", removed)
        else:
            logger.debug("Sweep found nothing to remove")
        return removed

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self._interval.total_seconds()):
            try:
                self.run_once()
            except Exception:
                logger.exception("Expiry sweep failed")

    def start(self) -> None:
        """Start the background thread. Starting a running sweeper is a no-op."""
        if self.running:
            return
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop,), name="qrshare-sweeper", daemon=True)
        self._thread.start()
        logger.debug("Sweeper started (interval=%s)", self._interval)

    def stop(self, timeout: float | None = None) -> None:
        """Signal the thread to stop and wait up to ``timeout`` for it to exit.

        A thread still busy in a sweep when the timeout passes stays tracked, so
        ``start()`` will not launch a second loop beside it.
        """
        self._stop.set()
        thread = self._thread
        if thread is None:
            return
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("Sweeper did not stop within %s seconds", timeout)
            return
        self._thread = None
        logger.debug("Sweeper stopped")

    def __enter__(self) -> ExpirySweeper:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()
