"""
Sync scheduler for the artifact mirror.

Runs a reconciliation pass over all configured repositories once at start
and then every SYNC_INTERVAL_MINUTES on a background thread, until stopped.
"""

import logging
import threading
import time

logger = logging.getLogger(__name__)


class SyncScheduler:
    """
    Timer-based scheduler for reconciliation passes.

    Errors are logged per repository and never stop the schedule.
    """

    def __init__(self, reconciler, interval_minutes: int):
        self.reconciler = reconciler
        self.interval_minutes = interval_minutes
        self._thread = None
        self._stop_event = threading.Event()

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def next_delay(self, started: float) -> float:
        """Seconds until the next pass so passes start on a fixed period."""
        return max(0.0, self.interval_seconds - (time.monotonic() - started))

    def run_once(self) -> dict:
        """
        Run one reconciliation pass.

        Returns:
            Mapping of repository name to the error that aborted its pass
        """
        logger.info("Starting sync pass")
        errors = self.reconciler.reconcile_all()
        logger.info(f"Sync pass finished with {len(errors)} failed repositories")
        return errors

    def start(self) -> None:
        """Start the background scheduler thread."""
        if self.is_running:
            logger.debug("Sync scheduler already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._scheduler_loop, name="sync-scheduler", daemon=True
        )
        self._thread.start()
        logger.info(f"Sync scheduler started (interval: {self.interval_minutes} min)")

    def stop(self, timeout=None) -> None:
        """Signal the scheduler loop to exit and wait for it."""
        if self._thread is None:
            logger.debug("Sync scheduler already stopped")
            return
        self._stop_event.set()
        self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("Sync scheduler stopped")

    def _scheduler_loop(self) -> None:
        logger.debug("Sync scheduler loop started")
        while not self._stop_event.is_set():
            started = time.monotonic()
            self.run_once()
            self._stop_event.wait(timeout=self.next_delay(started))
        logger.debug("Sync scheduler loop exited")
