"""Background scheduler for dashboard refresh and retention purges."""

import threading
from datetime import datetime
from typing import Optional

from fairwatch.data.models.base import utcnow
from fairwatch.utils.logger import get_logger

from .service import BiasMonitoringService

logger = get_logger(__name__)


class MonitoringScheduler:
    """
    Runs periodic monitoring housekeeping on a daemon thread.

    Each tick refreshes the cached dashboard snapshots and purges records
    past their retention windows. Ticks are idempotent.
    """

    def __init__(self, service: BiasMonitoringService, interval_seconds: float = 24 * 3600):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.service = service
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_run: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self, now: Optional[datetime] = None) -> dict[str, int]:
        """Refresh dashboards and purge expired records."""
        now = now or utcnow()
        self.service.refresh_dashboards(now)
        removed = self.service.purge_expired_records(now)
        self.last_run = now
        logger.info(f"Scheduled monitoring tick complete: purged {removed}")
        return removed

    def _loop(self) -> None:
        logger.info(f"Monitoring scheduler started (interval={self.interval_seconds}s)")
        while not self._stop.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception as e:
                # keep ticking; the next interval retries
                logger.exception(f"Scheduled monitoring tick failed: {e}")
        logger.info("Monitoring scheduler stopped")

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="fairwatch-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
