"""Recurring price simulation.

One SimulationScheduler is owned by the application (see app.main). It runs
ticks on a daemon thread; ``stop()`` signals the thread and waits for any
in-flight tick to finish.
"""

import logging
import random
import threading
from typing import Callable, Optional

from app.config import settings
from app.database import SessionLocal
from app.price_model import build_price_overrides
from app.services import simulation_service
from app.services.simulation_service import TickReport

logger = logging.getLogger(__name__)


class SimulationScheduler:
    """Advances every active stock once per interval.

    Usage:
        scheduler = SimulationScheduler()
        scheduler.start()
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        session_factory: Callable = SessionLocal,
        interval_minutes: Optional[float] = None,
        overrides: Optional[dict] = None,
        rng=random,
        max_consecutive_failures: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.interval_minutes = settings.SIM_TICK_MINUTES if interval_minutes is None else interval_minutes
        self.overrides = build_price_overrides(settings.PREMIUM_STOCK_ID) if overrides is None else overrides
        self.rng = rng
        self.max_consecutive_failures = (
            settings.SIM_MAX_CONSECUTIVE_FAILURES if max_consecutive_failures is None else max_consecutive_failures
        )
        self.failure_counts: dict[str, int] = {}
        self.paused: set[str] = set()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, run_immediately: bool = True) -> None:
        """Start ticking. Starting again replaces the previous timer."""
        self.stop()
        with self._lock:
            self.failure_counts.clear()
            self.paused.clear()
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event, run_immediately),
                name="price-simulation",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()
        logger.info("Starting stock price simulation (updates every %s minutes)", self.interval_minutes)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop ticking; a tick already in progress is allowed to finish."""
        with self._lock:
            thread, stop_event = self._thread, self._stop_event
            self._thread = None
            self._stop_event = None
        if thread is None:
            return
        stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("Stock simulation stopped")

    def run_once(self) -> TickReport:
        """Run one tick synchronously and update the failure budget."""
        db = self.session_factory()
        try:
            report = simulation_service.advance_all(
                db, overrides=self.overrides, rng=self.rng, skip=frozenset(self.paused)
            )
        finally:
            db.close()
        self._track_failures(report)
        return report

    def _track_failures(self, report: TickReport) -> None:
        for market_id in report.updated:
            self.failure_counts.pop(market_id, None)
        for market_id in report.failed:
            count = self.failure_counts.get(market_id, 0) + 1
            self.failure_counts[market_id] = count
            if self.max_consecutive_failures and count >= self.max_consecutive_failures:
                self.paused.add(market_id)
                logger.warning(
                    "Pausing simulation for market %s after %d consecutive failures", market_id, count
                )

    def _tick(self) -> None:
        try:
            self.run_once()
        except Exception:
            # A whole-tick failure is retried on the next interval
            logger.exception("Stock simulation tick failed")

    def _run(self, stop_event: threading.Event, run_immediately: bool) -> None:
        if run_immediately and not stop_event.is_set():
            self._tick()
        while not stop_event.wait(self.interval_minutes * 60):
            self._tick()
