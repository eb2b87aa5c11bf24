from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import schedule

from models.reply import CycleReport
from services.auto_reply_cycle import AutoReplyCycle
from utils.config import DEFAULT_MAX_INTERVAL, DEFAULT_MIN_INTERVAL

LOGGER = logging.getLogger(__name__)


class CycleScheduler:
    """Run auto-reply cycles on a randomized interval until stopped.

    The interval is redrawn after every run, uniformly between the two bounds,
    so polling has no fixed period. Cycles never overlap and an exception from
    a cycle is logged rather than ending the loop.
    """

    def __init__(
        self,
        cycle: AutoReplyCycle,
        min_interval: int = DEFAULT_MIN_INTERVAL,
        max_interval: int = DEFAULT_MAX_INTERVAL,
        on_report: Optional[Callable[[CycleReport], None]] = None,
    ):
        if min_interval <= 0 or max_interval < min_interval:
            raise ValueError(f"Invalid interval bounds: {min_interval}-{max_interval} seconds")
        self._cycle = cycle
        self._on_report = on_report
        self._lock = threading.Lock()
        self._scheduler = schedule.Scheduler()
        self.job = self._scheduler.every(min_interval).to(max_interval).seconds.do(self.run_now)

    @property
    def stop_event(self) -> threading.Event:
        return self._cycle.stop_event

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    def run_now(self) -> Optional[CycleReport]:
        if not self._lock.acquire(blocking=False):
            LOGGER.warning("Previous cycle still running, skipping this tick")
            return None
        try:
            LOGGER.info("Checking for unread messages")
            report = self._cycle.run_cycle()
            if self._on_report is not None:
                self._on_report(report)
            return report
        except Exception:  # noqa: BLE001
            LOGGER.exception("Auto-reply cycle failed unexpectedly")
            return None
        finally:
            self._lock.release()

    def tick(self) -> None:
        """Run the cycle if its randomized deadline has passed."""

        if not self.stopped:
            self._scheduler.run_pending()

    def seconds_until_next_run(self) -> Optional[float]:
        return self._scheduler.idle_seconds

    def run_forever(self, poll_seconds: float = 1.0) -> None:
        LOGGER.info("Scheduler started; next cycle in %.0f seconds", self.seconds_until_next_run() or 0)
        while not self.stopped:
            self.tick()
            self.stop_event.wait(poll_seconds)
        self._scheduler.clear()
        LOGGER.info("Scheduler stopped")

    def stop(self) -> None:
        """Let the current message finish, then stop accepting work."""

        self.stop_event.set()
