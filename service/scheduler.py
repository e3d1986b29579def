"""Runs discrete alert cycles at a fixed cadence."""
import logging
import threading
import time

import schedule

from alerts.errors import CycleInProgressError

logger = logging.getLogger("spotalerts.scheduler")


class CycleScheduler:
    """Triggers one orchestrator cycle every interval_minutes.

    Each tick is an independent batch. A tick that fires while the previous
    cycle is still running is skipped rather than queued.
    """

    def __init__(self, orchestrator, interval_minutes=15):
        self.orchestrator = orchestrator
        self.interval = interval_minutes
        self._scheduler = schedule.Scheduler()
        self._thread = None
        self._running = False
        self._callbacks = []
        self._consecutive_failures = 0
        self.skipped = 0

    def on_cycle(self, callback):
        """Register callback called with the CycleSummary after each cycle."""
        self._callbacks.append(callback)

    def start(self):
        """Run cycles on a background thread."""
        if self._running:
            return
        self._running = True
        self._scheduler.every(self.interval).minutes.do(self._cycle_job)
        self._thread = threading.Thread(target=self._run_loop, daemon=True)
        self._thread.start()
        logger.info(f"Scheduler started (every {self.interval} min)")

    def run_forever(self):
        """Run cycles on the calling thread until interrupted."""
        self._running = True
        self._scheduler.every(self.interval).minutes.do(self._cycle_job)
        logger.info(f"Scheduler running (every {self.interval} min)")
        try:
            self._run_loop()
        finally:
            self._running = False
            self._scheduler.clear()

    def stop(self):
        self._running = False
        self._scheduler.clear()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("Scheduler stopped")

    def _run_loop(self):
        self._cycle_job()
        while self._running:
            self._scheduler.run_pending()
            time.sleep(1)

    def _cycle_job(self):
        try:
            summary = self.orchestrator.run_cycle()
        except CycleInProgressError:
            self.skipped += 1
            logger.warning("Previous alert cycle still running, skipping this tick")
            return None
        except Exception as e:
            self._consecutive_failures += 1
            logger.error(f"Alert cycle failed ({self._consecutive_failures} consecutive): {e}")
            if self._consecutive_failures >= 5:
                logger.critical("5+ consecutive alert cycle failures!")
            return None

        self._consecutive_failures = 0
        for cb in self._callbacks:
            try:
                cb(summary)
            except Exception as e:
                logger.warning(f"Cycle callback error: {e}")
        return summary
