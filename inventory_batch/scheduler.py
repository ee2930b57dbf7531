"""
ExpirySweepScheduler -- In-process polling scheduler for the expiry sweep.

Contract:
    Runs ``ExpirySweep.sweep()`` for the clock's current date every
    ``tick_interval_seconds`` on a daemon thread, or once per ``tick()``
    call.

Architecture: inventory_batch.  Depends on inventory_kernel.services for
    the sweep itself; the kernel never imports this module.

Invariants enforced:
    - All dates come from the injected Clock.
    - Graceful shutdown: ``stop()`` signals the loop and waits for the
      current tick to finish.
    - A failing tick is logged and the loop keeps running.
"""

from __future__ import annotations

import threading

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.values import SweepReport
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.expiry_sweep import ExpirySweep

logger = get_logger("batch.scheduler")


class ExpirySweepScheduler:
    """Runs the expiry sweep on a fixed interval.

    Contract:
        - ``tick()`` runs one sweep and returns its report, or None when
          the sweep itself failed.
        - ``start()`` / ``stop()`` for background thread operation.

    Non-goals:
        - NOT a distributed scheduler (run one instance per database).
        - Does NOT align ticks to wall-clock midnight.
    """

    def __init__(
        self,
        sweep: ExpirySweep,
        clock: Clock | None = None,
        tick_interval_seconds: float = 86400,
    ):
        self._sweep = sweep
        self._clock = clock or SystemClock()
        self._tick_interval = tick_interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._last_report: SweepReport | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> SweepReport | None:
        """Run one sweep as of the clock's date (public for testing)."""
        try:
            report = self._sweep.sweep(self._clock.today())
        except Exception:
            logger.exception("scheduler_tick_failed")
            return None
        self._last_report = report
        return report

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="expiry-sweep-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info("scheduler_started", extra={"tick_interval": self._tick_interval})

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the scheduler to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def last_report(self) -> SweepReport | None:
        return self._last_report

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(timeout=self._tick_interval)
