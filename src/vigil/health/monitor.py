"""Watchdog loop: probe, count consecutive failures, escalate.

States:
    Stable       failure_count == 0
    Degraded(n)  n consecutive unhealthy probes

A healthy probe returns to Stable from any state. Each unhealthy probe
increments the count and dispatches level ``min(n, 4)``, so level 4 repeats
until the subject recovers.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from vigil.logging_config import get_logger

from .probe import HealthProbe, HealthStatus, ProbeOutcome
from .recovery import RecoveryDispatcher

logger = get_logger(__name__)

MAX_ESCALATION_LEVEL = 4


def escalation_level(failure_count: int) -> int:
    return min(failure_count, MAX_ESCALATION_LEVEL)


@dataclass
class MonitorState:
    """Consecutive-failure counter of one supervised subject."""

    failure_count: int = 0
    cycles: int = 0
    recoveries: int = 0
    last_status: Optional[HealthStatus] = None

    @property
    def escalation_level(self) -> int:
        return escalation_level(self.failure_count)

    @property
    def stable(self) -> bool:
        return self.failure_count == 0

    def observe(self, status: HealthStatus) -> int:
        """Apply one probe outcome.

        Returns:
            Escalation level to dispatch, 0 when nothing should run
        """
        self.cycles += 1
        self.last_status = status
        if status.healthy:
            if self.failure_count > 0:
                self.recoveries += 1
            self.failure_count = 0
            return 0
        self.failure_count += 1
        return self.escalation_level


class HealthMonitor:
    """Periodic probe loop driving the recovery dispatcher."""

    def __init__(
        self,
        probe: HealthProbe,
        dispatcher: RecoveryDispatcher,
        interval_s: float = 30.0,
        stop_event: Optional[threading.Event] = None,
    ):
        self.probe = probe
        self.dispatcher = dispatcher
        self.interval_s = interval_s
        self.state = MonitorState()
        self._stop = stop_event or threading.Event()

    def stop(self) -> None:
        """Ask the loop to exit after the current cycle."""
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def _probe(self) -> HealthStatus:
        try:
            return self.probe()
        except Exception as e:
            logger.error(f"Health probe crashed: {e}", exc_info=True)
            return HealthStatus(ProbeOutcome.UNREACHABLE, detail=f"probe error: {e}")

    def run_cycle(self) -> HealthStatus:
        """Probe once and react to the outcome."""
        status = self._probe()
        was_degraded = not self.state.stable
        level = self.state.observe(status)

        if status.healthy:
            if was_degraded:
                logger.info("Subject recovered, resetting failure count")
                self.dispatcher.recover()
            else:
                logger.info(f"Health check passed ({status.probe_latency_ms:g}ms)")
            return status

        detail = f": {status.detail}" if status.detail else ""
        logger.warning(
            f"Health check failed ({status.outcome.value}{detail}), "
            f"attempt {self.state.failure_count}, escalation level {level}"
        )
        self.dispatcher.dispatch(level)
        return status

    def run(self, max_cycles: Optional[int] = None) -> MonitorState:
        """Run until stopped, or for ``max_cycles`` cycles.

        The interval is measured from the end of each cycle, and the stop
        token is checked between cycles only.
        """
        logger.info(f"Watchdog started (interval {self.interval_s:g}s)")
        cycles = 0
        while not self._stop.is_set():
            self.run_cycle()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            self._stop.wait(self.interval_s)
        logger.info("Watchdog stopped")
        return self.state
