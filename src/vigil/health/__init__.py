"""Watchdog: health probes, failure escalation and recovery.

Example usage:

    from vigil.health import HealthMonitor, HttpHealthProbe, RecoveryDispatcher

    monitor = HealthMonitor(
        probe=HttpHealthProbe("http://localhost:8080/health"),
        dispatcher=RecoveryDispatcher(controller),
    )
    monitor.run()
"""

from .liveness import LivenessMarker
from .monitor import MAX_ESCALATION_LEVEL, HealthMonitor, MonitorState, escalation_level
from .probe import (
    CommandHealthProbe,
    HealthProbe,
    HealthStatus,
    HttpHealthProbe,
    ProbeOutcome,
    build_health_probe,
)
from .recovery import (
    FileSignalController,
    RecoveryDispatcher,
    RecoveryStrategy,
    SubjectController,
)

__all__ = [
    "MAX_ESCALATION_LEVEL",
    "CommandHealthProbe",
    "FileSignalController",
    "HealthMonitor",
    "HealthProbe",
    "HealthStatus",
    "HttpHealthProbe",
    "LivenessMarker",
    "MonitorState",
    "ProbeOutcome",
    "RecoveryDispatcher",
    "RecoveryStrategy",
    "SubjectController",
    "build_health_probe",
    "escalation_level",
]
