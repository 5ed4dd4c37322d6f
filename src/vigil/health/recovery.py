"""Escalating recovery strategies for an unhealthy subject.

Level 1  gentle intervention: request a status report, narrow the workload
Level 2  task intervention: reduce scope to smaller tasks
Level 3  context reset: discard working context, reload configuration
Level 4  subagent takeover: degraded mode, hand work to a secondary executor

The dispatcher never raises. Actions have overwrite semantics so running the
same level again converges on the same end state.
"""

from __future__ import annotations

import json
import shutil
from enum import IntEnum
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from vigil.logging_config import get_logger
from vigil.notifications import EventType, NotificationLevel, NotificationManager

logger = get_logger(__name__)


class RecoveryStrategy(IntEnum):
    GENTLE_INTERVENTION = 1
    TASK_INTERVENTION = 2
    CONTEXT_RESET = 3
    SUBAGENT_TAKEOVER = 4

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").lower()


class SubjectController(Protocol):
    """Operations the dispatcher can request from the supervised subject."""

    def request_status(self) -> None: ...

    def narrow_workload(self) -> None: ...

    def reduce_scope(self) -> None: ...

    def checkpoint(self) -> None: ...

    def reload_context(self) -> None: ...

    def enter_degraded_mode(self) -> None: ...

    def redistribute(self) -> None: ...

    def resume_normal(self) -> None: ...


class FileSignalController:
    """Signal the subject through JSON files in its control directory.

    The subject polls ``control_dir``; every file states the desired end state
    rather than an incremental command.
    """

    STATUS_REQUEST = "status_request.json"
    WORKLOAD = "workload.json"
    RELOAD = "reload.json"
    MODE = "mode.json"
    CHECKPOINT_DIR = "checkpoint"

    def __init__(self, control_dir: Path, progress_file: Optional[Path] = None):
        self.control_dir = control_dir
        self.progress_file = progress_file

    def _write(self, name: str, payload: dict[str, Any]) -> Path:
        self.control_dir.mkdir(parents=True, exist_ok=True)
        path = self.control_dir / name
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        tmp.replace(path)
        return path

    def request_status(self) -> None:
        self._write(self.STATUS_REQUEST, {"report_status": True})
        logger.info("  - Sending status ping")

    def narrow_workload(self) -> None:
        self._write(self.WORKLOAD, {"mode": "narrowed", "max_parallel_tasks": 1})
        logger.info("  - Requesting progress update")

    def reduce_scope(self) -> None:
        self._write(
            self.WORKLOAD,
            {"mode": "reduced", "max_parallel_tasks": 1, "task_granularity": "small"},
        )
        logger.info("  - Breaking down current task")

    def checkpoint(self) -> None:
        if self.progress_file is None:
            logger.info("  - No progress file configured, skipping checkpoint")
            return
        if not self.progress_file.exists():
            logger.warning(f"  - Progress file not found: {self.progress_file}")
            return
        target_dir = self.control_dir / self.CHECKPOINT_DIR
        target_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self.progress_file, target_dir / self.progress_file.name)
        logger.info("  - Saving current progress")

    def reload_context(self) -> None:
        self._write(self.RELOAD, {"discard_context": True, "reload_configuration": True})
        logger.info("  - Clearing context and reloading configuration")

    def enter_degraded_mode(self) -> None:
        self._write(self.MODE, {"mode": "degraded", "executor": "primary"})
        logger.info("  - Entering degraded mode")

    def redistribute(self) -> None:
        self._write(self.MODE, {"mode": "degraded", "executor": "secondary"})
        logger.info("  - Redistributing work to secondary executor")

    def resume_normal(self) -> None:
        """Withdraw every standing intervention."""
        for name in (self.STATUS_REQUEST, self.WORKLOAD, self.RELOAD, self.MODE):
            (self.control_dir / name).unlink(missing_ok=True)


class RecoveryDispatcher:
    """Map an escalation level to its recovery strategy and run it."""

    def __init__(
        self,
        controller: SubjectController,
        notifications: Optional[NotificationManager] = None,
    ):
        self.controller = controller
        self.notifications = notifications
        self._strategies: dict[RecoveryStrategy, Callable[[], None]] = {
            RecoveryStrategy.GENTLE_INTERVENTION: self._gentle_intervention,
            RecoveryStrategy.TASK_INTERVENTION: self._task_intervention,
            RecoveryStrategy.CONTEXT_RESET: self._context_reset,
            RecoveryStrategy.SUBAGENT_TAKEOVER: self._subagent_takeover,
        }

    def dispatch(self, level: int) -> None:
        """Run the strategy for ``level``; out-of-range levels are ignored."""
        try:
            strategy = RecoveryStrategy(level)
        except ValueError:
            logger.warning(f"Ignoring unknown escalation level: {level}")
            return

        logger.warning(f"Executing Level {int(strategy)} Recovery: {strategy.label}")
        try:
            self._strategies[strategy]()
        except Exception as e:
            logger.error(f"Level {int(strategy)} recovery failed: {e}", exc_info=True)

    def recover(self) -> None:
        """Withdraw interventions once the subject is healthy again."""
        try:
            self.controller.resume_normal()
        except Exception as e:
            logger.error(f"Failed to resume normal operation: {e}", exc_info=True)

    def _gentle_intervention(self) -> None:
        self.controller.request_status()
        self.controller.narrow_workload()

    def _task_intervention(self) -> None:
        self.controller.reduce_scope()

    def _context_reset(self) -> None:
        self.controller.checkpoint()
        self.controller.reload_context()

    def _subagent_takeover(self) -> None:
        self.controller.enter_degraded_mode()
        self.controller.redistribute()
        if self.notifications is not None:
            self.notifications.notify(
                title="Subagent takeover",
                message="Subject unresponsive after repeated recovery; work redistributed",
                event_type=EventType.SUBAGENT_TAKEOVER,
                level=NotificationLevel.CRITICAL,
                escalation_level=int(RecoveryStrategy.SUBAGENT_TAKEOVER),
            )
