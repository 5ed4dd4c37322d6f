"""Tests for the recovery dispatcher and the file signal controller."""

from __future__ import annotations

import json

import pytest

from vigil.health import FileSignalController, RecoveryDispatcher, RecoveryStrategy
from vigil.notifications import EventType, NotificationManager


def snapshot(root):
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def progress_file(temp_dir):
    path = temp_dir / "progress.json"
    path.write_text(json.dumps({"task": "migrate", "done": 3}), encoding="utf-8")
    return path


@pytest.fixture
def controller(temp_dir, progress_file):
    return FileSignalController(temp_dir / "control", progress_file)


class TestFileSignalController:
    def test_level_one_requests_status_and_narrows(self, controller):
        RecoveryDispatcher(controller).dispatch(1)

        control = controller.control_dir
        assert json.loads((control / "status_request.json").read_text()) == {"report_status": True}
        assert json.loads((control / "workload.json").read_text())["mode"] == "narrowed"

    def test_level_two_only_reduces_scope(self, controller):
        RecoveryDispatcher(controller).dispatch(2)

        control = controller.control_dir
        assert json.loads((control / "workload.json").read_text())["mode"] == "reduced"
        assert not (control / "checkpoint").exists()

    def test_checkpoint_first_taken_at_level_three(self, controller, progress_file):
        dispatcher = RecoveryDispatcher(controller)
        dispatcher.dispatch(1)
        dispatcher.dispatch(2)
        assert not (controller.control_dir / "checkpoint").exists()

        dispatcher.dispatch(3)

        saved = controller.control_dir / "checkpoint" / "progress.json"
        assert saved.read_bytes() == progress_file.read_bytes()

    def test_level_three_checkpoints_then_reloads(self, controller):
        RecoveryDispatcher(controller).dispatch(3)

        control = controller.control_dir
        assert (control / "checkpoint" / "progress.json").exists()
        assert json.loads((control / "reload.json").read_text())["discard_context"] is True

    def test_level_four_redistributes(self, controller):
        RecoveryDispatcher(controller).dispatch(4)

        mode = json.loads((controller.control_dir / "mode.json").read_text())
        assert mode == {"executor": "secondary", "mode": "degraded"}

    def test_checkpoint_without_progress_file(self, temp_dir):
        controller = FileSignalController(temp_dir / "control")

        RecoveryDispatcher(controller).dispatch(3)

        assert not (temp_dir / "control" / "checkpoint").exists()
        assert (temp_dir / "control" / "reload.json").exists()

    def test_resume_normal_withdraws_interventions(self, controller):
        dispatcher = RecoveryDispatcher(controller)
        for level in (1, 3, 4):
            dispatcher.dispatch(level)

        dispatcher.recover()

        remaining = {p.name for p in controller.control_dir.iterdir() if p.is_file()}
        assert remaining == set()


class TestDispatcherIdempotency:
    @pytest.mark.parametrize("level", [1, 2, 3, 4])
    def test_repeated_dispatch_same_end_state(self, temp_dir, progress_file, level):
        once_root = temp_dir / "once"
        twice_root = temp_dir / "twice"

        RecoveryDispatcher(FileSignalController(once_root, progress_file)).dispatch(level)
        twice = RecoveryDispatcher(FileSignalController(twice_root, progress_file))
        twice.dispatch(level)
        twice.dispatch(level)

        assert snapshot(once_root) == snapshot(twice_root)


class TestDispatcherSafety:
    def test_unknown_levels_are_ignored(self, controller):
        dispatcher = RecoveryDispatcher(controller)

        dispatcher.dispatch(0)
        dispatcher.dispatch(5)
        dispatcher.dispatch(-1)

        assert not controller.control_dir.exists()

    def test_action_failure_is_swallowed(self):
        class BrokenController:
            def __getattr__(self, name):
                def fail():
                    raise OSError(f"{name} failed")

                return fail

        dispatcher = RecoveryDispatcher(BrokenController())

        for level in range(1, 5):
            dispatcher.dispatch(level)
        dispatcher.recover()

    def test_level_four_alerts_operator(self, controller):
        notifications = NotificationManager()
        dispatcher = RecoveryDispatcher(controller, notifications)

        dispatcher.dispatch(4)
        dispatcher.dispatch(3)

        assert len(notifications.sent) == 1
        event = notifications.sent[0]
        assert event.event_type == EventType.SUBAGENT_TAKEOVER
        assert event.escalation_level == 4


def test_strategy_labels():
    assert RecoveryStrategy(1).label == "gentle intervention"
    assert RecoveryStrategy.SUBAGENT_TAKEOVER.label == "subagent takeover"
