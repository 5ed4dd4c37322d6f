from __future__ import annotations

from datetime import datetime

from vigil.gates import ThresholdRegistry
from vigil.gates.report import render_benchmark_report, write_benchmark_report


def test_render_marks_pass_fail_and_recommendations():
    text = render_benchmark_report(
        ThresholdRegistry.default(),
        {"launch_time": 2500.0, "memory_usage": 80.0, "api_response": None},
        datetime(2026, 1, 1, 12, 0, 0),
    )

    assert text.startswith("# Performance Report - 2026-01-01 12:00:00")
    assert "## Launch Time\n- Current: 2500ms\n- Target: <2000ms\n- Status: ❌ FAIL" in text
    assert "## Memory Usage\n- Current: 80MB\n- Target: <100MB\n- Status: ✅ PASS" in text
    assert "- Current: N/A" in text
    assert "- Optimize app launch time" in text
    assert "Reduce memory usage" not in text


def test_render_without_failures():
    text = render_benchmark_report(
        ThresholdRegistry.default(),
        {"launch_time": 1000.0, "memory_usage": 50.0, "api_response": 100.0},
    )

    assert "❌" not in text
    assert "all measured metrics are within target" in text


def test_write_creates_timestamped_file(temp_dir):
    path = write_benchmark_report(
        ThresholdRegistry.default(),
        {"launch_time": 1000.0, "memory_usage": 50.0, "api_response": 100.0},
        temp_dir / "reports",
    )

    assert path.parent == temp_dir / "reports"
    assert path.name.startswith("performance_report_")
    assert path.suffix == ".md"
    assert "## API Performance" in path.read_text(encoding="utf-8")
