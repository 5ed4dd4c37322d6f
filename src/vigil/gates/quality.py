"""Quality gate: static analysis and the test suite must both pass."""

from __future__ import annotations

from vigil.collaborators import Analyzer, TestRunner
from vigil.logging_config import get_logger

from .models import GateResult

logger = get_logger(__name__)


class QualityGate:
    """Run the analyzer and the test runner and aggregate their verdicts."""

    GATE_NAME = "quality"

    def __init__(self, analyzer: Analyzer, test_runner: TestRunner):
        self.analyzer = analyzer
        self.test_runner = test_runner

    def evaluate(self) -> GateResult:
        result = GateResult(gate_name=self.GATE_NAME)

        logger.info("Running tests...")
        try:
            tests = self.test_runner.run_tests()
        except Exception as e:
            logger.error(f"Test runner failed: {e}", exc_info=True)
            result.add("tests", False, None, f"test runner error: {e}")
        else:
            result.add("tests", tests.passed, float(tests.executed), tests.message)
            if tests.passed:
                logger.info(f"Tests passed ({tests.executed} executed)")
            else:
                logger.error(f"Tests failed: {tests.message}")

        logger.info("Running static analysis...")
        try:
            analysis = self.analyzer.analyze()
        except Exception as e:
            logger.error(f"Static analysis failed: {e}", exc_info=True)
            result.add("static_analysis", False, None, f"analyzer error: {e}")
        else:
            result.add(
                "static_analysis",
                analysis.passed,
                float(analysis.issue_count),
                analysis.message,
            )
            if analysis.passed:
                logger.info(f"Static analysis passed ({analysis.issue_count} issues)")
            else:
                logger.error(f"Static analysis found {analysis.issue_count} issues")

        return result
