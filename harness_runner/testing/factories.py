"""Test factories for generating test data."""

import json
from typing import Any

from polyfactory import Use
from polyfactory.factories import DataclassFactory
from polyfactory.factories.pydantic_factory import ModelFactory

from harness_runner.models.result import RunResult
from harness_runner.models.run_end import RunEnd, TestCase, TestCounts


class TestCountsFactory(ModelFactory[TestCounts]):
    """Factory for TestCounts of a single passing test."""

    __test__ = False

    passed = 1
    failed = 0
    skipped = 0
    todo = 0
    total = 1


def build_run_end(*, passed: int = 1, failed: int = 0) -> RunEnd:
    """Build a RunEnd with one test case per passed and failed count."""
    tests = [
        TestCase(name=f"passes {i}", full_name=["module", f"passes {i}"], status="passed")
        for i in range(passed)
    ] + [
        TestCase(name=f"fails {i}", full_name=["module", f"fails {i}"], status="failed")
        for i in range(failed)
    ]
    return RunEnd(
        status="failed" if failed else "passed",
        runtime=5,
        test_counts=TestCountsFactory.build(
            passed=passed, failed=failed, total=passed + failed
        ),
        tests=tests,
    )


class RunResultFactory(DataclassFactory[RunResult]):
    """Factory for a passing RunResult."""

    run_end = Use(build_run_end)
    duration = 0.25


def run_end_payload(**overrides: Any) -> str:
    """Encode a camelCase runEnd payload the way the harness page sends it."""
    payload: dict[str, Any] = {
        "fullName": [],
        "runtime": 12,
        "status": "passed",
        "testCounts": {"passed": 1, "failed": 0, "skipped": 0, "todo": 0, "total": 1},
        "tests": [
            {
                "name": "adds",
                "fullName": ["math", "adds"],
                "runtime": 1,
                "status": "passed",
                "errors": [],
            }
        ],
    }
    payload.update(overrides)
    return json.dumps(payload)
