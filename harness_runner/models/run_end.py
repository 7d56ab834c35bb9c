"""Models for the QUnit ``runEnd`` payload reported by the harness page."""

from collections.abc import Sequence
from typing import Any

from pydantic import Field

from harness_runner.models.base import Model


class TestCounts(Model):
    """Aggregate test counts for a run."""

    __test__ = False

    passed: int = 0
    failed: int = 0
    skipped: int = 0
    todo: int = 0
    total: int = 0


class AssertionReport(Model):
    """A single assertion recorded against a test case."""

    passed: bool
    actual: Any = None
    expected: Any = None
    stack: str | None = None
    todo: bool = False


class TestCase(Model):
    """Outcome of one QUnit test case."""

    __test__ = False

    name: str
    full_name: Sequence[str] = Field(default_factory=list)
    runtime: int = 0
    status: str
    errors: Sequence[AssertionReport] = Field(default_factory=list)


class RunEnd(Model):
    """Summary QUnit emits once all tests in a page have finished."""

    full_name: Sequence[str] = Field(default_factory=list)
    runtime: int = 0
    status: str = Field(..., description='"passed" or any other status')
    test_counts: TestCounts
    tests: Sequence[TestCase] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        """Whether QUnit reported the whole run as passing."""
        return self.status == "passed"
