"""Models for test execution results."""

from dataclasses import dataclass
from typing import Literal

from harness_runner.models.run_end import RunEnd

type FailureReason = Literal[
    "session", "navigation", "build", "timeout", "coverage", "error"
]


@dataclass(frozen=True, kw_only=True)
class RunResult:
    """Result of running one test file to completion.

    ``duration`` is measured by the host from navigation to payload receipt,
    independent of the runtime QUnit reports.
    """

    path: str
    run_end: RunEnd
    duration: float

    @property
    def passed(self) -> bool:
        """Whether the file's test run passed."""
        return self.run_end.passed


@dataclass(frozen=True, kw_only=True)
class JobFailure:
    """A job that ended without producing a RunResult."""

    path: str
    reason: FailureReason
    message: str
