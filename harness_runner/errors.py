"""Exception hierarchy for test discovery, bundling and job execution."""

from collections.abc import Mapping, Sequence
from typing import Any


class DiscoveryError(Exception):
    """Raised when test discovery cannot run, e.g. for an invalid pattern."""


class CaptureProtocolError(Exception):
    """Raised when the harness page reports a payload the host cannot decode.

    The payload format is owned by the harness page, so a mismatch means the
    harness and the host drifted apart. This is never handled per job.
    """


class JobError(Exception):
    """Base for failures isolated to a single test job."""

    reason = "error"

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class SessionError(JobError):
    """Raised when an isolated browser session cannot be allocated."""

    reason = "session"


class NavigationError(JobError):
    """Raised when the harness page cannot be loaded."""

    reason = "navigation"


class JobTimeoutError(JobError):
    """Raised when a job does not report a result within its timeout."""

    reason = "timeout"


class BuildFailedError(JobError):
    """Raised when the bundler rejects a test file."""

    reason = "build"

    def __init__(self, path: str, errors: Sequence[Mapping[str, Any]]) -> None:
        summary = errors[0].get("text", "build failed") if errors else "build failed"
        super().__init__(path, summary)
        self.errors = errors


class CoverageError(JobError):
    """Raised when coverage for a finished job cannot be collected or written."""

    reason = "coverage"
