"""Models for test jobs dispatched to the browser."""

from dataclasses import dataclass


@dataclass(frozen=True, kw_only=True)
class TestJob:
    """One discovered test file, executed in its own browser session."""

    __test__ = False

    job_id: int
    path: str
