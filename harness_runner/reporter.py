"""Human-readable reporting of test results."""

import sys
from dataclasses import dataclass, field
from typing import TextIO

from harness_runner.models.result import JobFailure, RunResult

PASS_SYMBOL = "✓"
FAIL_SYMBOL = "✗"


@dataclass(frozen=True, kw_only=True)
class Palette:
    """ANSI escape sequences used for output, empty when color is disabled."""

    dim: str = ""
    bold: str = ""
    green: str = ""
    red: str = ""
    reset: str = ""

    @classmethod
    def create(cls, color: bool) -> "Palette":
        """Create the palette for the given color setting."""
        if not color:
            return cls()
        return cls(
            dim="\033[37m",
            bold="\033[1m",
            green="\033[32m",
            red="\033[31m",
            reset="\033[0m",
        )


def format_duration(seconds: float) -> str:
    """Format a duration truncated to milliseconds, e.g. ``850ms`` or ``1m2.5s``."""
    # Epsilon keeps values like 1.2s from truncating to 1199ms
    ms = max(int(seconds * 1000 + 1e-6), 0)
    if ms < 1000:
        return f"{ms}ms"
    minutes, ms = divmod(ms, 60_000)
    secs = f"{ms / 1000:.3f}".rstrip("0").rstrip(".")
    return f"{minutes}m{secs}s" if minutes else f"{secs}s"


@dataclass(kw_only=True)
class Reporter:
    """Writes one line per finished test file and a final summary.

    Paths are shown with the common display prefix removed.
    """

    palette: Palette
    prefix: str = ""
    stream: TextIO = field(default_factory=lambda: sys.stdout)

    def display_path(self, path: str) -> str:
        """Path as shown to the user."""
        return path.removeprefix(self.prefix)

    def result_line(self, result: RunResult) -> str:
        """Format the line for a finished test file."""
        p = self.palette
        counts = result.run_end.test_counts
        duration = format_duration(result.duration)
        path = self.display_path(result.path)
        if result.passed:
            return f"{p.green}{PASS_SYMBOL} {counts.passed} pass {duration} {path}{p.reset}"
        return f"{p.red}{FAIL_SYMBOL} {counts.failed} fail {duration} {path}{p.reset}"

    def failure_line(self, failure: JobFailure) -> str:
        """Format the line for a test file that produced no result."""
        p = self.palette
        path = self.display_path(failure.path)
        return f"{p.red}{FAIL_SYMBOL} {failure.reason} error {path}: {failure.message}{p.reset}"

    def summary_line(self, passed: int, failed: int, elapsed: float) -> str:
        """Format the summary line for the whole batch."""
        p = self.palette
        duration = format_duration(elapsed)
        if failed == 0:
            return f"{p.bold}{p.green}{PASS_SYMBOL} {passed} pass {duration}{p.reset}"
        return f"{p.bold}{p.red}{FAIL_SYMBOL} {failed} fail {duration}{p.reset}"

    def write_result(self, result: RunResult) -> None:
        """Write the line for a finished test file."""
        self._write(self.result_line(result))

    def write_failure(self, failure: JobFailure) -> None:
        """Write the line for a test file that produced no result."""
        self._write(self.failure_line(failure))

    def write_summary(self, passed: int, failed: int, elapsed: float) -> None:
        """Write the separator and summary line."""
        self._write(f"{self.palette.dim}--")
        self._write(self.summary_line(passed, failed, elapsed))

    def _write(self, line: str) -> None:
        self.stream.write(line + "\n")
        self.stream.flush()
