"""Bundle test files into browser-loadable ES modules."""

import asyncio
import logging
import re
import shlex
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from harness_runner.errors import BuildFailedError

log = logging.getLogger(__name__)

ERROR_MARKER = "✘ [ERROR] "
LOCATION_RE = re.compile(r"^\s*(?P<file>[^\s:][^:]*):(?P<line>\d+):(?P<column>\d+):\s*$")


class Bundler(ABC):
    """Abstract base for bundlers turning a test file into a script."""

    @abstractmethod
    async def bundle(self, path: str) -> bytes:
        """Bundle a root-relative test file.

        Args:
            path: Test file path relative to the bundler's root

        Returns:
            Bundled JavaScript module source

        Raises:
            BuildFailedError: If the bundler reports errors

        """


@dataclass(frozen=True, kw_only=True)
class EsbuildBundler(Bundler):
    """Bundler backed by the ``esbuild`` executable."""

    root: Path
    extra_args: Sequence[str] = field(default_factory=tuple)
    executable: str = "esbuild"

    @classmethod
    def from_arg_string(cls, root: Path, esbuild_args: str) -> "EsbuildBundler":
        """Create a bundler from a single shell-quoted argument string."""
        try:
            extra_args = tuple(shlex.split(esbuild_args))
        except ValueError as e:
            raise ValueError(f"invalid format for esbuild arguments: {e}") from e
        return cls(root=root, extra_args=extra_args)

    def command(self, path: str) -> Sequence[str]:
        """Build the esbuild command line for a test file.

        The entry point is always passed as a relative path so that a file
        name starting with ``-`` is never read as an option.
        """
        return (
            self.executable,
            f"./{path}",
            *self.extra_args,
            "--bundle",
            "--sourcemap=inline",
            "--format=esm",
            "--log-level=error",
            "--color=false",
        )

    async def bundle(self, path: str) -> bytes:
        """Run esbuild and return the bundle written to stdout."""
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command(path),
                cwd=self.root,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise BuildFailedError(
                path, [{"text": f"{self.executable} not found: {e}", "location": None}]
            ) from e
        stdout, stderr = await process.communicate()

        if process.returncode != 0:
            errors = parse_errors(stderr.decode(errors="replace"))
            log.debug("esbuild failed for %s with %d error(s)", path, len(errors))
            raise BuildFailedError(path, errors)

        return stdout


def parse_errors(output: str) -> Sequence[Mapping[str, Any]]:
    """Parse esbuild's human-readable error log into structured errors.

    Output without any recognizable error marker is returned as a single
    error carrying the full text.
    """
    errors: list[dict[str, Any]] = []
    current: dict[str, Any] | None = None

    for line in output.splitlines():
        if line.startswith(ERROR_MARKER):
            current = {"text": line.removeprefix(ERROR_MARKER).strip(), "location": None}
            errors.append(current)
            continue
        if current is not None and current["location"] is None:
            if match := LOCATION_RE.match(line):
                current["location"] = {
                    "file": match["file"].removeprefix("./"),
                    "line": int(match["line"]),
                    "column": int(match["column"]),
                }

    if not errors and output.strip():
        errors.append({"text": output.strip(), "location": None})

    return errors
