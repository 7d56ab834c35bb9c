"""Runner configuration assembled from command line arguments."""

import os
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_INCLUDE = ("**/*.js", "**/*.ts", "**/*.jsx", "**/*.tsx")


def default_parallel() -> int:
    """Number of concurrent browser sessions when none is configured."""
    return os.cpu_count() or 1


class RunnerConfig(BaseModel):
    """Configuration for a test run."""

    root: Path = Field(default_factory=Path.cwd)
    include: Sequence[str] = DEFAULT_INCLUDE
    exclude: Sequence[str] = ()
    esbuild_args: str = ""
    coverage: bool = False
    coverage_dir: str = "coverage"
    timeout: float = Field(default=60.0, gt=0)
    parallel: int = Field(default_factory=default_parallel, ge=1)
    watch: bool = False
    visible: bool = False
    keep_running: bool = False
    port: int = Field(default=0, ge=0, le=65535)
    # Computed once from NO_COLOR by the CLI
    color: bool = True
