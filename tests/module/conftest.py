"""Fixtures for module tests running the CLI against real Chromium and esbuild."""

import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Protocol

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

FIXTURES = Path(__file__).parent / "fixtures"


class RunCliFn(Protocol):
    """Protocol for the CLI runner fixture."""

    def __call__(self, *args: str) -> subprocess.CompletedProcess[str]:
        """Run harness-runner with arguments and return the finished process."""


@pytest.fixture(scope="session", autouse=True)
def _require_browser_tooling() -> None:
    """Skip module tests unless esbuild and Playwright's Chromium are available."""
    if shutil.which("esbuild") is None:
        pytest.skip("esbuild is not installed")
    try:
        with sync_playwright() as playwright:
            playwright.chromium.launch().close()
    except PlaywrightError as e:
        pytest.skip(f"Chromium is not available: {e}")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Copy the fixture project so runs may write coverage files."""
    root = tmp_path / "project"
    shutil.copytree(FIXTURES, root)
    return root


@pytest.fixture
def run_cli(project: Path) -> RunCliFn:
    """Run the CLI as a subprocess rooted at the fixture project."""

    def _run(*args: str) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            [sys.executable, "-m", "harness_runner.cli", *args, "--root", str(project)],
            env={**os.environ, "NO_COLOR": "1"},
            capture_output=True,
            text=True,
            timeout=180,
            check=False,
        )

    return _run
