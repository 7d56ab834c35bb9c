"""Module tests running harness-runner end to end in headless Chromium."""

import json
from pathlib import Path

import pytest

from .conftest import RunCliFn

pytestmark = pytest.mark.browser


def test_passing_file_exits_zero(run_cli: RunCliFn) -> None:
    """A passing test file reports one pass and exits 0."""
    result = run_cli("tests/should_pass.js")

    assert result.returncode == 0, result.stderr
    assert "✓ 1 pass" in result.stdout
    assert "should_pass.js" in result.stdout
    assert "\033[" not in result.stdout


def test_failing_file_exits_one(run_cli: RunCliFn) -> None:
    """A failing assertion reports one fail and exits 1."""
    result = run_cli("tests/should_fail.js")

    assert result.returncode == 1, result.stderr
    assert "✗ 1 fail" in result.stdout


def test_typescript_file_is_bundled(run_cli: RunCliFn) -> None:
    """TypeScript test files are compiled before running."""
    result = run_cli("tests/a_typescript_file.ts")

    assert result.returncode == 0, result.stderr
    assert "✓ 1 pass" in result.stdout


def test_build_failure_does_not_affect_siblings(run_cli: RunCliFn) -> None:
    """A file that fails to build is reported without stopping other files."""
    result = run_cli("tests/broken.js", "tests/should_pass.js")

    assert result.returncode == 1, result.stderr
    lines = result.stdout.splitlines()
    assert any(line.startswith("✗ build error broken.js") for line in lines)
    assert any(line.startswith("✓ 1 pass") for line in lines)
    assert lines[-2] == "--"
    assert lines[-1].startswith("✗ 1 fail")


def test_sessions_are_isolated(run_cli: RunCliFn) -> None:
    """Globals and storage set by one file are invisible to another."""
    result = run_cli("tests/isolation_*.js", "--parallel", "1")

    assert result.returncode == 0, result.stdout + result.stderr
    assert result.stdout.count("✓ 1 pass") == 2


def test_hanging_file_times_out(run_cli: RunCliFn) -> None:
    """A file that never finishes is failed after the timeout."""
    result = run_cli("tests/hangs.js", "tests/should_pass.js", "--timeout", "3")

    assert result.returncode == 1
    assert "✗ timeout error hangs.js" in result.stdout
    assert "✓ 1 pass" in result.stdout


def test_coverage_is_written(run_cli: RunCliFn, project: Path) -> None:
    """Coverage mode writes one V8 coverage file per test file."""
    result = run_cli("tests/should_pass.js", "--coverage")

    assert result.returncode == 0, result.stderr
    files = list((project / "coverage").glob("coverage-*.json"))
    assert len(files) == 1
    entries = json.loads(files[0].read_text())["result"]
    assert entries
    assert all("/bundle/" in entry["url"] for entry in entries)
