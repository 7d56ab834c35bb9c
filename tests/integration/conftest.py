"""Fixtures for integration tests."""

import shutil
from pathlib import Path

import pytest


@pytest.fixture
def esbuild() -> str:
    """Path to the esbuild executable, skipping when it is not installed."""
    executable = shutil.which("esbuild")
    if executable is None:
        pytest.skip("esbuild is not installed")
    return executable


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Create a small project with a helper module and two test files."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "math.ts").write_text(
        "export function add(a: number, b: number): number { return a + b; }\n"
    )
    (tmp_path / "tests").mkdir()
    (tmp_path / "tests" / "math.test.ts").write_text(
        'import { add } from "../src/math";\n'
        'QUnit.test("adds", assert => { assert.equal(add(1, 2), 3); });\n'
    )
    (tmp_path / "tests" / "broken.js").write_text("let x y;\n")
    return tmp_path
