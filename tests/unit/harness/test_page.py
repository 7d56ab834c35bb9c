"""Tests for harness page rendering."""

import pytest

from harness_runner.harness.page import (
    DEFAULT_BINDING,
    bundle_url,
    is_binding_name,
    render,
)


def test_render_loads_framework_and_bundle() -> None:
    """The page loads QUnit and the bundled test script."""
    html = render("tests/should_pass.js")

    assert '<link rel="stylesheet" href="/qunit.css">' in html
    assert '<script src="/qunit.js"></script>' in html
    assert '<script type="module" src="/bundle/tests/should_pass.js"></script>' in html


def test_render_bridges_run_end_to_binding() -> None:
    """runEnd is serialized and passed to the binding, guarded by its presence."""
    html = render("a.js", binding="HARNESS_RUN_END_7")

    assert "if (window.HARNESS_RUN_END_7) {" in html
    assert "QUnit.on('runEnd', runEnd => {" in html
    assert "window.HARNESS_RUN_END_7(JSON.stringify(runEnd));" in html


def test_render_uses_default_binding() -> None:
    """Without a binding name the default callback is wired."""
    assert f"window.{DEFAULT_BINDING}(" in render("a.js")


def test_render_escapes_bundle_path() -> None:
    """Paths are URL-quoted in the script tag."""
    html = render('tests/my "odd" file.js')

    assert 'src="/bundle/tests/my%20%22odd%22%20file.js"' in html


def test_render_rejects_invalid_binding() -> None:
    """Binding names must be JavaScript identifiers."""
    with pytest.raises(ValueError, match="invalid binding name"):
        render("a.js", binding="alert(1)")


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("HARNESS_RUN_END", True),
        ("HARNESS_RUN_END_12", True),
        ("$cb", True),
        ("1abc", False),
        ("a-b", False),
        ("", False),
    ],
)
def test_is_binding_name(name: str, expected: bool) -> None:
    """Accepts only JavaScript identifiers."""
    assert is_binding_name(name) is expected


def test_bundle_url_strips_leading_slash() -> None:
    """Bundle URLs are rooted at /bundle/."""
    assert bundle_url("/tests/a.js") == "/bundle/tests/a.js"
