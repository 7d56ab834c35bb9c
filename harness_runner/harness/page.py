"""Harness page wiring QUnit's runEnd event to a host binding."""

import html
import re
from string import Template
from urllib.parse import quote

DEFAULT_BINDING = "HARNESS_RUN_END"

BINDING_NAME_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

HARNESS_TEMPLATE = Template("""\
<!doctype html>
<html>

<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width">
  <title>Test Suite</title>
  <link rel="icon" href="data:">
  <link rel="stylesheet" href="/qunit.css">
</head>

<body>
  <div id="qunit"></div>
  <div id="qunit-fixture"></div>
  <script src="/qunit.js"></script>
  <script>
    if (window.$binding) {
      QUnit.on('runEnd', runEnd => {
        window.$binding(JSON.stringify(runEnd));
      });
    }
  </script>
  <script type="module" src="$bundle_src"></script>
</body>

</html>
""")


def is_binding_name(name: str) -> bool:
    """Whether ``name`` can be used as a global JavaScript function name."""
    return BINDING_NAME_RE.fullmatch(name) is not None


def bundle_url(test_path: str) -> str:
    """URL the harness page loads the bundled test script from."""
    return "/bundle/" + quote(test_path.lstrip("/"))


def render(test_path: str, binding: str = DEFAULT_BINDING) -> str:
    """Render the harness page for a test file.

    Raises:
        ValueError: If ``binding`` is not a valid JavaScript identifier

    """
    if not is_binding_name(binding):
        raise ValueError(f"invalid binding name {binding!r}")
    return HARNESS_TEMPLATE.substitute(
        binding=binding,
        bundle_src=html.escape(bundle_url(test_path)),
    )
