"""Discover test files under a root directory using glob patterns."""

import asyncio
import glob
import logging
import re
from collections.abc import Iterable, Sequence
from pathlib import Path, PurePosixPath

from harness_runner.errors import DiscoveryError

log = logging.getLogger(__name__)

GLOB_CHARS = frozenset("*?[")


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a root-relative glob pattern with ``**`` support.

    Raises:
        DiscoveryError: If the pattern is empty, absolute, escapes the root
            or does not compile.

    """
    posix = pattern.replace("\\", "/")
    if not posix:
        raise DiscoveryError("empty glob pattern")
    if posix.startswith("/") or ".." in PurePosixPath(posix).parts:
        raise DiscoveryError(f"pattern {pattern!r} must stay within the root")
    try:
        return re.compile(
            glob.translate(posix, recursive=True, include_hidden=True, seps="/")
        )
    except re.error as e:
        raise DiscoveryError(f"invalid pattern {pattern!r}: {e}") from e


def static_base(pattern: str) -> str:
    """Return the leading directories of a pattern that contain no wildcards."""
    parts = pattern.replace("\\", "/").split("/")[:-1]
    base: list[str] = []
    for part in parts:
        if GLOB_CHARS.intersection(part):
            break
        base.append(part)
    return "/".join(base)


def walk_pattern(
    root: Path, include: re.Pattern[str], base: str, excludes: Sequence[re.Pattern[str]]
) -> set[str]:
    """Walk the root below ``base`` and collect regular files matching ``include``.

    Directories matching an exclude pattern are pruned.
    """
    matches: set[str] = set()
    start = root / base if base else root
    if not start.is_dir():
        return matches

    for dirpath, dirnames, filenames in start.walk():
        rel_dir = dirpath.relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir + "/"

        dirnames[:] = [
            name
            for name in dirnames
            if not any(ex.fullmatch(rel_dir + name) for ex in excludes)
        ]

        for name in filenames:
            rel_path = rel_dir + name
            if any(ex.fullmatch(rel_path) for ex in excludes):
                continue
            if not include.fullmatch(rel_path):
                continue
            if (dirpath / name).is_file(follow_symlinks=False):
                matches.add(rel_path)

    return matches


async def find_tests(
    root: Path, include: Sequence[str], exclude: Sequence[str] = ()
) -> set[str]:
    """Find test files under ``root``.

    Each include pattern is walked concurrently and the matches are merged.

    Args:
        root: Directory the patterns are relative to
        include: Glob patterns selecting test files
        exclude: Glob patterns removing files or whole directories

    Returns:
        Root-relative POSIX paths of the discovered files

    Raises:
        DiscoveryError: If any pattern is invalid or the root is missing

    """
    if not root.is_dir():
        raise DiscoveryError(f"root {str(root)!r} is not a directory")

    excludes = [compile_pattern(pattern) for pattern in exclude]
    walks = [
        asyncio.to_thread(
            walk_pattern, root, compile_pattern(pattern), static_base(pattern), excludes
        )
        for pattern in include
    ]
    results = await asyncio.gather(*walks)

    tests = merge(results)
    log.info("Discovered %d test file(s) under %s", len(tests), root)
    return tests


def merge[T](groups: Iterable[Iterable[T]]) -> set[T]:
    """Merge several groups of items into one set."""
    merged: set[T] = set()
    for group in groups:
        merged.update(group)
    return merged


def longest_common_prefix(paths: Iterable[str]) -> str:
    """Return the longest string prefix shared by all paths."""
    ordered = sorted(paths)
    if not ordered:
        return ""
    first, last = ordered[0], ordered[-1]
    i = 0
    while i < min(len(first), len(last)) and first[i] == last[i]:
        i += 1
    return first[:i]


def display_prefix(paths: Iterable[str]) -> str:
    """Return the common directory prefix to strip from paths in output.

    The raw common prefix is cut back to the nearest enclosing directory, so
    ``tests/a.js`` and ``tests/ab.js`` share ``tests/`` rather than ``tests/a``.
    """
    prefix = longest_common_prefix(paths)
    return prefix[: prefix.rfind("/") + 1]
