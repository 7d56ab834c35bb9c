"""V8 code coverage collection for harness pages."""

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from playwright.async_api import BrowserContext, CDPSession, Page

from harness_runner.models.job import TestJob

log = logging.getLogger(__name__)


def bundle_entries(result: Sequence[Mapping[str, Any]]) -> Sequence[Mapping[str, Any]]:
    """Keep only coverage of bundled test scripts, dropping QUnit itself."""
    return [
        entry
        for entry in result
        if urlparse(entry.get("url", "")).path.startswith("/bundle/")
    ]


@dataclass(frozen=True, kw_only=True)
class CoverageRecorder:
    """Records precise V8 coverage per page through a Chromium CDP session.

    Reports are written in the ``NODE_V8_COVERAGE`` layout, one file per job,
    so they can be processed with ``c8 report``.
    """

    output_dir: Path

    async def start(self, context: BrowserContext, page: Page) -> CDPSession:
        """Start coverage for a page before it navigates."""
        session = await context.new_cdp_session(page)
        await session.send("Profiler.enable")
        await session.send(
            "Profiler.startPreciseCoverage", {"callCount": True, "detailed": True}
        )
        return session

    async def collect(self, session: CDPSession, job: TestJob) -> Path:
        """Take the coverage recorded so far and write it to disk."""
        taken = await session.send("Profiler.takePreciseCoverage")
        await session.send("Profiler.stopPreciseCoverage")

        path = self.output_dir / f"coverage-{job.job_id}.json"
        report = {"result": bundle_entries(taken.get("result", []))}
        await asyncio.to_thread(self._write, path, report)
        log.debug("Wrote coverage for %s to %s", job.path, path)
        return path

    def _write(self, path: Path, report: Mapping[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(report))
