"""Run a single test job in its own isolated browser session."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import StrEnum

from playwright.async_api import Browser, BrowserContext, CDPSession, Page
from playwright.async_api import Error as PlaywrightError

from harness_runner.capture import ResultCapture
from harness_runner.coverage import CoverageRecorder
from harness_runner.errors import (
    CoverageError,
    JobTimeoutError,
    NavigationError,
    SessionError,
)
from harness_runner.models.job import TestJob
from harness_runner.models.result import RunResult

log = logging.getLogger(__name__)


class JobState(StrEnum):
    """Lifecycle of a job's browser session."""

    CREATED = "created"
    NAVIGATING = "navigating"
    AWAITING_RESULT = "awaiting_result"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(kw_only=True)
class SessionOrchestrator:
    """Runs test jobs against a shared browser, one isolated context per job.

    Contexts are closed once their job ends. With ``keep_alive`` set, contexts
    of completed jobs stay open for inspection and are tracked in
    ``kept_contexts`` until ``close_kept`` is called.
    """

    browser: Browser
    base_url: str
    timeout: float
    keep_alive: bool = False
    coverage: CoverageRecorder | None = None
    kept_contexts: list[BrowserContext] = field(default_factory=list)

    async def run(self, job: TestJob) -> RunResult:
        """Run one job to completion.

        Args:
            job: The test file to run

        Returns:
            The result reported by the harness page

        Raises:
            JobError: If the session, navigation, build, timeout or coverage
                collection failed
            CaptureProtocolError: If the harness page sent a malformed payload

        """
        self._transition(job, JobState.CREATED)
        try:
            context = await self.browser.new_context()
        except PlaywrightError as e:
            self._transition(job, JobState.FAILED)
            raise SessionError(job.path, str(e)) from e

        keep = False
        try:
            result = await self._drive(job, context)
            keep = self.keep_alive
            return result
        except BaseException:
            self._transition(job, JobState.FAILED)
            raise
        finally:
            if keep:
                self.kept_contexts.append(context)
            else:
                await self._close(job, context)

    async def _drive(self, job: TestJob, context: BrowserContext) -> RunResult:
        capture = ResultCapture(job=job)
        page, cdp = await self._open_page(job, context, capture)

        self._transition(job, JobState.NAVIGATING)
        start = time.monotonic()
        try:
            async with asyncio.timeout(self.timeout):
                try:
                    await page.goto(capture.harness_url(self.base_url))
                except PlaywrightError as e:
                    raise NavigationError(job.path, str(e)) from e

                self._transition(job, JobState.AWAITING_RESULT)
                run_end = await capture.wait()
        except TimeoutError as e:
            raise JobTimeoutError(
                job.path, f"no result within {self.timeout:g}s"
            ) from e
        duration = time.monotonic() - start

        if cdp is not None and self.coverage is not None:
            try:
                await self.coverage.collect(cdp, job)
            except (PlaywrightError, OSError) as e:
                raise CoverageError(job.path, f"could not record coverage: {e}") from e

        self._transition(job, JobState.COMPLETED)
        return RunResult(path=job.path, run_end=run_end, duration=duration)

    async def _open_page(
        self, job: TestJob, context: BrowserContext, capture: ResultCapture
    ) -> tuple[Page, CDPSession | None]:
        try:
            await capture.install(context)
            page = await context.new_page()
            cdp = (
                await self.coverage.start(context, page)
                if self.coverage is not None
                else None
            )
        except PlaywrightError as e:
            raise SessionError(job.path, str(e)) from e

        capture.watch_bundle(page)
        return page, cdp

    async def _close(self, job: TestJob, context: BrowserContext) -> None:
        try:
            await context.close()
        except PlaywrightError as e:
            log.warning("Failed to close browser context for %s: %s", job.path, e)

    async def close_kept(self) -> None:
        """Close every context kept alive for inspection."""
        contexts, self.kept_contexts = self.kept_contexts, []
        for context in contexts:
            try:
                await context.close()
            except PlaywrightError as e:
                log.warning("Failed to close kept browser context: %s", e)

    def _transition(self, job: TestJob, state: JobState) -> None:
        log.debug("Job %d (%s) -> %s", job.job_id, job.path, state)
