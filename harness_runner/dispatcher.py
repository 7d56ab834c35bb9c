"""Concurrent dispatch of test jobs and aggregation of their results."""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from harness_runner.errors import CaptureProtocolError, JobError
from harness_runner.models.job import TestJob
from harness_runner.models.result import JobFailure, RunResult
from harness_runner.reporter import Reporter

log = logging.getLogger(__name__)

type Outcome = RunResult | JobFailure


class JobRunner(Protocol):
    """Anything able to run a single test job."""

    async def run(self, job: TestJob) -> RunResult:
        """Run the job and return its result, raising JobError on failure."""
        ...


@dataclass(kw_only=True)
class AggregateStats:
    """Running totals across all jobs of a batch.

    ``record`` never suspends, so completions from concurrent tasks on the
    event loop cannot interleave within an update.
    """

    passed: int = 0
    failed: int = 0
    completed: int = 0
    errors: int = 0

    def record(self, outcome: Outcome) -> None:
        """Add one job outcome to the totals."""
        if isinstance(outcome, JobFailure):
            self.errors += 1
            return
        counts = outcome.run_end.test_counts
        self.passed += counts.passed
        self.failed += counts.failed
        self.completed += 1

    @property
    def ok(self) -> bool:
        """Whether no assertion failed and every job produced a result."""
        return self.failed == 0 and self.errors == 0


@dataclass(frozen=True, kw_only=True)
class Dispatcher:
    """Fans jobs out to a runner and fans their outcomes in to a reporter.

    Outcomes are reported in completion order. ``parallel`` caps the number of
    jobs in flight; ``None`` runs every job at once.
    """

    runner: JobRunner
    reporter: Reporter
    parallel: int | None = None

    async def run(self, paths: Iterable[str]) -> AggregateStats:
        """Run one job per path and report each outcome as it arrives.

        Args:
            paths: Root-relative test file paths

        Returns:
            Totals over every job, all of which have been reported

        Raises:
            CaptureProtocolError: If any harness page sent a malformed payload;
                jobs still in flight are cancelled

        """
        jobs = [TestJob(job_id=i, path=path) for i, path in enumerate(sorted(paths))]
        stats = AggregateStats()
        if not jobs:
            log.info("No test files to run")
            return stats

        log.info("Dispatching %d test file(s)...", len(jobs))
        outcomes: asyncio.Queue[Outcome] = asyncio.Queue()
        slots = asyncio.Semaphore(self.parallel or len(jobs))
        consumer = asyncio.create_task(self._consume(outcomes))

        try:
            async with asyncio.TaskGroup() as tg:
                for job in jobs:
                    tg.create_task(self._run_job(job, slots, stats, outcomes))
        except ExceptionGroup as eg:
            if (protocol := eg.subgroup(CaptureProtocolError)) is not None:
                raise protocol.exceptions[0] from eg
            raise
        finally:
            # Every producer has finished; let the consumer drain and exit
            outcomes.shutdown()
            await consumer

        log.info(
            "Test execution completed: %d result(s), %d job error(s)",
            stats.completed,
            stats.errors,
        )
        return stats

    async def _run_job(
        self,
        job: TestJob,
        slots: asyncio.Semaphore,
        stats: AggregateStats,
        outcomes: asyncio.Queue[Outcome],
    ) -> None:
        outcome: Outcome
        async with slots:
            try:
                outcome = await self.runner.run(job)
            except JobError as e:
                log.error("Error running test %r: %s", job.path, e.message)
                outcome = JobFailure(path=job.path, reason=e.reason, message=e.message)
            except CaptureProtocolError:
                raise
            except Exception as e:
                log.exception("Unexpected error running test %r", job.path)
                outcome = JobFailure(path=job.path, reason="error", message=str(e))

        stats.record(outcome)
        outcomes.put_nowait(outcome)

    async def _consume(self, outcomes: asyncio.Queue[Outcome]) -> None:
        while True:
            try:
                outcome = await outcomes.get()
            except asyncio.QueueShutDown:
                return
            if isinstance(outcome, RunResult):
                self.reporter.write_result(outcome)
            else:
                self.reporter.write_failure(outcome)
