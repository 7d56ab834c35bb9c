"""CLI entry point for running QUnit test files in a headless browser."""

import argparse
import asyncio
import contextlib
import logging
import os
import signal
import sys
import time
from collections.abc import Set
from pathlib import Path

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright
from pydantic import ValidationError

from harness_runner.bundler import EsbuildBundler
from harness_runner.config import DEFAULT_INCLUDE, RunnerConfig, default_parallel
from harness_runner.coverage import CoverageRecorder
from harness_runner.discovery import display_prefix, find_tests
from harness_runner.dispatcher import Dispatcher
from harness_runner.errors import CaptureProtocolError, DiscoveryError
from harness_runner.harness import AssetStore, serve
from harness_runner.reporter import Palette, Reporter
from harness_runner.session import SessionOrchestrator
from harness_runner.watch import watch

PROCESS_START = time.monotonic()

EXIT_INTERRUPTED = 130
EXIT_FATAL = 2

log = logging.getLogger("harness_runner")


async def run_batch(
    config: RunnerConfig,
    orchestrator: SessionOrchestrator,
    tests: Set[str] | None = None,
    started: float | None = None,
) -> int:
    """Discover (unless given) and run one batch of tests, returning the exit code."""
    started = time.monotonic() if started is None else started
    if tests is None:
        tests = await find_tests(config.root, config.include, config.exclude)

    reporter = Reporter(palette=Palette.create(config.color), prefix=display_prefix(tests))
    dispatcher = Dispatcher(
        runner=orchestrator, reporter=reporter, parallel=config.parallel
    )
    stats = await dispatcher.run(tests)

    reporter.write_summary(
        stats.passed, stats.failed + stats.errors, time.monotonic() - started
    )
    return 0 if stats.ok else 1


async def run(config: RunnerConfig) -> int:
    """Run the tests described by ``config`` and return the exit code."""
    task = asyncio.current_task()
    if task is not None:
        with contextlib.suppress(NotImplementedError):
            asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, task.cancel)

    try:
        bundler = EsbuildBundler.from_arg_string(config.root, config.esbuild_args)
    except ValueError as e:
        log.error("%s", e)
        return EXIT_FATAL

    coverage = (
        CoverageRecorder(output_dir=config.root / config.coverage_dir)
        if config.coverage
        else None
    )

    try:
        async with async_playwright() as playwright:
            # Browser startup overlaps with discovery
            browser, tests = await asyncio.gather(
                playwright.chromium.launch(headless=not config.visible),
                find_tests(config.root, config.include, config.exclude),
            )
            async with serve(bundler, AssetStore(), port=config.port) as base_url:
                orchestrator = SessionOrchestrator(
                    browser=browser,
                    base_url=base_url,
                    timeout=config.timeout,
                    keep_alive=config.keep_running,
                    coverage=coverage,
                )
                try:
                    exit_code = await run_batch(
                        config, orchestrator, tests, started=PROCESS_START
                    )

                    if config.watch:
                        await watch(
                            config.root,
                            lambda: _rerun(config, orchestrator),
                            ignore_paths=[config.root / config.coverage_dir],
                        )
                    elif config.keep_running:
                        print("Keeping browser running as requested, press Ctrl-C to quit.")
                        await asyncio.Event().wait()
                finally:
                    await orchestrator.close_kept()
                    await browser.close()
    except DiscoveryError as e:
        log.error("Test discovery failed: %s", e)
        return EXIT_FATAL
    except CaptureProtocolError as e:
        log.critical("%s", e)
        return EXIT_FATAL
    except PlaywrightError as e:
        log.error("Browser failure: %s", e)
        return EXIT_FATAL
    except OSError as e:
        log.error("Could not start harness server: %s", e)
        return EXIT_FATAL

    return exit_code


async def _rerun(config: RunnerConfig, orchestrator: SessionOrchestrator) -> int:
    await orchestrator.close_kept()
    try:
        return await run_batch(config, orchestrator)
    except DiscoveryError as e:
        log.error("Test discovery failed: %s", e)
        return EXIT_FATAL


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="Run QUnit test files in a headless browser"
    )
    parser.add_argument(
        "include",
        nargs="*",
        help=f"Globs to include (default: {' '.join(DEFAULT_INCLUDE)})",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=Path.cwd(),
        help="Root directory",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Globs to exclude (repeatable)",
    )
    parser.add_argument(
        "--esbuild",
        default="",
        help="esbuild arguments (as single string argument)",
    )
    parser.add_argument(
        "--coverage",
        action="store_true",
        help="Enable code coverage",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=60.0,
        help="Timeout in seconds for each test file",
    )
    parser.add_argument(
        "--parallel",
        type=int,
        default=default_parallel(),
        help="Number of parallel tests",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Watch mode",
    )
    parser.add_argument(
        "--visible",
        action="store_true",
        help="Run visible browser",
    )
    parser.add_argument(
        "--keep-running",
        action="store_true",
        help="Keep browser running after tests",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=0,
        help="Use specific port for internal server",
    )
    return parser


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    try:
        config = RunnerConfig(
            root=args.root.resolve(),
            include=args.include or DEFAULT_INCLUDE,
            exclude=args.exclude,
            esbuild_args=args.esbuild,
            coverage=args.coverage,
            timeout=args.timeout,
            parallel=args.parallel,
            watch=args.watch,
            visible=args.visible,
            keep_running=args.keep_running,
            port=args.port,
            color="NO_COLOR" not in os.environ,
        )
    except ValidationError as e:
        parser.error(str(e))

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        exit_code = asyncio.run(run(config))
    except (KeyboardInterrupt, asyncio.CancelledError):
        exit_code = EXIT_INTERRUPTED
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
