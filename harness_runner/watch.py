"""Re-run test batches when files under the root change."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

from watchfiles import DefaultFilter, awatch

log = logging.getLogger(__name__)


async def watch(
    root: Path,
    run_batch: Callable[[], Awaitable[int]],
    ignore_paths: Sequence[Path] = (),
) -> None:
    """Run ``run_batch`` after every set of file changes under ``root``.

    Runs until cancelled. Changes made while a batch is running are
    collected by the watcher and trigger the next batch.

    Args:
        root: Directory to watch recursively
        run_batch: Coroutine function running discovery and one batch
        ignore_paths: Paths whose changes never trigger a batch, such as
            the coverage output directory

    """
    watch_filter = DefaultFilter(ignore_paths=ignore_paths)
    log.info("Watching %s for changes, press Ctrl-C to quit.", root)

    async for changes in awatch(root, watch_filter=watch_filter):
        log.info("Detected %d change(s), re-running tests", len(changes))
        exit_code = await run_batch()
        log.debug("Batch finished with exit code %d", exit_code)
