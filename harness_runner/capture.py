"""Capture of the runEnd payload reported by a harness page.

Each job exposes its own uniquely named binding in its browser context. The
harness page calls that binding once with the JSON encoded runEnd summary,
which resolves a single-use future the job is waiting on.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, urlencode, urlparse

from playwright.async_api import BrowserContext, Page, Response
from playwright.async_api import Error as PlaywrightError
from pydantic import ValidationError

from harness_runner.errors import BuildFailedError, CaptureProtocolError
from harness_runner.harness.page import DEFAULT_BINDING
from harness_runner.models.job import TestJob
from harness_runner.models.run_end import RunEnd

log = logging.getLogger(__name__)


def binding_name(job: TestJob) -> str:
    """Binding name unique to a job within a batch."""
    return f"{DEFAULT_BINDING}_{job.job_id}"


def _new_future() -> asyncio.Future[RunEnd]:
    return asyncio.get_running_loop().create_future()


@dataclass(kw_only=True)
class ResultCapture:
    """Single-use channel carrying one job's runEnd payload to the host."""

    job: TestJob
    _future: asyncio.Future[RunEnd] = field(default_factory=_new_future, repr=False)
    # Set as soon as a failed bundle response is seen, before its body arrives
    _build_failed: bool = field(default=False, repr=False)

    @property
    def name(self) -> str:
        """Name of the binding the harness page must call."""
        return binding_name(self.job)

    def harness_url(self, base_url: str) -> str:
        """URL of the harness page wired to this capture."""
        query = urlencode({"binding": self.name})
        return f"{base_url}/test/{quote(self.job.path)}?{query}"

    async def install(self, context: BrowserContext) -> None:
        """Expose the binding to every page of the context."""
        await context.expose_binding(self.name, self._on_binding)

    def watch_bundle(self, page: Page) -> None:
        """Fail the capture when the page's bundle request reports a build error."""
        page.on("response", self._on_response)

    @property
    def done(self) -> bool:
        """Whether a payload or failure was already delivered."""
        return self._future.done()

    def deliver(self, name: str, payload: Any) -> None:
        """Deliver a binding invocation.

        Invocations for other bindings are ignored. Only the first delivery
        completes the capture; later ones are logged and dropped.
        """
        if name != self.name:
            return
        if self._future.done():
            log.warning("Ignoring repeated result for %s", self.job.path)
            return
        if self._build_failed:
            log.debug("Ignoring result for %s after its bundle failed", self.job.path)
            return

        try:
            if not isinstance(payload, str):
                raise TypeError(f"expected a JSON string, got {type(payload).__name__}")
            run_end = RunEnd.model_validate_json(payload)
        except (TypeError, ValidationError) as e:
            self._future.set_exception(
                CaptureProtocolError(
                    f"Malformed runEnd payload from {self.job.path}: {e}"
                )
            )
            return

        self._future.set_result(run_end)

    def fail(self, error: BaseException) -> None:
        """Complete the capture with an error unless it already completed."""
        if not self._future.done():
            self._future.set_exception(error)

    async def wait(self) -> RunEnd:
        """Wait for the payload.

        Raises:
            CaptureProtocolError: If the payload could not be decoded
            BuildFailedError: If the test bundle failed to build

        """
        return await self._future

    def _on_binding(self, source: Any, *args: Any) -> None:
        if len(args) == 1:
            self.deliver(self.name, args[0])
        elif not self._build_failed:
            self.fail(
                CaptureProtocolError(
                    f"Malformed runEnd payload from {self.job.path}: "
                    f"expected one argument, got {len(args)}"
                )
            )

    async def _on_response(self, response: Response) -> None:
        if response.status < 500 or not urlparse(response.url).path.startswith(
            "/bundle/"
        ):
            return
        self._build_failed = True
        try:
            text = await response.text()
        except PlaywrightError as e:
            log.debug("Could not read bundle response for %s: %s", self.job.path, e)
            text = f"HTTP {response.status} {response.status_text}".rstrip()
        try:
            errors = json.loads(text)
        except json.JSONDecodeError:
            errors = None
        if not isinstance(errors, list):
            errors = [{"text": text, "location": None}]
        self.fail(BuildFailedError(self.job.path, errors))
