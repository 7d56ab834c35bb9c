"""HTTP server for harness pages, bundles and QUnit assets."""

import json
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import PurePosixPath

from aiohttp import web

from harness_runner.bundler import Bundler
from harness_runner.errors import BuildFailedError
from harness_runner.harness.assets import AssetStore, AssetUnavailableError
from harness_runner.harness.page import DEFAULT_BINDING, is_binding_name, render

log = logging.getLogger(__name__)

BUNDLER_KEY = web.AppKey("bundler", Bundler)
ASSETS_KEY = web.AppKey("assets", AssetStore)

routes = web.RouteTableDef()


def _test_path(request: web.Request) -> str:
    path = request.match_info["path"]
    parts = PurePosixPath(path)
    if not path or parts.is_absolute() or ".." in parts.parts:
        raise web.HTTPNotFound(text=f"no such test: {path!r}")
    return path


@routes.get("/test/{path:.+}")
async def harness_page(request: web.Request) -> web.Response:
    """Serve the harness page for a test file."""
    path = _test_path(request)
    binding = request.query.get("binding", DEFAULT_BINDING)
    if not is_binding_name(binding):
        raise web.HTTPBadRequest(text=f"invalid binding name: {binding!r}")
    return web.Response(text=render(path, binding), content_type="text/html")


@routes.get("/bundle/{path:.+}")
async def bundle(request: web.Request) -> web.Response:
    """Serve the bundled test script, or the build errors with a 500."""
    path = _test_path(request)
    try:
        body = await request.app[BUNDLER_KEY].bundle(path)
    except BuildFailedError as e:
        log.debug("Bundling %s failed: %s", path, e.message)
        return web.Response(
            status=500,
            text=json.dumps(list(e.errors), indent=2),
            content_type="application/json",
        )
    return web.Response(body=body, content_type="text/javascript")


@routes.get("/qunit.js")
@routes.get("/qunit.css")
async def asset(request: web.Request) -> web.Response:
    """Serve a QUnit runtime asset."""
    name = request.path.removeprefix("/")
    store = request.app[ASSETS_KEY]
    try:
        body = await store.get(name)
    except AssetUnavailableError as e:
        log.error("%s", e)
        raise web.HTTPBadGateway(text=str(e)) from e
    return web.Response(body=body, content_type=store.content_type(name))


def create_app(bundler: Bundler, assets: AssetStore) -> web.Application:
    """Create the harness web application."""
    app = web.Application()
    app[BUNDLER_KEY] = bundler
    app[ASSETS_KEY] = assets
    app.add_routes(routes)
    return app


@asynccontextmanager
async def serve(
    bundler: Bundler,
    assets: AssetStore,
    port: int = 0,
    host: str = "127.0.0.1",
) -> AsyncGenerator[str]:
    """Run the harness server for the lifetime of the context.

    Args:
        bundler: Bundler used for ``/bundle/`` requests
        assets: Store serving the QUnit runtime
        port: Port to bind, 0 picks an ephemeral port
        host: Interface to bind

    Yields:
        Base URL of the running server, e.g. ``http://127.0.0.1:41234``

    """
    runner = web.AppRunner(create_app(bundler, assets), access_log=None)
    await runner.setup()
    try:
        site = web.TCPSite(runner, host, port)
        await site.start()
        bound_host, bound_port = runner.addresses[0][:2]
        base_url = f"http://{bound_host}:{bound_port}"
        log.info("Harness server listening on %s", base_url)
        yield base_url
    finally:
        await runner.cleanup()
