"""Harness page server module."""

from harness_runner.harness.assets import AssetStore, AssetUnavailableError
from harness_runner.harness.page import DEFAULT_BINDING, render
from harness_runner.harness.server import create_app, serve

__all__ = [
    "DEFAULT_BINDING",
    "AssetStore",
    "AssetUnavailableError",
    "create_app",
    "render",
    "serve",
]
