"""Pytest fixtures for API unit tests.

The app is built exactly as the server builds it, on top of a real
StatusService over temp directories. No browser and no scheduler.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, TypeVar

import pytest
from aiohttp import web

from dashboard_carousel.core.api.controller import APIController
from dashboard_carousel.core.api.server import APIServer
from dashboard_carousel.core.status import StatusService


T = TypeVar("T")

NOW = 1_700_000_100.0


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine synchronously for testing."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def create_test_app(controller: APIController, shots_dir, public_dir=None) -> web.Application:
    """Create the aiohttp application the server would run."""
    server = APIServer(controller, shots_dir=shots_dir, public_dir=public_dir)
    return server.create_app()


@pytest.fixture
def status_service(targets, shots_dir, progress, state_store) -> StatusService:
    return StatusService(targets, shots_dir, progress, state_store, clock=lambda: NOW, environ={})


@pytest.fixture
def controller(status_service: StatusService) -> APIController:
    return APIController(status_service)


@pytest.fixture
def test_app(controller: APIController, shots_dir) -> web.Application:
    return create_test_app(controller, shots_dir)
