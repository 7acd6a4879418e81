"""Shared fixtures: an in-memory scheduling service and an API client wired to it."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from studio.api.deps import get_screen_registry
from studio.main import app
from studio.services.screens import ScreenRegistry
from tests.fakes import FakeScheduler


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def scheduler() -> FakeScheduler:
  return FakeScheduler()


@pytest.fixture
async def registry(scheduler):
  registry = ScreenRegistry(scheduler, poll_interval_seconds=0, poll_timeout_seconds=None)
  yield registry
  await registry.close_all()


@pytest.fixture
async def async_client(registry):
  app.dependency_overrides[get_screen_registry] = lambda: registry
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  app.dependency_overrides.clear()
