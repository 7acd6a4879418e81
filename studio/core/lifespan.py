import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from studio.core.logging import initialize_logging
from studio.services.scheduler_client import SchedulerClient
from studio.services.screens import ScreenRegistry


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and the scheduler client; close every open screen on shutdown."""
  from studio.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("studio.core.lifespan")

  try:
    initialize_logging(settings)
  except RuntimeError:
    # File logging is optional; stdout still works through the default handlers.
    logger.warning("Log file setup failed; continuing with default handlers.", exc_info=True)

  client = SchedulerClient.from_settings(settings)
  registry = ScreenRegistry.from_settings(client, settings)
  app.state.scheduler_client = client
  app.state.screens = registry
  logger.info("Startup complete scheduler=%s poll_interval=%ss poll_timeout=%s", settings.scheduler_base_url, settings.poll_interval_seconds, settings.poll_timeout_seconds)

  try:
    yield
  finally:
    await registry.close_all()
    await client.aclose()
    logger.info("Shutdown complete.")
