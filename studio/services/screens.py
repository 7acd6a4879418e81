"""Server-side generation screen instances and their registry."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from studio.config import Settings
from studio.generation.catalog import BUILTIN_ALGORITHMS, BUILTIN_GOALS, AlgorithmCatalog, algorithms_from_payload, goals_from_payload
from studio.generation.models import ValidationSnapshot
from studio.generation.orchestrator import GenerationOrchestrator
from studio.generation.payload import GenerationRequest, TimetableDetails
from studio.generation.settings import GenerationSettings
from studio.generation.validation import read_validation_snapshot, snapshot_from_payload
from studio.services.scheduler_client import SchedulerClient
from studio.utils.ids import generate_screen_id

logger = logging.getLogger(__name__)


class ScreenNotFoundError(KeyError):
  """No open screen has the requested id."""


class GenerationScreen:
  """One operator's generation screen: settings, readiness, and its orchestrator."""

  def __init__(self, screen_id: str, client: SchedulerClient, catalog: AlgorithmCatalog, validation: ValidationSnapshot, orchestrator: GenerationOrchestrator, *, details: TimetableDetails | None = None, load_errors: list[str] | None = None) -> None:
    self.screen_id = screen_id
    self.catalog = catalog
    self.settings = GenerationSettings(catalog)
    self.details = details or TimetableDetails()
    self.validation = validation
    self.orchestrator = orchestrator
    self.load_errors = list(load_errors or [])
    self._client = client
    self.touched_at = 0.0

  async def refresh_validation(self) -> ValidationSnapshot:
    self.validation = await read_validation_snapshot(self._client)
    return self.validation

  def build_request(self) -> GenerationRequest:
    return GenerationRequest.build(self.details, self.settings.snapshot())

  async def generate(self) -> str | None:
    return await self.orchestrator.request_generation(self.build_request(), self.validation)

  async def regenerate(self) -> str | None:
    return await self.orchestrator.regenerate(self.validation)

  def cancel(self) -> None:
    self.orchestrator.cancel_polling()

  async def close(self) -> None:
    await self.orchestrator.aclose()


class ScreenRegistry:
  """Open generation screens, each owning its orchestrator exclusively."""

  def __init__(self, client: SchedulerClient, *, poll_interval_seconds: float = 2.0, poll_timeout_seconds: float | None = None, idle_ttl_seconds: float | None = None, clock: Callable[[], float] = time.monotonic) -> None:
    self._client = client
    self._poll_interval = poll_interval_seconds
    self._poll_timeout = poll_timeout_seconds
    self._idle_ttl = idle_ttl_seconds
    self._clock = clock
    self._screens: dict[str, GenerationScreen] = {}

  @classmethod
  def from_settings(cls, client: SchedulerClient, settings: Settings) -> ScreenRegistry:
    return cls(client, poll_interval_seconds=settings.poll_interval_seconds, poll_timeout_seconds=settings.poll_timeout_seconds, idle_ttl_seconds=settings.screen_idle_ttl_seconds)

  def __len__(self) -> int:
    return len(self._screens)

  async def open(self, *, details: TimetableDetails | None = None) -> GenerationScreen:
    """Create a screen, loading catalog, goals, and readiness concurrently."""
    await self.prune_idle()
    algorithms_result, goals_result, validation_result = await asyncio.gather(self._client.fetch_algorithm_catalog(), self._client.fetch_optimization_goals(), self._client.fetch_validation_snapshot(), return_exceptions=True)

    load_errors: list[str] = []
    algorithms = _loaded(algorithms_result, "algorithm catalog", load_errors)
    goals = _loaded(goals_result, "optimization goals", load_errors)
    validation_payload = _loaded(validation_result, "validation snapshot", load_errors)

    # Fall back to built-in reference data so the screen stays usable.
    descriptors = algorithms_from_payload(algorithms) if algorithms is not None else []
    goal_list = goals_from_payload(goals) if goals is not None else []
    catalog = AlgorithmCatalog(descriptors or BUILTIN_ALGORITHMS, goal_list or BUILTIN_GOALS)
    validation = snapshot_from_payload(validation_payload) if validation_payload is not None else ValidationSnapshot.unknown()

    screen_id = generate_screen_id()
    orchestrator = GenerationOrchestrator(self._client, poll_interval_seconds=self._poll_interval, poll_timeout_seconds=self._poll_timeout)
    screen = GenerationScreen(screen_id, self._client, catalog, validation, orchestrator, details=details, load_errors=load_errors)
    screen.touched_at = self._clock()
    self._screens[screen_id] = screen
    logger.info("Opened generation screen %s ready=%s load_errors=%d", screen_id, validation.ready, len(load_errors))
    return screen

  def get(self, screen_id: str) -> GenerationScreen:
    screen = self._screens.get(screen_id)
    if screen is None:
      raise ScreenNotFoundError(screen_id)
    screen.touched_at = self._clock()
    return screen

  async def close(self, screen_id: str) -> None:
    screen = self._screens.pop(screen_id, None)
    if screen is None:
      raise ScreenNotFoundError(screen_id)
    await screen.close()
    logger.info("Closed generation screen %s", screen_id)

  async def prune_idle(self) -> list[str]:
    """Close screens nobody has looked up within the idle TTL; returns their ids."""
    if self._idle_ttl is None:
      return []
    cutoff = self._clock() - self._idle_ttl
    expired = [screen_id for screen_id, screen in self._screens.items() if screen.touched_at <= cutoff]
    for screen_id in expired:
      screen = self._screens.pop(screen_id)
      await screen.close()
      logger.info("Closed idle generation screen %s", screen_id)
    return expired

  async def close_all(self) -> None:
    screens = list(self._screens.values())
    self._screens.clear()
    for screen in screens:
      await screen.close()


def _loaded(result: Any, label: str, load_errors: list[str]) -> Any:
  if isinstance(result, BaseException):
    if not isinstance(result, Exception):
      raise result
    logger.warning("Failed to load %s: %s", label, result)
    load_errors.append(f"Failed to load {label}: {result}")
    return None
  return result
