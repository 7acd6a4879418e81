from __future__ import annotations

import pytest

from studio.generation.orchestrator import GenerationState
from studio.generation.payload import TimetableDetails
from studio.services.scheduler_client import SchedulerClientError
from studio.services.screens import ScreenNotFoundError, ScreenRegistry
from tests.fakes import FakeScheduler, ready_payload


@pytest.mark.anyio
async def test_open_loads_remote_catalog_and_readiness() -> None:
  scheduler = FakeScheduler()
  scheduler.algorithms = {"algorithms": [{"id": "backtracking", "name": "Backtracking", "parameters": {"maxDepth": {"default": 1000, "min": 100, "max": 10000}}}]}
  scheduler.goals = {"goals": [{"id": "minimize_conflicts", "name": "Minimize Conflicts"}]}
  registry = ScreenRegistry(scheduler, poll_interval_seconds=0)

  screen = await registry.open()

  assert [item.id for item in screen.catalog.algorithms] == ["backtracking"]
  assert screen.settings.algorithm == "backtracking"
  assert screen.settings.optimization_goals == ("minimize_conflicts",)
  assert screen.validation.ready is True
  assert screen.load_errors == []
  assert registry.get(screen.screen_id) is screen
  await registry.close_all()


@pytest.mark.anyio
async def test_open_falls_back_to_builtins_when_loads_fail() -> None:
  scheduler = FakeScheduler()
  scheduler.algorithms = SchedulerClientError("catalog offline", status_code=503)
  scheduler.goals = SchedulerClientError("goals offline", status_code=503)
  registry = ScreenRegistry(scheduler, poll_interval_seconds=0)

  screen = await registry.open(details=TimetableDetails(name="Spring"))

  assert screen.catalog.get("genetic") is not None
  assert screen.details.name == "Spring"
  assert screen.load_errors == ["Failed to load algorithm catalog: catalog offline", "Failed to load optimization goals: goals offline"]
  await registry.close_all()


@pytest.mark.anyio
async def test_screens_are_independent_and_close_stops_polling() -> None:
  scheduler = FakeScheduler()
  scheduler.job_script = [{"status": "running", "progress": 100}]
  registry = ScreenRegistry(scheduler, poll_interval_seconds=3600)
  first = await registry.open()
  second = await registry.open()

  await first.generate()

  assert first.orchestrator.state == GenerationState.POLLING
  assert second.orchestrator.state == GenerationState.IDLE
  await registry.close(first.screen_id)
  assert not first.orchestrator.is_polling
  assert len(registry) == 1
  with pytest.raises(ScreenNotFoundError):
    registry.get(first.screen_id)
  await registry.close_all()
  assert len(registry) == 0


@pytest.mark.anyio
async def test_refresh_validation_updates_the_gate() -> None:
  scheduler = FakeScheduler()
  scheduler.validation = ready_payload(teachers={"status": "pending", "count": 0, "issues": 0})
  registry = ScreenRegistry(scheduler)
  screen = await registry.open()
  assert screen.validation.ready is False

  scheduler.validation = ready_payload()
  await screen.refresh_validation()
  assert screen.validation.ready is True
  await registry.close_all()


class _Clock:
  def __init__(self) -> None:
    self.now = 1000.0

  def __call__(self) -> float:
    return self.now


@pytest.mark.anyio
async def test_idle_screens_are_closed_when_the_next_one_opens() -> None:
  scheduler = FakeScheduler()
  scheduler.job_script = [{"status": "running", "progress": 100}]
  clock = _Clock()
  registry = ScreenRegistry(scheduler, poll_interval_seconds=3600, idle_ttl_seconds=60, clock=clock)
  abandoned = await registry.open()
  await abandoned.generate()
  watched = await registry.open()

  clock.now += 45
  registry.get(watched.screen_id)
  clock.now += 30

  assert await registry.prune_idle() == [abandoned.screen_id]
  assert not abandoned.orchestrator.is_polling
  with pytest.raises(ScreenNotFoundError):
    registry.get(abandoned.screen_id)

  clock.now += 61
  await registry.open()
  assert len(registry) == 1
  with pytest.raises(ScreenNotFoundError):
    registry.get(watched.screen_id)
  await registry.close_all()


@pytest.mark.anyio
async def test_without_idle_ttl_screens_stay_open() -> None:
  clock = _Clock()
  registry = ScreenRegistry(FakeScheduler(), idle_ttl_seconds=None, clock=clock)
  screen = await registry.open()

  clock.now += 10**6

  assert await registry.prune_idle() == []
  assert registry.get(screen.screen_id) is screen
  await registry.close_all()
