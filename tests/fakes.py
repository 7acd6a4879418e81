"""In-memory stand-ins for the scheduling service."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from studio.generation.models import VALIDATION_DOMAINS, GenerationJob, job_from_payload
from studio.services.scheduler_client import SchedulerClientError


def ready_payload(**overrides: Any) -> dict[str, Any]:
  """Validation payload with every domain completed and the gate open."""
  data: dict[str, Any] = {name: {"status": "completed", "count": 5, "issues": 0} for name in VALIDATION_DOMAINS}
  data["overall"] = {"status": "completed", "ready": True}
  data.update(overrides)
  return {"success": True, "data": data}


class FakeScheduler:
  """Stands in for SchedulerClient; scripts job statuses per job id."""

  def __init__(self) -> None:
    self.validation: Mapping[str, Any] = ready_payload()
    self.algorithms: Mapping[str, Any] | Exception = {"algorithms": []}
    self.goals: Mapping[str, Any] | Exception = {"goals": []}
    self.submitted: list[Mapping[str, Any]] = []
    self.status_calls: list[str] = []
    self.submit_error: SchedulerClientError | None = None
    self.status_error: SchedulerClientError | None = None
    self.job_script: list[dict[str, Any]] = [{"status": "completed", "progress": 700}]
    self._counter = 0

  async def fetch_validation_snapshot(self) -> Mapping[str, Any]:
    return self.validation

  async def fetch_algorithm_catalog(self) -> Mapping[str, Any]:
    if isinstance(self.algorithms, Exception):
      raise self.algorithms
    return self.algorithms

  async def fetch_optimization_goals(self) -> Mapping[str, Any]:
    if isinstance(self.goals, Exception):
      raise self.goals
    return self.goals

  async def submit_generation(self, payload: Mapping[str, Any]) -> str:
    self.submitted.append(payload)
    if self.submit_error is not None:
      raise self.submit_error
    self._counter += 1
    return f"job-{self._counter}"

  async def fetch_job_status(self, job_id: str) -> GenerationJob:
    call_index = sum(1 for item in self.status_calls if item == job_id)
    self.status_calls.append(job_id)
    if self.status_error is not None:
      raise self.status_error
    # Repeat the last scripted answer once the script runs out.
    payload = self.job_script[min(call_index, len(self.job_script) - 1)]
    return job_from_payload(job_id, payload)

  async def aclose(self) -> None:
    return None
