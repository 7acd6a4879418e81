"""HTTP client for the remote timetable scheduling service."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from studio.config import Settings
from studio.generation.errors import SchedulerClientError
from studio.generation.models import GenerationJob, job_from_payload

logger = logging.getLogger(__name__)

VALIDATE_PATH = "/data/validate"
ALGORITHMS_PATH = "/algorithm/algorithms"
GOALS_PATH = "/algorithm/optimization-goals"
GENERATE_PATH = "/timetables/generate"
PROGRESS_PATH = "/timetables/generate/{job_id}/progress"


def _error_message(response: httpx.Response) -> str:
  """Pull the service's own explanation out of an error response."""
  try:
    body = response.json()
  except ValueError:
    body = None

  if isinstance(body, Mapping):
    for key in ("message", "error", "detail"):
      value = body.get(key)
      if isinstance(value, str) and value.strip():
        return value
    errors = body.get("errors")
    if isinstance(errors, list) and errors:
      messages = [str(item.get("msg") or item.get("message") or item) if isinstance(item, Mapping) else str(item) for item in errors]
      joined = "; ".join(message for message in messages if message)
      if joined:
        return joined

  return f"Request failed with status code {response.status_code}"


class SchedulerClient:
  """Thin async wrapper around the scheduling service endpoints."""

  def __init__(self, base_url: str, *, token: str | None = None, timeout_seconds: float = 10.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
    headers = {"content-type": "application/json"}
    if token:
      headers["authorization"] = f"Bearer {token}"
    self._client = httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout_seconds, transport=transport)

  @classmethod
  def from_settings(cls, settings: Settings) -> SchedulerClient:
    return cls(settings.scheduler_base_url, token=settings.scheduler_token, timeout_seconds=settings.http_timeout_seconds)

  async def __aenter__(self) -> SchedulerClient:
    return self

  async def __aexit__(self, *exc_info: object) -> None:
    await self.aclose()

  async def aclose(self) -> None:
    await self._client.aclose()

  async def _request(self, method: str, path: str, *, json: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
    try:
      response = await self._client.request(method, path, json=json)
    except httpx.HTTPError as exc:
      logger.warning("Scheduler request %s %s failed: %s", method, path, exc)
      raise SchedulerClientError(str(exc) or type(exc).__name__) from exc

    if response.is_error:
      message = _error_message(response)
      logger.warning("Scheduler request %s %s returned %s: %s", method, path, response.status_code, message)
      raise SchedulerClientError(message, status_code=response.status_code)

    try:
      body = response.json()
    except ValueError as exc:
      raise SchedulerClientError("Scheduling service returned a non-JSON response.", status_code=response.status_code) from exc

    if not isinstance(body, Mapping):
      raise SchedulerClientError("Scheduling service returned an unexpected response.", status_code=response.status_code)
    return body

  async def fetch_validation_snapshot(self) -> Mapping[str, Any]:
    return await self._request("GET", VALIDATE_PATH)

  async def fetch_algorithm_catalog(self) -> Mapping[str, Any]:
    return await self._request("GET", ALGORITHMS_PATH)

  async def fetch_optimization_goals(self) -> Mapping[str, Any]:
    return await self._request("GET", GOALS_PATH)

  async def submit_generation(self, payload: Mapping[str, Any]) -> str:
    """Submit a generation request and return the server-assigned job id."""
    body = await self._request("POST", GENERATE_PATH, json=payload)
    job_id = body.get("timetableId") or body.get("jobId")
    if not isinstance(job_id, str) or not job_id:
      raise SchedulerClientError("Scheduling service did not return a job id.")
    logger.info("Generation job %s accepted", job_id)
    return job_id

  async def fetch_job_status(self, job_id: str) -> GenerationJob:
    body = await self._request("GET", PROGRESS_PATH.format(job_id=job_id))
    return job_from_payload(job_id, body)
