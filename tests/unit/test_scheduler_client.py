from __future__ import annotations

import json

import httpx
import pytest

from studio.services.scheduler_client import SchedulerClient, SchedulerClientError


def _client(handler) -> SchedulerClient:
  return SchedulerClient("http://scheduler.test/api", token="secret", transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_submit_returns_timetable_id_and_sends_auth() -> None:
  seen: dict = {}

  def handler(request: httpx.Request) -> httpx.Response:
    seen["path"] = request.url.path
    seen["auth"] = request.headers.get("authorization")
    seen["body"] = json.loads(request.content)
    return httpx.Response(201, json={"success": True, "timetableId": "tt-9"})

  async with _client(handler) as client:
    job_id = await client.submit_generation({"name": "Fall"})

  assert job_id == "tt-9"
  assert seen == {"path": "/api/timetables/generate", "auth": "Bearer secret", "body": {"name": "Fall"}}


@pytest.mark.anyio
async def test_submit_accepts_job_id_key() -> None:
  async with _client(lambda request: httpx.Response(200, json={"jobId": "job-3"})) as client:
    assert await client.submit_generation({}) == "job-3"


@pytest.mark.anyio
async def test_submit_without_id_is_an_error() -> None:
  async with _client(lambda request: httpx.Response(200, json={"success": True})) as client:
    with pytest.raises(SchedulerClientError, match="did not return a job id"):
      await client.submit_generation({})


@pytest.mark.anyio
async def test_error_message_comes_from_server_body() -> None:
  async with _client(lambda request: httpx.Response(400, json={"errors": [{"msg": "Name is required"}, {"msg": "Year must be 1-5"}]})) as client:
    with pytest.raises(SchedulerClientError) as exc_info:
      await client.submit_generation({})

  assert exc_info.value.message == "Name is required; Year must be 1-5"
  assert exc_info.value.status_code == 400


@pytest.mark.anyio
async def test_error_items_without_message_fall_back_to_the_item() -> None:
  body = {"errors": [{"param": "name", "location": "body"}, {"message": "Semester is required"}]}
  async with _client(lambda request: httpx.Response(422, json=body)) as client:
    with pytest.raises(SchedulerClientError) as exc_info:
      await client.submit_generation({})

  assert "None" not in exc_info.value.message
  assert "'param': 'name'" in exc_info.value.message
  assert exc_info.value.message.endswith("; Semester is required")


@pytest.mark.anyio
async def test_error_without_body_uses_status_code() -> None:
  async with _client(lambda request: httpx.Response(503, text="upstream down")) as client:
    with pytest.raises(SchedulerClientError, match="status code 503"):
      await client.fetch_validation_snapshot()


@pytest.mark.anyio
async def test_transport_error_is_wrapped() -> None:
  def handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)

  async with _client(handler) as client:
    with pytest.raises(SchedulerClientError, match="connection refused") as exc_info:
      await client.fetch_algorithm_catalog()

  assert exc_info.value.status_code is None


@pytest.mark.anyio
async def test_fetch_job_status_parses_nested_progress() -> None:
  def handler(request: httpx.Request) -> httpx.Response:
    assert request.url.path == "/api/timetables/generate/tt-1/progress"
    return httpx.Response(200, json={"status": "generating", "progress": {"generation": 350, "percentage": 35, "fitness": 0.7, "currentStep": "Evolving"}})

  async with _client(handler) as client:
    job = await client.fetch_job_status("tt-1")

  assert job.job_id == "tt-1"
  assert job.status == "running"
  assert job.progress == 350
  assert job.current_step == "Evolving"


@pytest.mark.anyio
async def test_fetch_job_status_reads_best_fitness_and_step_label() -> None:
  body = {"timetableId": "tt-2", "status": "generating", "progress": {"generation": 120, "bestFitness": 0.82, "status": "Evaluating population"}}
  async with _client(lambda request: httpx.Response(200, json=body)) as client:
    job = await client.fetch_job_status("tt-2")

  assert job.status == "running"
  assert job.progress == 120
  assert job.fitness == 0.82
  assert job.current_step == "Evaluating population"


@pytest.mark.anyio
async def test_fetch_job_status_404_keeps_status_code() -> None:
  async with _client(lambda request: httpx.Response(404, json={"message": "Timetable not found"})) as client:
    with pytest.raises(SchedulerClientError) as exc_info:
      await client.fetch_job_status("missing")

  assert exc_info.value.status_code == 404
  assert exc_info.value.message == "Timetable not found"


@pytest.mark.anyio
async def test_non_object_body_is_rejected() -> None:
  async with _client(lambda request: httpx.Response(200, json=[1, 2])) as client:
    with pytest.raises(SchedulerClientError, match="unexpected response"):
      await client.fetch_optimization_goals()
