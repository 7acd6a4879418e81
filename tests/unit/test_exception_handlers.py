"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

import json

import pytest
from starlette.requests import Request

from studio.core.exceptions import _sanitize_validation_errors, generation_exception_handler, global_exception_handler, settings_exception_handler
from studio.generation.errors import JobFailed, NotReadyError, SubmissionError, UnknownGoalError


def _request() -> Request:
  request = Request({"type": "http", "method": "POST", "path": "/v1/screens/abc/generate", "headers": [], "query_string": b""})
  request.state.request_id = "req-1"
  return request


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Ensure validation errors stay JSON-serializable and redact raw request payloads."""
  errors = [{"type": "value_error", "loc": ("body",), "msg": "Value error, Unknown goal 'x'.", "input": {"optimization_goals": ["x"]}, "ctx": {"error": ValueError("Unknown goal 'x'."), "input": {"optimization_goals": ["x"]}}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["ctx"]["error"] == "ValueError: Unknown goal 'x'."
  assert "input" not in sanitized[0]["ctx"]


@pytest.mark.anyio
@pytest.mark.parametrize(("error", "status_code", "kind"), [(NotReadyError(), 409, "not_ready"), (SubmissionError("Scheduler unavailable"), 502, "submission_failed"), (JobFailed(), 409, "job_failed")])
async def test_generation_errors_carry_kind_and_request_id(error, status_code, kind) -> None:
  response = await generation_exception_handler(_request(), error)
  body = json.loads(response.body)
  assert response.status_code == status_code
  assert body == {"detail": error.message, "errorKind": kind, "requestId": "req-1"}


@pytest.mark.anyio
async def test_settings_errors_are_client_errors() -> None:
  response = await settings_exception_handler(_request(), UnknownGoalError("Unknown optimization goal 'x'."))
  assert response.status_code == 422
  assert json.loads(response.body)["errorKind"] == "invalid_settings"


@pytest.mark.anyio
async def test_unhandled_errors_hide_internals() -> None:
  response = await global_exception_handler(_request(), RuntimeError("db password is hunter2"))
  body = json.loads(response.body)
  assert response.status_code == 500
  assert body == {"detail": "Internal Server Error", "requestId": "req-1"}
