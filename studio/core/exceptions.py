import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from studio.generation.errors import GenerationError, GenerationInProgressError, NothingToRegenerateError, NotReadyError, SchedulerClientError, SettingsError, SubmissionError

logger = logging.getLogger("uvicorn.error")

_GENERATION_STATUS_CODES: dict[type[GenerationError], int] = {
  NotReadyError: status.HTTP_409_CONFLICT,
  GenerationInProgressError: status.HTTP_409_CONFLICT,
  NothingToRegenerateError: status.HTTP_409_CONFLICT,
  SubmissionError: status.HTTP_502_BAD_GATEWAY,
}


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    error_message = str(value)
    if error_message:
      return f"{type(value).__name__}: {error_message}"
    return type(value).__name__
  return str(value)


def _error_payload(detail: Any, *, request_id: str | None = None, error_kind: str | None = None) -> dict[str, Any]:
  payload: dict[str, Any] = {"detail": detail}
  if error_kind:
    payload["errorKind"] = error_kind
  # Attach a request id so operators can correlate reports with server logs.
  if request_id:
    payload["requestId"] = request_id
  return payload


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if "ctx" in scrubbed and isinstance(scrubbed["ctx"], dict):
      scrubbed_ctx = dict(scrubbed["ctx"])
      scrubbed_ctx.pop("input", None)
      scrubbed["ctx"] = scrubbed_ctx

    sanitized.append(_coerce_json_safe(scrubbed))

  return sanitized


def _request_id(request: Request) -> str | None:
  return getattr(request.state, "request_id", None)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Catch unhandled errors without leaking internals."""
  request_id = _request_id(request)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors without leaking payloads."""
  request_id = _request_id(request)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle HTTPExceptions, hiding 5xx details from callers."""
  from studio.config import get_settings

  request_id = _request_id(request)
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))

  if get_settings().log_http_4xx:
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)

  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id))


async def generation_exception_handler(request: Request, exc: GenerationError) -> JSONResponse:
  """Surface generation failures to the operator verbatim."""
  request_id = _request_id(request)
  status_code = _GENERATION_STATUS_CODES.get(type(exc), status.HTTP_409_CONFLICT)
  logger.info("Generation error request_id=%s path=%s kind=%s message=%s", request_id, request.url.path, exc.kind, exc.message)
  return JSONResponse(status_code=status_code, content=_error_payload(exc.message, request_id=request_id, error_kind=exc.kind))


async def settings_exception_handler(request: Request, exc: SettingsError) -> JSONResponse:
  """Reject invalid settings edits as client errors."""
  request_id = _request_id(request)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(str(exc), request_id=request_id, error_kind="invalid_settings"))


async def scheduler_exception_handler(request: Request, exc: SchedulerClientError) -> JSONResponse:
  """Report scheduling-service failures outside a generation run as a bad gateway."""
  request_id = _request_id(request)
  logger.warning("Scheduler call failed request_id=%s path=%s status_code=%s message=%s", request_id, request.url.path, exc.status_code, exc.message)
  return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=_error_payload(exc.message, request_id=request_id, error_kind="scheduler_unavailable"))
