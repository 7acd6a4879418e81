"""State machine that drives one timetable generation to completion or failure.

The orchestrator gates submission on the readiness snapshot, submits the
request, and runs a single cooperative polling task until the job reaches a
terminal status. Every submission and every cancellation bumps an epoch
counter; a response is applied only if the epoch and job id it was issued
under are still current, so late answers can never resurrect a cancelled or
finished run.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from studio.generation.errors import GenerationError, GenerationInProgressError, JobFailed, JobNotFoundError, NothingToRegenerateError, NotReadyError, PollingTimeoutError, PollingTransportError, SchedulerClientError, SubmissionError
from studio.generation.models import GenerationJob, ValidationSnapshot
from studio.generation.payload import GenerationRequest
from studio.generation.progress import GENERATION_PHASES, GenerationPhase, PhaseView, phase_views, progress_percentage, project_phase

logger = logging.getLogger(__name__)


class GenerationState(str, Enum):
  IDLE = "idle"
  SUBMITTING = "submitting"
  POLLING = "polling"
  COMPLETED = "completed"
  FAILED = "failed"


BUSY_STATES = frozenset({GenerationState.SUBMITTING, GenerationState.POLLING})


class GenerationGateway(Protocol):
  """The two scheduling-service calls the orchestrator needs."""

  async def submit_generation(self, payload: Mapping[str, Any]) -> str: ...

  async def fetch_job_status(self, job_id: str) -> GenerationJob: ...


@dataclass(frozen=True)
class OrchestratorView:
  """What the presentation layer renders for a generation screen."""

  state: GenerationState
  job_id: str | None
  job_status: str | None
  progress: float | None
  job_percentage: float | None
  current_step: str | None
  fitness: float | None
  phase_index: int
  phase_count: int
  percentage: int
  phases: list[PhaseView]
  error: str | None
  error_kind: str | None


StateListener = Callable[[OrchestratorView], None]


class GenerationOrchestrator:
  """Owns the generation lifecycle for a single screen instance."""

  def __init__(self, gateway: GenerationGateway, *, poll_interval_seconds: float = 2.0, poll_timeout_seconds: float | None = None, phases: Sequence[GenerationPhase] = GENERATION_PHASES, listener: StateListener | None = None) -> None:
    if poll_interval_seconds < 0:
      raise ValueError("poll_interval_seconds must not be negative.")
    self._gateway = gateway
    self._poll_interval = poll_interval_seconds
    self._poll_timeout = poll_timeout_seconds
    self._phases = tuple(phases)
    self._listener = listener
    self._state = GenerationState.IDLE
    self._job: GenerationJob | None = None
    self._job_id: str | None = None
    self._phase_index = 0
    self._last_error: GenerationError | None = None
    self._last_request: GenerationRequest | None = None
    self._poll_task: asyncio.Task[None] | None = None
    self._epoch = 0
    # Epoch of the submission still awaiting its acknowledgement, if any.
    self._pending_submit: int | None = None
    self._fetch_lock = asyncio.Lock()

  @property
  def state(self) -> GenerationState:
    return self._state

  @property
  def job_id(self) -> str | None:
    return self._job_id

  @property
  def job(self) -> GenerationJob | None:
    return self._job

  @property
  def phase_index(self) -> int:
    return self._phase_index

  @property
  def last_error(self) -> GenerationError | None:
    return self._last_error

  @property
  def last_request(self) -> GenerationRequest | None:
    return self._last_request

  @property
  def is_busy(self) -> bool:
    return self._state in BUSY_STATES

  @property
  def is_polling(self) -> bool:
    return self._poll_task is not None and not self._poll_task.done()

  def view(self) -> OrchestratorView:
    phase_count = len(self._phases)
    return OrchestratorView(
      state=self._state,
      job_id=self._job_id,
      job_status=self._job.status if self._job else None,
      progress=self._job.progress if self._job else None,
      job_percentage=self._job.percentage if self._job else None,
      current_step=self._job.current_step if self._job else None,
      fitness=self._job.fitness if self._job else None,
      phase_index=self._phase_index,
      phase_count=phase_count,
      percentage=progress_percentage(self._phase_index, phase_count),
      phases=phase_views(self._phase_index, self._phases),
      error=self._last_error.message if self._last_error else None,
      error_kind=self._last_error.kind if self._last_error else None,
    )

  async def request_generation(self, request: GenerationRequest, readiness: ValidationSnapshot) -> str | None:
    """Submit a generation job and start polling it.

    Returns the job id, or None when the run was cancelled while the
    submission was in flight.
    """
    if self.is_busy:
      raise GenerationInProgressError()

    if not readiness.overall.ready:
      error = NotReadyError()
      self._last_error = error
      self._notify()
      logger.info("Generation blocked by readiness gate")
      raise error

    # A fresh attempt from a terminal state starts from clean local markers.
    self._reset_markers()
    self._epoch += 1
    epoch = self._epoch
    self._pending_submit = epoch
    self._last_request = request
    self._transition(GenerationState.SUBMITTING)

    payload = request.to_payload()
    logger.info("Submitting generation algorithm=%s department=%s semester=%s", request.settings.algorithm, request.department, request.semester)
    try:
      job_id = await self._gateway.submit_generation(payload)
    except SchedulerClientError as exc:
      if epoch != self._epoch:
        logger.info("Discarding submission failure for a cancelled run: %s", exc.message)
        self._abandon_submission(epoch)
        return None
      self._pending_submit = None
      error = SubmissionError(exc.message)
      self._last_error = error
      self._transition(GenerationState.IDLE)
      raise error from exc

    if epoch != self._epoch:
      logger.info("Discarding acknowledgement for cancelled run job_id=%s", job_id)
      self._abandon_submission(epoch)
      return None

    self._pending_submit = None
    self._job_id = job_id
    self._transition(GenerationState.POLLING)
    self._poll_task = asyncio.create_task(self._poll_loop(epoch, job_id), name=f"generation-poll-{job_id}")
    return job_id

  async def poll_once(self, job_id: str) -> GenerationJob | None:
    """Fetch the job once and apply the result; returns None if it was discarded.

    Status fetches are serialized with the background loop, so calling this
    while polling never puts a second request in flight.
    """
    return await self._tick(self._epoch, job_id)

  def cancel_polling(self) -> None:
    """Stop polling without touching the current state. Safe to call repeatedly."""
    self._stop_polling()

  async def regenerate(self, readiness: ValidationSnapshot) -> str | None:
    """Repeat the last submitted request as a new job."""
    request = self._last_request
    if request is None:
      raise NothingToRegenerateError()
    self.cancel_polling()
    self._reset_markers()
    self._transition(GenerationState.IDLE)
    return await self.request_generation(request, readiness)

  async def join(self) -> None:
    """Wait until the current polling task ends."""
    task = self._poll_task
    if task is None:
      return
    try:
      await task
    except asyncio.CancelledError:
      # Only swallow the cancellation of the polling task, not of the caller.
      if not task.cancelled():
        raise

  async def aclose(self) -> None:
    task = self._poll_task
    self.cancel_polling()
    if task is not None and not task.done():
      try:
        await task
      except asyncio.CancelledError:
        if not task.cancelled():
          raise

  async def _poll_loop(self, epoch: int, job_id: str) -> None:
    deadline = time.monotonic() + self._poll_timeout if self._poll_timeout is not None else None
    try:
      while epoch == self._epoch:
        await asyncio.sleep(self._poll_interval)
        if epoch != self._epoch:
          return
        job = await self._tick(epoch, job_id)
        if job is None or job.is_terminal or epoch != self._epoch:
          return
        if deadline is not None and time.monotonic() >= deadline:
          self._fail(epoch, PollingTimeoutError(f"Timetable generation did not finish within {self._poll_timeout:g} seconds."))
          return
    except Exception as exc:
      # Nothing awaits this task, so unexpected failures must land on the screen state.
      logger.error("Polling loop for job %s crashed", job_id, exc_info=True)
      if self._is_current(epoch, job_id):
        self._stop_polling()
        self._last_error = PollingTransportError(str(exc) or type(exc).__name__)
        self._transition(GenerationState.IDLE)

  async def _tick(self, epoch: int, job_id: str) -> GenerationJob | None:
    try:
      async with self._fetch_lock:
        if not self._is_current(epoch, job_id):
          return None
        job = await self._gateway.fetch_job_status(job_id)
    except SchedulerClientError as exc:
      if not self._is_current(epoch, job_id):
        logger.debug("Discarding stale poll failure job_id=%s", job_id)
        return None
      error_cls = JobNotFoundError if exc.status_code == 404 else PollingTransportError
      logger.warning("Polling job %s failed: %s", job_id, exc.message)
      self._stop_polling()
      self._last_error = error_cls(exc.message)
      self._transition(GenerationState.IDLE)
      return None

    if not self._is_current(epoch, job_id) or job.job_id != job_id:
      logger.debug("Discarding stale poll response job_id=%s", job_id)
      return None

    self._job = job
    if job.is_completed:
      self._stop_polling()
      self._phase_index = len(self._phases)
      logger.info("Generation job %s completed", job_id)
      self._transition(GenerationState.COMPLETED)
    elif job.is_failed:
      logger.warning("Generation job %s ended with status %s", job_id, job.status)
      self._fail(epoch, JobFailed())
    else:
      self._phase_index = project_phase(job.progress, len(self._phases))
      self._notify()
    return job

  def _fail(self, epoch: int, error: GenerationError) -> None:
    if epoch != self._epoch:
      return
    self._stop_polling()
    self._last_error = error
    self._transition(GenerationState.FAILED)

  def _abandon_submission(self, epoch: int) -> None:
    # A newer submission owns the state now; only the latest one may release it.
    if self._pending_submit != epoch:
      return
    self._pending_submit = None
    if self._state == GenerationState.SUBMITTING:
      self._transition(GenerationState.IDLE)

  def _is_current(self, epoch: int, job_id: str) -> bool:
    return epoch == self._epoch and job_id == self._job_id and self._state == GenerationState.POLLING

  def _stop_polling(self) -> None:
    self._epoch += 1
    task = self._poll_task
    self._poll_task = None
    # The loop may be stopping itself from inside a tick; it exits on the epoch check instead.
    if task is not None and not task.done() and task is not asyncio.current_task():
      task.cancel()

  def _reset_markers(self) -> None:
    self._job = None
    self._job_id = None
    self._phase_index = 0
    self._last_error = None

  def _transition(self, state: GenerationState) -> None:
    if state != self._state:
      logger.debug("Generation state %s -> %s", self._state.value, state.value)
    self._state = state
    self._notify()

  def _notify(self) -> None:
    if self._listener is not None:
      self._listener(self.view())
