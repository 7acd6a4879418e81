"""Error taxonomy for timetable generation."""

from __future__ import annotations

JOB_FAILED_NOTICE = "Timetable generation failed. Please try again."


class GenerationError(Exception):
  """Base class for operator-visible generation failures."""

  kind = "generation_error"

  def __init__(self, message: str) -> None:
    super().__init__(message)
    self.message = message


class NotReadyError(GenerationError):
  """Raised when the readiness gate is closed; no request is sent."""

  kind = "not_ready"

  def __init__(self, message: str = "Please ensure all data is valid before generating timetable.") -> None:
    super().__init__(message)


class GenerationInProgressError(GenerationError):
  """Raised when Generate is pressed while a job is being submitted or polled."""

  kind = "in_progress"

  def __init__(self, message: str = "A timetable generation is already in progress.") -> None:
    super().__init__(message)


class NothingToRegenerateError(GenerationError):
  """Raised when regenerate is requested before any submission."""

  kind = "nothing_to_regenerate"

  def __init__(self, message: str = "No previous generation request to repeat.") -> None:
    super().__init__(message)


class SubmissionError(GenerationError):
  """The scheduling service rejected or never received the generation request."""

  kind = "submission_failed"


class PollingTransportError(GenerationError):
  """A status fetch failed; the polling loop stops instead of retrying."""

  kind = "polling_failed"


class JobNotFoundError(PollingTransportError):
  """The service does not know the polled job."""

  kind = "job_not_found"


class JobFailed(GenerationError):
  """The service gave up on the job and left a non-usable draft."""

  kind = "job_failed"

  def __init__(self, message: str = JOB_FAILED_NOTICE) -> None:
    super().__init__(message)


class PollingTimeoutError(GenerationError):
  """The job did not reach a terminal state before the poll deadline."""

  kind = "timeout"


class SettingsError(ValueError):
  """Invalid edit to generation settings."""


class UnknownAlgorithmError(SettingsError):
  """Algorithm id is not in the catalog."""


class UnknownGoalError(SettingsError):
  """Optimization goal id is not in the goal catalog."""


class ParameterNotApplicableError(SettingsError):
  """The selected algorithm does not declare the edited parameter."""


class SchedulerClientError(Exception):
  """A request to the scheduling service failed; the message is safe to show operators."""

  def __init__(self, message: str, *, status_code: int | None = None) -> None:
    super().__init__(message)
    self.message = message
    self.status_code = status_code
