"""Domain models for timetable generation screens."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

JobStatus = Literal["queued", "running", "completed", "draft", "failed"]
DomainStatus = Literal["unknown", "pending", "completed"]
DomainName = Literal["teachers", "classrooms", "programs", "courses", "policies", "calendar"]

VALIDATION_DOMAINS: tuple[DomainName, ...] = ("teachers", "classrooms", "programs", "courses", "policies", "calendar")
POPULATION_PARAMETERS = frozenset({"populationSize", "crossoverRate", "mutationRate"})
FAILED_JOB_STATUSES = frozenset({"draft", "failed"})

_JOB_STATUS_ALIASES = {
  "queued": "queued",
  "pending": "queued",
  "running": "running",
  "generating": "running",
  "completed": "completed",
  "published": "completed",
  "draft": "draft",
  "failed": "failed",
  "error": "failed",
}


@dataclass(frozen=True)
class ValidationIssue:
  """A single issue reported by the validation service."""

  message: str
  severity: str = "warning"

  @property
  def blocking(self) -> bool:
    return self.severity in {"error", "blocking"}


@dataclass(frozen=True)
class DomainState:
  """Readiness of one data domain (teachers, classrooms, ...)."""

  status: DomainStatus = "unknown"
  count: int = 0
  issues: int | tuple[ValidationIssue, ...] = 0

  @property
  def issue_count(self) -> int:
    if isinstance(self.issues, int):
      return self.issues
    return len(self.issues)

  @property
  def has_blocking_issues(self) -> bool:
    # Bare counts are the "minor issues" the service lets generation proceed with.
    if isinstance(self.issues, int):
      return False
    return any(issue.blocking for issue in self.issues)


@dataclass(frozen=True)
class OverallReadiness:
  status: str = "unknown"
  ready: bool = False


@dataclass(frozen=True)
class ValidationSnapshot:
  """Readiness of all six domains plus the aggregate gate."""

  domains: Mapping[DomainName, DomainState]
  overall: OverallReadiness = field(default_factory=OverallReadiness)

  def domain(self, name: DomainName) -> DomainState:
    return self.domains.get(name, DomainState())

  @property
  def ready(self) -> bool:
    return self.overall.ready

  @classmethod
  def unknown(cls) -> ValidationSnapshot:
    """Snapshot used before the service has answered."""
    return cls(domains={name: DomainState() for name in VALIDATION_DOMAINS})


@dataclass(frozen=True)
class ParameterSpec:
  """Tunable hyperparameter declared by an algorithm."""

  name: str
  default: float
  minimum: float
  maximum: float
  description: str = ""


@dataclass(frozen=True)
class AlgorithmDescriptor:
  """Immutable catalog entry for a selectable scheduling algorithm."""

  id: str
  name: str
  description: str = ""
  parameters: Mapping[str, ParameterSpec] = field(default_factory=dict)
  pros: tuple[str, ...] = ()
  cons: tuple[str, ...] = ()
  estimated_time: str | None = None
  complexity: str | None = None
  recommended: bool = False

  @property
  def applicable_parameters(self) -> frozenset[str]:
    return frozenset(self.parameters)

  @property
  def is_population_based(self) -> bool:
    """Whether population size and genetic-style rates apply."""
    return POPULATION_PARAMETERS <= self.applicable_parameters


@dataclass(frozen=True)
class OptimizationGoal:
  id: str
  name: str
  description: str = ""
  priority: str | None = None
  weight: int | None = None


@dataclass(frozen=True)
class GenerationJob:
  """Read-only projection of the remote job, refreshed by polling."""

  job_id: str
  status: JobStatus
  progress: float | None = None
  percentage: float | None = None
  current_step: str | None = None
  fitness: float | None = None

  @property
  def is_completed(self) -> bool:
    return self.status == "completed"

  @property
  def is_failed(self) -> bool:
    return self.status in FAILED_JOB_STATUSES

  @property
  def is_terminal(self) -> bool:
    return self.is_completed or self.is_failed


def normalize_job_status(raw_status: Any) -> JobStatus:
  """Map service status strings onto the job lifecycle."""
  # Unknown values keep the job in the queue so polling continues.
  if isinstance(raw_status, str):
    return _JOB_STATUS_ALIASES.get(raw_status.strip().lower(), "queued")  # type: ignore[return-value]
  return "queued"


def _optional_float(value: Any) -> float | None:
  if isinstance(value, bool):
    return None
  if isinstance(value, int | float):
    return float(value)
  if isinstance(value, str):
    try:
      return float(value)
    except ValueError:
      return None
  return None


def job_from_payload(job_id: str, payload: Mapping[str, Any]) -> GenerationJob:
  """Build a job projection from a progress response."""
  raw_progress = payload.get("progress")
  progress: float | None
  percentage: float | None = None
  current_step: str | None = None
  fitness: float | None = None

  # The service nests iteration counters under `progress`; older builds send a bare number.
  if isinstance(raw_progress, Mapping):
    progress = _optional_float(raw_progress.get("generation"))
    percentage = _optional_float(raw_progress.get("percentage"))
    fitness = _optional_float(raw_progress.get("bestFitness", raw_progress.get("fitness")))
    # `status` inside `progress` is a human-readable step label, not the job status.
    step = raw_progress.get("status", raw_progress.get("currentStep"))
    current_step = step if isinstance(step, str) else None
  else:
    progress = _optional_float(raw_progress)

  return GenerationJob(job_id=job_id, status=normalize_job_status(payload.get("status")), progress=progress, percentage=percentage, current_step=current_step, fitness=fitness)
