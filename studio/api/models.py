from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr

from studio.generation.catalog import ParameterReport, Recommendation
from studio.generation.models import AlgorithmDescriptor, DomainState, OptimizationGoal, ValidationSnapshot
from studio.generation.orchestrator import OrchestratorView
from studio.services.screens import GenerationScreen


class TimetableDetailsModel(BaseModel):
  """Descriptive fields for the generated timetable."""

  name: StrictStr | None = Field(default=None, min_length=1, max_length=150)
  academic_year: StrictStr | None = Field(default=None, min_length=1, examples=["2024-2025"])
  semester: Literal[1, 2] | None = None
  department: StrictStr | None = Field(default=None, min_length=1)
  year: StrictInt | None = Field(default=None, ge=1, le=5)
  model_config = ConfigDict(extra="forbid")


class ScreenCreateRequest(BaseModel):
  details: TimetableDetailsModel | None = None
  model_config = ConfigDict(extra="forbid")


class SettingsUpdateRequest(BaseModel):
  """Partial settings edit; omitted fields stay unchanged."""

  algorithm: StrictStr | None = None
  max_iterations: StrictInt | None = Field(default=None, gt=0)
  population_size: StrictInt | None = Field(default=None, gt=0)
  crossover_rate: float | None = Field(default=None, ge=0, le=1)
  mutation_rate: float | None = Field(default=None, ge=0, le=1)
  optimization_goals: list[StrictStr] | None = None
  allow_back_to_back: StrictBool | None = None
  enforce_breaks: StrictBool | None = None
  balance_workload: StrictBool | None = None
  prioritize_preferences: StrictBool | None = None
  model_config = ConfigDict(extra="forbid")


class ParameterValidationRequest(BaseModel):
  algorithm: StrictStr = Field(min_length=1)
  parameters: dict[str, StrictFloat | StrictInt | StrictStr | StrictBool | None] = Field(default_factory=dict)
  screen_id: StrictStr | None = None
  model_config = ConfigDict(extra="forbid")


class ParameterValidationResponse(BaseModel):
  algorithm: str
  valid: bool
  errors: list[str]
  warnings: list[str]
  estimated_time: str

  @classmethod
  def from_report(cls, report: ParameterReport) -> ParameterValidationResponse:
    return cls(algorithm=report.algorithm, valid=report.valid, errors=report.errors, warnings=report.warnings, estimated_time=report.estimated_time)


class DataSizeRequest(BaseModel):
  courses: StrictInt = Field(ge=0)
  teachers: StrictInt = Field(ge=0)
  classrooms: StrictInt = Field(ge=0)
  model_config = ConfigDict(extra="forbid")


class RecommendationModel(BaseModel):
  algorithm: str
  reason: str
  confidence: str
  estimated_time: str

  @classmethod
  def from_recommendation(cls, item: Recommendation) -> RecommendationModel:
    return cls(algorithm=item.algorithm, reason=item.reason, confidence=item.confidence, estimated_time=item.estimated_time)


class DomainStateModel(BaseModel):
  status: str
  count: int
  issues: int
  blocking: bool

  @classmethod
  def from_state(cls, state: DomainState) -> DomainStateModel:
    return cls(status=state.status, count=state.count, issues=state.issue_count, blocking=state.has_blocking_issues)


class ValidationModel(BaseModel):
  domains: dict[str, DomainStateModel]
  overall_status: str
  ready: bool

  @classmethod
  def from_snapshot(cls, snapshot: ValidationSnapshot) -> ValidationModel:
    return cls(domains={name: DomainStateModel.from_state(state) for name, state in snapshot.domains.items()}, overall_status=snapshot.overall.status, ready=snapshot.ready)


class AlgorithmModel(BaseModel):
  id: str
  name: str
  description: str
  parameters: list[str]
  population_based: bool
  estimated_time: str | None = None
  recommended: bool = False

  @classmethod
  def from_descriptor(cls, descriptor: AlgorithmDescriptor) -> AlgorithmModel:
    return cls(id=descriptor.id, name=descriptor.name, description=descriptor.description, parameters=sorted(descriptor.applicable_parameters), population_based=descriptor.is_population_based, estimated_time=descriptor.estimated_time, recommended=descriptor.recommended)


class GoalModel(BaseModel):
  id: str
  name: str
  description: str

  @classmethod
  def from_goal(cls, goal: OptimizationGoal) -> GoalModel:
    return cls(id=goal.id, name=goal.name, description=goal.description)


class SettingsModel(BaseModel):
  algorithm: str
  max_iterations: int
  population_size: int
  crossover_rate: float
  mutation_rate: float
  optimization_goals: list[str]
  allow_back_to_back: bool
  enforce_breaks: bool
  balance_workload: bool
  prioritize_preferences: bool
  visible_parameters: list[str]


class PhaseModel(BaseModel):
  number: int
  name: str
  description: str
  status: Literal["done", "in_progress", "pending"]


class GenerationModel(BaseModel):
  state: Literal["idle", "submitting", "polling", "completed", "failed"]
  job_id: str | None
  job_status: str | None
  progress: float | None
  job_percentage: float | None
  current_step: str | None
  fitness: float | None
  phase_index: int
  percentage: int
  phases: list[PhaseModel]
  error: str | None
  error_kind: str | None
  can_generate: bool

  @classmethod
  def from_view(cls, view: OrchestratorView, *, ready: bool) -> GenerationModel:
    phases = [PhaseModel(number=item.phase.number, name=item.phase.name, description=item.phase.description, status=item.status) for item in view.phases]
    busy = view.state.value in {"submitting", "polling"}
    return cls(state=view.state.value, job_id=view.job_id, job_status=view.job_status, progress=view.progress, job_percentage=view.job_percentage, current_step=view.current_step, fitness=view.fitness, phase_index=view.phase_index, percentage=view.percentage, phases=phases, error=view.error, error_kind=view.error_kind, can_generate=ready and not busy)


class ScreenResponse(BaseModel):
  """Everything the generation screen renders."""

  screen_id: str
  details: TimetableDetailsModel
  settings: SettingsModel
  validation: ValidationModel
  algorithms: list[AlgorithmModel]
  goals: list[GoalModel]
  generation: GenerationModel
  load_errors: list[str]

  @classmethod
  def from_screen(cls, screen: GenerationScreen) -> ScreenResponse:
    settings = screen.settings
    details = screen.details
    return cls(
      screen_id=screen.screen_id,
      details=TimetableDetailsModel(name=details.name, academic_year=details.academic_year, semester=details.semester, department=details.department, year=details.year),
      settings=SettingsModel(
        algorithm=settings.algorithm,
        max_iterations=settings.max_iterations,
        population_size=settings.population_size,
        crossover_rate=settings.crossover_rate,
        mutation_rate=settings.mutation_rate,
        optimization_goals=list(settings.optimization_goals),
        allow_back_to_back=settings.flag("allow_back_to_back"),
        enforce_breaks=settings.flag("enforce_breaks"),
        balance_workload=settings.flag("balance_workload"),
        prioritize_preferences=settings.flag("prioritize_preferences"),
        visible_parameters=settings.visible_parameters(),
      ),
      validation=ValidationModel.from_snapshot(screen.validation),
      algorithms=[AlgorithmModel.from_descriptor(item) for item in screen.catalog.algorithms],
      goals=[GoalModel.from_goal(item) for item in screen.catalog.goals],
      generation=GenerationModel.from_view(screen.orchestrator.view(), ready=screen.validation.ready),
      load_errors=screen.load_errors,
    )


class GoalToggleResponse(BaseModel):
  goal_id: str
  selected: bool
  optimization_goals: list[str]
