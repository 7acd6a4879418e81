"""Algorithm catalog, optimization goals, and parameter advice."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from studio.generation.models import AlgorithmDescriptor, OptimizationGoal, ParameterSpec

logger = logging.getLogger(__name__)

_CONFIDENCE_ORDER = {"high": 3, "medium": 2, "low": 1}


def _spec(name: str, default: float, minimum: float, maximum: float, description: str) -> tuple[str, ParameterSpec]:
  return name, ParameterSpec(name=name, default=default, minimum=minimum, maximum=maximum, description=description)


BUILTIN_ALGORITHMS: tuple[AlgorithmDescriptor, ...] = (
  AlgorithmDescriptor(
    id="genetic",
    name="Genetic Algorithm",
    description="Best for complex schedules with many constraints",
    parameters=dict(
      [
        _spec("populationSize", 100, 20, 500, "Number of individuals in each generation"),
        _spec("maxGenerations", 1000, 100, 5000, "Maximum number of generations to evolve"),
        _spec("crossoverRate", 0.8, 0.1, 1.0, "Probability of crossover between parents"),
        _spec("mutationRate", 0.1, 0.01, 0.5, "Probability of mutation in offspring"),
        _spec("targetFitness", 0.95, 0.5, 1.0, "Target fitness to stop evolution early"),
      ]
    ),
    pros=("Handles complex constraints", "Good optimization", "Scalable"),
    cons=("Longer generation time", "May need parameter tuning"),
    estimated_time="2-5 minutes",
    complexity="high",
    recommended=True,
  ),
  AlgorithmDescriptor(
    id="backtracking",
    name="Backtracking",
    description="Fast and reliable for smaller datasets",
    parameters=dict(
      [
        _spec("maxDepth", 1000, 100, 10000, "Maximum search depth"),
        _spec("timeout", 300, 60, 1800, "Maximum time in seconds"),
      ]
    ),
    pros=("Fast generation", "Guaranteed solution", "Simple"),
    cons=("May struggle with large datasets", "Less optimization"),
    estimated_time="30 seconds - 2 minutes",
    complexity="medium",
  ),
  AlgorithmDescriptor(
    id="simulated_annealing",
    name="Simulated Annealing",
    description="Good balance between speed and optimization",
    parameters=dict(
      [
        _spec("initialTemperature", 1000, 100, 10000, "Starting temperature for annealing"),
        _spec("coolingRate", 0.95, 0.8, 0.99, "Rate of temperature reduction"),
        _spec("minTemperature", 1, 0.1, 10, "Minimum temperature to stop"),
        _spec("maxIterations", 10000, 1000, 50000, "Maximum iterations per temperature"),
      ]
    ),
    pros=("Good optimization", "Handles local minima", "Flexible"),
    cons=("Requires parameter tuning", "Variable results"),
    estimated_time="1-3 minutes",
    complexity="medium",
  ),
  AlgorithmDescriptor(
    id="hybrid_advanced",
    name="Hybrid Advanced Algorithm",
    description="Hybrid of constraint propagation, simulated annealing and tabu search",
    parameters=dict(
      [
        _spec("maxIterations", 10000, 1000, 50000, "Maximum iterations for optimization"),
        _spec("initialTemperature", 1000, 100, 5000, "Initial temperature for simulated annealing"),
        _spec("coolingRate", 0.95, 0.8, 0.99, "Temperature cooling rate"),
        _spec("tabuListSize", 50, 10, 200, "Size of tabu list for forbidden moves"),
        _spec("domainFilteringStrength", 0.8, 0.1, 1.0, "Strength of domain filtering in CSP"),
      ]
    ),
    pros=("Handles core/elective subjects", "Multi-objective optimization", "Excellent for large-scale timetabling"),
    cons=("Longer computation time for very large datasets", "More complex parameter tuning"),
    estimated_time="3-10 minutes",
    complexity="very high",
    recommended=True,
  ),
)

BUILTIN_GOALS: tuple[OptimizationGoal, ...] = (
  OptimizationGoal("minimize_conflicts", "Minimize Conflicts", "Reduce scheduling conflicts", "high", 10),
  OptimizationGoal("balanced_schedule", "Balanced Schedule", "Distribute classes evenly", "medium", 5),
  OptimizationGoal("teacher_preferences", "Teacher Preferences", "Respect teacher availability", "medium", 4),
  OptimizationGoal("resource_optimization", "Resource Optimization", "Optimize room utilization", "medium", 3),
  OptimizationGoal("student_convenience", "Student Convenience", "Minimize gaps for students", "low", 2),
  OptimizationGoal("travel_time", "Minimize Travel Time", "Reduce travel time between buildings", "low", 1),
)


@dataclass(frozen=True)
class ParameterReport:
  """Outcome of checking hyperparameters against an algorithm's ranges."""

  algorithm: str
  valid: bool
  errors: list[str] = field(default_factory=list)
  warnings: list[str] = field(default_factory=list)
  estimated_time: str = "Unknown"


@dataclass(frozen=True)
class Recommendation:
  algorithm: str
  reason: str
  confidence: str
  estimated_time: str


class AlgorithmCatalog:
  """Selectable algorithms and optimization goals, loaded once per screen."""

  def __init__(self, algorithms: Iterable[AlgorithmDescriptor] = BUILTIN_ALGORITHMS, goals: Iterable[OptimizationGoal] = BUILTIN_GOALS) -> None:
    self._algorithms = {algorithm.id: algorithm for algorithm in algorithms}
    self._goals = {goal.id: goal for goal in goals}
    if not self._algorithms:
      raise ValueError("Algorithm catalog must contain at least one algorithm.")

  @property
  def algorithms(self) -> list[AlgorithmDescriptor]:
    return list(self._algorithms.values())

  @property
  def goals(self) -> list[OptimizationGoal]:
    return list(self._goals.values())

  def get(self, algorithm_id: str) -> AlgorithmDescriptor | None:
    return self._algorithms.get(algorithm_id)

  def has_algorithm(self, algorithm_id: str) -> bool:
    return algorithm_id in self._algorithms

  def has_goal(self, goal_id: str) -> bool:
    return goal_id in self._goals

  def validate_parameters(self, algorithm_id: str, parameters: Mapping[str, Any]) -> ParameterReport:
    """Check parameter values against the algorithm's declared ranges."""
    descriptor = self.get(algorithm_id)
    if descriptor is None:
      return ParameterReport(algorithm=algorithm_id, valid=False, errors=[f"Algorithm '{algorithm_id}' is not supported"])

    errors: list[str] = []
    warnings: list[str] = []
    for name, value in parameters.items():
      spec = descriptor.parameters.get(name)
      if spec is None:
        warnings.append(f"Unknown parameter '{name}' for algorithm '{algorithm_id}'")
        continue
      if isinstance(value, bool) or not isinstance(value, int | float) or math.isnan(value):
        errors.append(f"Parameter '{name}' must be a number")
        continue
      if value < spec.minimum or value > spec.maximum:
        errors.append(f"Parameter '{name}' must be between {spec.minimum:g} and {spec.maximum:g}")

    for name in descriptor.parameters:
      if name not in parameters:
        warnings.append(f"Parameter '{name}' not specified, will use default value")

    return ParameterReport(algorithm=algorithm_id, valid=not errors, errors=errors, warnings=warnings, estimated_time=estimate_time(algorithm_id, parameters))


def estimate_time(algorithm_id: str, parameters: Mapping[str, Any] | None = None) -> str:
  """Rough wall-clock estimate for a run with the given parameters."""
  params = parameters or {}
  if algorithm_id == "genetic":
    population = _number(params.get("populationSize"), 100)
    generations = _number(params.get("maxGenerations"), 1000)
    return f"{max(30, math.ceil(population * generations / 10000))} seconds"
  if algorithm_id == "hybrid_advanced":
    iterations = _number(params.get("maxIterations"), 10000)
    return f"{max(120, math.ceil(iterations / 500) * 20)} seconds"
  if algorithm_id == "backtracking":
    return "30-120 seconds"
  if algorithm_id == "simulated_annealing":
    iterations = _number(params.get("maxIterations"), 10000)
    return f"{max(30, math.ceil(iterations / 1000) * 10)} seconds"
  return "Unknown"


def recommend_algorithms(*, courses: int, teachers: int, classrooms: int) -> list[Recommendation]:
  """Suggest algorithms for a dataset size, most confident first."""
  recommendations: list[Recommendation] = []

  if courses <= 50 and teachers <= 20 and classrooms <= 30:
    recommendations.append(Recommendation("backtracking", "Small dataset - backtracking will be fast and find optimal solution", "high", "30-60 seconds"))

  if courses >= 20:
    recommendations.append(Recommendation("hybrid_advanced", "Advanced algorithm ideal for complex constraints and batch scheduling", "high", "3-10 minutes"))

  if courses >= 30:
    recommendations.append(Recommendation("genetic", "Medium to large dataset - genetic algorithm handles complexity well", "high", "2-5 minutes"))

  if 20 <= courses <= 100:
    recommendations.append(Recommendation("simulated_annealing", "Good balance of speed and optimization for medium datasets", "medium", "1-3 minutes"))

  if not recommendations:
    recommendations.append(Recommendation("hybrid_advanced", "Advanced algorithm suitable for complex timetabling scenarios", "high", "3-10 minutes"))

  # Stable sort keeps insertion order among equally confident entries.
  return sorted(recommendations, key=lambda item: _CONFIDENCE_ORDER.get(item.confidence, 0), reverse=True)


def _number(value: Any, default: float) -> float:
  if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
    return default
  return value


def algorithms_from_payload(payload: Mapping[str, Any]) -> list[AlgorithmDescriptor]:
  """Parse the catalog endpoint body; malformed entries are skipped."""
  raw_algorithms = payload.get("algorithms")
  if not isinstance(raw_algorithms, Sequence) or isinstance(raw_algorithms, str):
    return []

  descriptors: list[AlgorithmDescriptor] = []
  for entry in raw_algorithms:
    if not isinstance(entry, Mapping) or not isinstance(entry.get("id"), str):
      logger.warning("Skipping malformed algorithm entry: %r", entry)
      continue
    parameters: dict[str, ParameterSpec] = {}
    raw_parameters = entry.get("parameters")
    if isinstance(raw_parameters, Mapping):
      for name, raw_spec in raw_parameters.items():
        if not isinstance(raw_spec, Mapping):
          continue
        parameters[name] = ParameterSpec(name=name, default=_as_float(raw_spec.get("default")), minimum=_as_float(raw_spec.get("min")), maximum=_as_float(raw_spec.get("max"), math.inf), description=str(raw_spec.get("description") or ""))
    descriptors.append(
      AlgorithmDescriptor(
        id=entry["id"],
        name=str(entry.get("name") or entry["id"]),
        description=str(entry.get("description") or ""),
        parameters=parameters,
        pros=tuple(str(item) for item in entry.get("pros") or ()),
        cons=tuple(str(item) for item in entry.get("cons") or ()),
        estimated_time=entry.get("estimatedTime"),
        complexity=entry.get("complexity"),
        recommended=bool(entry.get("recommended", False)),
      )
    )
  return descriptors


def goals_from_payload(payload: Mapping[str, Any]) -> list[OptimizationGoal]:
  """Parse the optimization-goals endpoint body."""
  raw_goals = payload.get("goals")
  if not isinstance(raw_goals, Sequence) or isinstance(raw_goals, str):
    return []

  goals: list[OptimizationGoal] = []
  for entry in raw_goals:
    if not isinstance(entry, Mapping) or not isinstance(entry.get("id"), str):
      continue
    weight = entry.get("weight")
    goals.append(OptimizationGoal(id=entry["id"], name=str(entry.get("name") or entry["id"]), description=str(entry.get("description") or ""), priority=entry.get("priority"), weight=weight if isinstance(weight, int) and not isinstance(weight, bool) else None))
  return goals


def _as_float(value: Any, default: float = 0.0) -> float:
  if isinstance(value, bool) or not isinstance(value, int | float):
    return default
  return float(value)
