"""Operator-edited generation settings."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from studio.generation.catalog import AlgorithmCatalog
from studio.generation.errors import ParameterNotApplicableError, SettingsError, UnknownAlgorithmError, UnknownGoalError
from studio.generation.models import AlgorithmDescriptor

DEFAULT_GOALS = ("minimize_conflicts", "balanced_schedule", "teacher_preferences")
POLICY_FLAGS = ("allow_back_to_back", "enforce_breaks", "balance_workload", "prioritize_preferences")
POPULATION_FIELDS = ("population_size", "crossover_rate", "mutation_rate")


@dataclass(frozen=True)
class SettingsSnapshot:
  """Settings frozen at submission time; later edits never reach an in-flight job."""

  algorithm: str
  max_iterations: int
  population_size: int
  crossover_rate: float
  mutation_rate: float
  optimization_goals: tuple[str, ...]
  allow_back_to_back: bool
  enforce_breaks: bool
  balance_workload: bool
  prioritize_preferences: bool


def _require_positive_int(name: str, value: Any) -> int:
  if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
    raise SettingsError(f"{name} must be a positive integer.")
  return value


def _require_rate(name: str, value: Any) -> float:
  if isinstance(value, bool) or not isinstance(value, int | float):
    raise SettingsError(f"{name} must be a number.")
  rate = float(value)
  if not math.isfinite(rate) or rate < 0 or rate > 1:
    raise SettingsError(f"{name} must be between 0 and 1.")
  return rate


class GenerationSettings:
  """Mutable configuration for one generation screen."""

  def __init__(self, catalog: AlgorithmCatalog, *, algorithm: str = "genetic", max_iterations: int = 1000, population_size: int = 100, crossover_rate: float = 0.8, mutation_rate: float = 0.1, optimization_goals: Iterable[str] = DEFAULT_GOALS, allow_back_to_back: bool = True, enforce_breaks: bool = True, balance_workload: bool = True, prioritize_preferences: bool = False) -> None:
    self._catalog = catalog
    # Fall back to the first catalog entry when the default is not offered remotely.
    if not catalog.has_algorithm(algorithm):
      algorithm = catalog.algorithms[0].id
    self._algorithm = algorithm
    self._max_iterations = _require_positive_int("max_iterations", max_iterations)
    self._population_size = _require_positive_int("population_size", population_size)
    self._crossover_rate = _require_rate("crossover_rate", crossover_rate)
    self._mutation_rate = _require_rate("mutation_rate", mutation_rate)
    self._goals: list[str] = []
    for goal_id in optimization_goals:
      if goal_id not in self._goals and (not catalog.goals or catalog.has_goal(goal_id)):
        self._goals.append(goal_id)
    self._flags = {"allow_back_to_back": allow_back_to_back, "enforce_breaks": enforce_breaks, "balance_workload": balance_workload, "prioritize_preferences": prioritize_preferences}

  @property
  def algorithm(self) -> str:
    return self._algorithm

  @property
  def descriptor(self) -> AlgorithmDescriptor:
    descriptor = self._catalog.get(self._algorithm)
    if descriptor is None:  # pragma: no cover - guarded by select_algorithm
      raise UnknownAlgorithmError(f"Unknown algorithm '{self._algorithm}'.")
    return descriptor

  @property
  def max_iterations(self) -> int:
    return self._max_iterations

  @property
  def population_size(self) -> int:
    return self._population_size

  @property
  def crossover_rate(self) -> float:
    return self._crossover_rate

  @property
  def mutation_rate(self) -> float:
    return self._mutation_rate

  @property
  def optimization_goals(self) -> tuple[str, ...]:
    return tuple(self._goals)

  def flag(self, name: str) -> bool:
    if name not in self._flags:
      raise SettingsError(f"Unknown policy flag '{name}'.")
    return self._flags[name]

  def select_algorithm(self, algorithm_id: str) -> None:
    if not self._catalog.has_algorithm(algorithm_id):
      raise UnknownAlgorithmError(f"Unknown algorithm '{algorithm_id}'.")
    self._algorithm = algorithm_id

  def set_max_iterations(self, value: int) -> None:
    self._max_iterations = _require_positive_int("max_iterations", value)

  def set_population_size(self, value: int) -> None:
    self._require_population_based("population_size")
    self._population_size = _require_positive_int("population_size", value)

  def set_crossover_rate(self, value: float) -> None:
    self._require_population_based("crossover_rate")
    self._crossover_rate = _require_rate("crossover_rate", value)

  def set_mutation_rate(self, value: float) -> None:
    self._require_population_based("mutation_rate")
    self._mutation_rate = _require_rate("mutation_rate", value)

  def set_flag(self, name: str, value: bool) -> None:
    if name not in self._flags:
      raise SettingsError(f"Unknown policy flag '{name}'.")
    if not isinstance(value, bool):
      raise SettingsError(f"{name} must be a boolean.")
    self._flags[name] = value

  def toggle_goal(self, goal_id: str) -> bool:
    """Flip goal membership; returns whether the goal is now selected."""
    if goal_id in self._goals:
      self._goals.remove(goal_id)
      return False
    self._require_known_goal(goal_id)
    self._goals.append(goal_id)
    return True

  def set_goals(self, goal_ids: Iterable[str]) -> None:
    goals: list[str] = []
    for goal_id in goal_ids:
      self._require_known_goal(goal_id)
      if goal_id not in goals:
        goals.append(goal_id)
    self._goals = goals

  def update(self, changes: dict[str, Any]) -> None:
    """Apply a batch of edits atomically; the algorithm switch lands first so capability checks see it."""
    saved = (self._algorithm, self._max_iterations, self._population_size, self._crossover_rate, self._mutation_rate, list(self._goals), dict(self._flags))
    setters = {"max_iterations": self.set_max_iterations, "population_size": self.set_population_size, "crossover_rate": self.set_crossover_rate, "mutation_rate": self.set_mutation_rate, "optimization_goals": self.set_goals}
    try:
      if "algorithm" in changes:
        self.select_algorithm(changes["algorithm"])
      for name, value in changes.items():
        if name == "algorithm":
          continue
        if name in setters:
          setters[name](value)
        elif name in self._flags:
          self.set_flag(name, value)
        else:
          raise SettingsError(f"Unknown setting '{name}'.")
    except SettingsError:
      self._algorithm, self._max_iterations, self._population_size, self._crossover_rate, self._mutation_rate, self._goals, self._flags = saved
      raise

  def visible_parameters(self) -> list[str]:
    """Hyperparameters the operator may edit for the selected algorithm."""
    visible = ["max_iterations"]
    if self.descriptor.is_population_based:
      visible.extend(POPULATION_FIELDS)
    return visible

  def algorithm_parameters(self) -> dict[str, float]:
    """Settings expressed in the selected algorithm's own parameter names."""
    descriptor = self.descriptor
    applicable = descriptor.applicable_parameters
    parameters: dict[str, float] = {}
    if "maxGenerations" in applicable:
      parameters["maxGenerations"] = self._max_iterations
    elif "maxIterations" in applicable:
      parameters["maxIterations"] = self._max_iterations
    if descriptor.is_population_based:
      parameters["populationSize"] = self._population_size
      parameters["crossoverRate"] = self._crossover_rate
      parameters["mutationRate"] = self._mutation_rate
    return parameters

  def snapshot(self) -> SettingsSnapshot:
    return SettingsSnapshot(algorithm=self._algorithm, max_iterations=self._max_iterations, population_size=self._population_size, crossover_rate=self._crossover_rate, mutation_rate=self._mutation_rate, optimization_goals=tuple(self._goals), **self._flags)

  def _require_population_based(self, name: str) -> None:
    if not self.descriptor.is_population_based:
      raise ParameterNotApplicableError(f"{name} does not apply to algorithm '{self._algorithm}'.")

  def _require_known_goal(self, goal_id: str) -> None:
    # Without a goal catalog any id is accepted; the service validates membership.
    if self._catalog.goals and not self._catalog.has_goal(goal_id):
      raise UnknownGoalError(f"Unknown optimization goal '{goal_id}'.")
