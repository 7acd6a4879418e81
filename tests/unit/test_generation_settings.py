from __future__ import annotations

import pytest

from studio.generation.catalog import AlgorithmCatalog
from studio.generation.errors import ParameterNotApplicableError, SettingsError, UnknownAlgorithmError, UnknownGoalError
from studio.generation.models import AlgorithmDescriptor, ParameterSpec
from studio.generation.settings import DEFAULT_GOALS, GenerationSettings


@pytest.fixture
def settings() -> GenerationSettings:
  return GenerationSettings(AlgorithmCatalog())


def test_defaults(settings: GenerationSettings) -> None:
  assert settings.algorithm == "genetic"
  assert settings.max_iterations == 1000
  assert settings.population_size == 100
  assert settings.crossover_rate == 0.8
  assert settings.mutation_rate == 0.1
  assert settings.optimization_goals == DEFAULT_GOALS
  assert settings.flag("allow_back_to_back") is True
  assert settings.flag("prioritize_preferences") is False


def test_population_parameters_visible_only_for_population_based_algorithms(settings: GenerationSettings) -> None:
  assert settings.visible_parameters() == ["max_iterations", "population_size", "crossover_rate", "mutation_rate"]
  settings.select_algorithm("simulated_annealing")
  assert settings.visible_parameters() == ["max_iterations"]


def test_capability_comes_from_declared_parameters() -> None:
  custom = AlgorithmDescriptor(id="swarm", name="Swarm", parameters={name: ParameterSpec(name, 1, 0, 10) for name in ("populationSize", "crossoverRate", "mutationRate", "maxIterations")})
  settings = GenerationSettings(AlgorithmCatalog([custom]))
  assert settings.algorithm == "swarm"
  assert "population_size" in settings.visible_parameters()
  assert settings.algorithm_parameters() == {"maxIterations": 1000, "populationSize": 100, "crossoverRate": 0.8, "mutationRate": 0.1}


def test_population_setter_rejected_for_non_population_algorithm(settings: GenerationSettings) -> None:
  settings.select_algorithm("backtracking")
  with pytest.raises(ParameterNotApplicableError):
    settings.set_population_size(50)
  assert settings.population_size == 100


def test_unknown_algorithm(settings: GenerationSettings) -> None:
  with pytest.raises(UnknownAlgorithmError):
    settings.select_algorithm("quantum")
  assert settings.algorithm == "genetic"


@pytest.mark.parametrize(("setter", "value"), [("set_max_iterations", 0), ("set_max_iterations", True), ("set_population_size", -5), ("set_crossover_rate", 1.5), ("set_mutation_rate", -0.1), ("set_mutation_rate", float("nan"))])
def test_invalid_values_rejected(settings: GenerationSettings, setter: str, value: object) -> None:
  with pytest.raises(SettingsError):
    getattr(settings, setter)(value)


def test_toggle_goal_twice_restores_the_set(settings: GenerationSettings) -> None:
  before = settings.optimization_goals
  assert settings.toggle_goal("travel_time") is True
  assert "travel_time" in settings.optimization_goals
  assert settings.toggle_goal("travel_time") is False
  assert settings.optimization_goals == before


def test_toggle_unknown_goal(settings: GenerationSettings) -> None:
  with pytest.raises(UnknownGoalError):
    settings.toggle_goal("free_lunch")


def test_set_goals_deduplicates(settings: GenerationSettings) -> None:
  settings.set_goals(["travel_time", "minimize_conflicts", "travel_time"])
  assert settings.optimization_goals == ("travel_time", "minimize_conflicts")


def test_update_switches_algorithm_before_checking_capabilities(settings: GenerationSettings) -> None:
  settings.select_algorithm("backtracking")
  settings.update({"population_size": 200, "algorithm": "genetic"})
  assert settings.algorithm == "genetic"
  assert settings.population_size == 200


def test_update_is_atomic(settings: GenerationSettings) -> None:
  with pytest.raises(SettingsError):
    settings.update({"max_iterations": 500, "enforce_breaks": False, "mutation_rate": 4})
  assert settings.max_iterations == 1000
  assert settings.flag("enforce_breaks") is True


def test_update_rejects_unknown_fields(settings: GenerationSettings) -> None:
  with pytest.raises(SettingsError):
    settings.update({"temperature": 3})


def test_snapshot_is_detached_from_later_edits(settings: GenerationSettings) -> None:
  snapshot = settings.snapshot()
  settings.set_max_iterations(42)
  settings.toggle_goal("travel_time")
  assert snapshot.max_iterations == 1000
  assert "travel_time" not in snapshot.optimization_goals


def test_algorithm_parameters_use_algorithm_names(settings: GenerationSettings) -> None:
  assert settings.algorithm_parameters()["maxGenerations"] == 1000
  settings.select_algorithm("simulated_annealing")
  assert settings.algorithm_parameters() == {"maxIterations": 1000}
