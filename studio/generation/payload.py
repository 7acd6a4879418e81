"""Submission payload for the scheduling service."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any

from studio.generation.errors import SettingsError
from studio.generation.settings import SettingsSnapshot

WORKING_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
DAY_START = "09:00"
DAY_END = "17:00"
SLOT_DURATION_MINUTES = 60
BREAK_SLOTS = ("12:00-13:00",)

MAX_NAME_LENGTH = 150


def _current_year() -> int:
  return datetime.date.today().year


def _default_name() -> str:
  return f"Timetable {_current_year()}"


def _default_academic_year() -> str:
  year = _current_year()
  return f"{year}-{year + 1}"


@dataclass
class TimetableDetails:
  """Descriptive fields of the timetable being generated."""

  name: str = field(default_factory=_default_name)
  academic_year: str = field(default_factory=_default_academic_year)
  semester: int = 1
  department: str = "Computer Science"
  year: int = 1

  def __post_init__(self) -> None:
    self.validate()

  def validate(self) -> None:
    name = self.name.strip()
    if not name or len(name) > MAX_NAME_LENGTH:
      raise SettingsError(f"Name is required and must be at most {MAX_NAME_LENGTH} characters.")
    if not self.academic_year.strip():
      raise SettingsError("Academic year is required.")
    if not self.department.strip():
      raise SettingsError("Department is required.")
    if self.semester not in (1, 2):
      raise SettingsError("Semester must be 1 or 2.")
    if isinstance(self.year, bool) or not 1 <= self.year <= 5:
      raise SettingsError("Year must be between 1 and 5.")

  def update(self, changes: dict[str, Any]) -> None:
    """Apply edits, rolling back if the result is invalid."""
    saved = (self.name, self.academic_year, self.semester, self.department, self.year)
    for key, value in changes.items():
      if key not in {"name", "academic_year", "semester", "department", "year"}:
        raise SettingsError(f"Unknown timetable field '{key}'.")
      setattr(self, key, value)
    try:
      self.validate()
    except SettingsError:
      self.name, self.academic_year, self.semester, self.department, self.year = saved
      raise


@dataclass(frozen=True)
class GenerationRequest:
  """Everything one submission sends, frozen so regenerate can repeat it exactly."""

  name: str
  academic_year: str
  semester: int
  department: str
  year: int
  settings: SettingsSnapshot

  @classmethod
  def build(cls, details: TimetableDetails, settings: SettingsSnapshot) -> GenerationRequest:
    return cls(name=details.name.strip(), academic_year=details.academic_year.strip(), semester=details.semester, department=details.department.strip(), year=details.year, settings=settings)

  def to_payload(self) -> dict[str, Any]:
    """Wire body for the generate endpoint."""
    settings = self.settings
    return {
      "name": self.name,
      "academicYear": self.academic_year,
      "semester": self.semester,
      "department": self.department,
      "year": self.year,
      "settings": {
        "algorithm": settings.algorithm,
        "populationSize": settings.population_size,
        "maxGenerations": settings.max_iterations,
        "crossoverRate": settings.crossover_rate,
        "mutationRate": settings.mutation_rate,
        "optimizationGoals": list(settings.optimization_goals),
        "workingDays": list(WORKING_DAYS),
        "startTime": DAY_START,
        "endTime": DAY_END,
        "slotDuration": SLOT_DURATION_MINUTES,
        "breakSlots": list(BREAK_SLOTS),
        "allowBackToBack": settings.allow_back_to_back,
        "enforceBreaks": settings.enforce_breaks,
        "balanceWorkload": settings.balance_workload,
        "prioritizePreferences": settings.prioritize_preferences,
      },
    }
