"""Projection of numeric job progress onto display phases."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

PhaseStatus = Literal["done", "in_progress", "pending"]

# Server-side progress counts roughly this many units per phase.
PROGRESS_UNITS_PER_PHASE = 100


@dataclass(frozen=True)
class GenerationPhase:
  """One human-readable stage of timetable generation."""

  number: int
  name: str
  description: str


@dataclass(frozen=True)
class PhaseView:
  phase: GenerationPhase
  status: PhaseStatus


GENERATION_PHASES: tuple[GenerationPhase, ...] = (
  GenerationPhase(1, "Data Validation", "Validating input data and constraints"),
  GenerationPhase(2, "Conflict Detection", "Identifying potential scheduling conflicts"),
  GenerationPhase(3, "Algorithm Initialization", "Setting up optimization algorithm"),
  GenerationPhase(4, "Schedule Generation", "Generating optimal timetable"),
  GenerationPhase(5, "Constraint Verification", "Verifying all constraints are met"),
  GenerationPhase(6, "Optimization", "Fine-tuning the schedule"),
  GenerationPhase(7, "Final Validation", "Performing final quality checks"),
)


def project_phase(progress: float | None, phase_count: int = len(GENERATION_PHASES)) -> int:
  """Return the index of the current phase for a raw progress value."""

  if phase_count <= 0:
    return 0
  if progress is None or math.isnan(progress) or progress <= 0:
    return 0
  if math.isinf(progress):
    return phase_count

  return min(math.floor(progress / PROGRESS_UNITS_PER_PHASE), phase_count)


def progress_percentage(phase_index: int, phase_count: int = len(GENERATION_PHASES)) -> int:
  """Percentage of phases completed, for the progress bar."""

  if phase_count <= 0:
    return 0
  bounded = min(max(phase_index, 0), phase_count)
  return round(bounded / phase_count * 100)


def phase_views(phase_index: int, phases: Sequence[GenerationPhase] = GENERATION_PHASES) -> list[PhaseView]:
  """Label every phase as done, in progress, or pending."""

  views: list[PhaseView] = []
  for index, phase in enumerate(phases):
    if index < phase_index:
      status: PhaseStatus = "done"
    elif index == phase_index:
      status = "in_progress"
    else:
      status = "pending"
    views.append(PhaseView(phase=phase, status=status))
  return views
