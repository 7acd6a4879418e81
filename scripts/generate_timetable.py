"""Run one timetable generation headlessly and print phase progress."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure repo root is on sys.path so local imports work when invoked directly.
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from studio.config import get_settings
from studio.generation.catalog import BUILTIN_ALGORITHMS, BUILTIN_GOALS, AlgorithmCatalog, algorithms_from_payload, goals_from_payload
from studio.generation.errors import GenerationError, SettingsError
from studio.generation.orchestrator import GenerationOrchestrator, GenerationState, OrchestratorView
from studio.generation.payload import GenerationRequest, TimetableDetails
from studio.generation.settings import GenerationSettings
from studio.generation.validation import read_validation_snapshot
from studio.services.scheduler_client import SchedulerClient, SchedulerClientError


def _build_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(description="Submit a timetable generation job and follow it to completion.")
  parser.add_argument("--name", help="Timetable name (default: 'Timetable <year>').")
  parser.add_argument("--academic-year", help="Academic year, e.g. 2024-2025.")
  parser.add_argument("--semester", type=int, choices=(1, 2), default=1)
  parser.add_argument("--department", default="Computer Science")
  parser.add_argument("--year", type=int, default=1)
  parser.add_argument("--algorithm", default="genetic", help="Algorithm id from the catalog.")
  parser.add_argument("--max-iterations", type=int)
  parser.add_argument("--population-size", type=int)
  parser.add_argument("--crossover-rate", type=float)
  parser.add_argument("--mutation-rate", type=float)
  parser.add_argument("--goal", action="append", dest="goals", help="Optimization goal id; repeat for several goals.")
  parser.add_argument("--check-only", action="store_true", help="Print data readiness and exit without submitting.")
  return parser


class _PhasePrinter:
  """Print a line whenever the state or the current phase changes."""

  def __init__(self) -> None:
    self._last: tuple[str, int] | None = None

  def __call__(self, view: OrchestratorView) -> None:
    marker = (view.state.value, view.phase_index)
    if marker == self._last:
      return
    self._last = marker
    current = next((item.phase for item in view.phases if item.status == "in_progress"), None)
    label = f"phase {current.number}/{view.phase_count} {current.name}" if current else "all phases done"
    print(f"[{view.state.value}] {view.percentage:3d}% {label}")


async def _run(args: argparse.Namespace) -> int:
  settings = get_settings()
  async with SchedulerClient.from_settings(settings) as client:
    try:
      snapshot = await read_validation_snapshot(client)
    except SchedulerClientError as exc:
      print(f"ERROR: could not read data readiness ({exc.message})")
      return 1
    for name, state in snapshot.domains.items():
      print(f"{name:<11} {state.status:<10} count={state.count} issues={state.issue_count}")
    print(f"ready: {snapshot.ready}")
    if args.check_only:
      return 0 if snapshot.ready else 1

    try:
      catalog = AlgorithmCatalog(algorithms_from_payload(await client.fetch_algorithm_catalog()) or BUILTIN_ALGORITHMS, goals_from_payload(await client.fetch_optimization_goals()) or BUILTIN_GOALS)
    except SchedulerClientError as exc:
      print(f"WARNING: using built-in catalog ({exc.message})")
      catalog = AlgorithmCatalog()

    generation_settings = GenerationSettings(catalog)
    changes = {"algorithm": args.algorithm, "max_iterations": args.max_iterations, "population_size": args.population_size, "crossover_rate": args.crossover_rate, "mutation_rate": args.mutation_rate, "optimization_goals": args.goals}
    details_changes = {"name": args.name, "academic_year": args.academic_year, "semester": args.semester, "department": args.department, "year": args.year}
    try:
      generation_settings.update({key: value for key, value in changes.items() if value is not None})
      details = TimetableDetails()
      details.update({key: value for key, value in details_changes.items() if value is not None})
    except SettingsError as exc:
      print(f"ERROR: {exc}")
      return 2

    orchestrator = GenerationOrchestrator(client, poll_interval_seconds=settings.poll_interval_seconds, poll_timeout_seconds=settings.poll_timeout_seconds, listener=_PhasePrinter())
    try:
      job_id = await orchestrator.request_generation(GenerationRequest.build(details, generation_settings.snapshot()), snapshot)
      print(f"job: {job_id}")
      await orchestrator.join()
    except GenerationError as exc:
      print(f"ERROR: {exc.message}")
      return 1
    finally:
      await orchestrator.aclose()

    if orchestrator.state == GenerationState.COMPLETED:
      print("OK: Timetable generated.")
      return 0

    error = orchestrator.last_error
    print(f"ERROR: {error.message if error else 'Generation stopped.'}")
    return 1


def main() -> None:
  """Parse CLI args and exit with the generation outcome."""
  args = _build_parser().parse_args()
  sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
  main()
