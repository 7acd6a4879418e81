from __future__ import annotations

from types import SimpleNamespace

import pytest

from scripts import generate_timetable
from studio.services.scheduler_client import SchedulerClientError
from tests.fakes import FakeScheduler


class _ContextScheduler(FakeScheduler):
  async def __aenter__(self) -> _ContextScheduler:
    return self

  async def __aexit__(self, *exc_info) -> None:
    await self.aclose()


class _UnreachableScheduler(_ContextScheduler):
  async def fetch_validation_snapshot(self):
    raise SchedulerClientError("connection refused")


def _use(monkeypatch, scheduler: FakeScheduler) -> None:
  monkeypatch.setattr(generate_timetable, "SchedulerClient", SimpleNamespace(from_settings=lambda settings: scheduler))


@pytest.mark.anyio
async def test_unreachable_validation_service_prints_error(monkeypatch, capsys) -> None:
  _use(monkeypatch, _UnreachableScheduler())

  exit_code = await generate_timetable._run(generate_timetable._build_parser().parse_args([]))

  assert exit_code == 1
  output = capsys.readouterr().out
  assert "ERROR: could not read data readiness (connection refused)" in output
  assert "Traceback" not in output


@pytest.mark.anyio
async def test_check_only_reports_readiness(monkeypatch, capsys) -> None:
  _use(monkeypatch, _ContextScheduler())

  exit_code = await generate_timetable._run(generate_timetable._build_parser().parse_args(["--check-only"]))

  assert exit_code == 0
  assert "ready: True" in capsys.readouterr().out
