"""Read and normalize the data-readiness snapshot."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from studio.generation.models import VALIDATION_DOMAINS, DomainName, DomainState, DomainStatus, OverallReadiness, ValidationIssue, ValidationSnapshot

logger = logging.getLogger(__name__)


class ValidationSource(Protocol):
  async def fetch_validation_snapshot(self) -> Mapping[str, Any]:
    """Return the raw readiness payload."""


def _normalize_status(raw: Any) -> DomainStatus:
  if not isinstance(raw, str):
    return "unknown"
  normalized = raw.strip().lower()
  # The service reports "valid" for a domain with no outstanding issues.
  if normalized in {"completed", "valid", "ready"}:
    return "completed"
  if normalized in {"", "unknown"}:
    return "unknown"
  # "issues", "warning", "pending" and friends all mean not done yet.
  return "pending"


def _normalize_count(raw: Any) -> int:
  if isinstance(raw, bool) or not isinstance(raw, int | float):
    return 0
  return max(int(raw), 0)


def _normalize_issues(raw: Any) -> int | tuple[ValidationIssue, ...]:
  if isinstance(raw, list | tuple):
    issues: list[ValidationIssue] = []
    for item in raw:
      if isinstance(item, Mapping):
        message = str(item.get("message") or item.get("msg") or "")
        severity = str(item.get("severity") or "warning").strip().lower()
        issues.append(ValidationIssue(message=message, severity=severity))
      else:
        issues.append(ValidationIssue(message=str(item)))
    return tuple(issues)
  return _normalize_count(raw)


def _domain_from_payload(raw: Any) -> DomainState:
  if not isinstance(raw, Mapping):
    return DomainState()
  return DomainState(status=_normalize_status(raw.get("status")), count=_normalize_count(raw.get("count")), issues=_normalize_issues(raw.get("issues")))


def snapshot_from_payload(payload: Mapping[str, Any]) -> ValidationSnapshot:
  """Build a snapshot from the validation endpoint payload."""
  # The endpoint wraps its body in {"success": ..., "data": {...}}.
  data = payload.get("data") if isinstance(payload.get("data"), Mapping) else payload

  domains: dict[DomainName, DomainState] = {name: _domain_from_payload(data.get(name)) for name in VALIDATION_DOMAINS}

  raw_overall = data.get("overall")
  reported_ready = False
  overall_status = "unknown"
  if isinstance(raw_overall, Mapping):
    reported_ready = raw_overall.get("ready") is True
    overall_status = str(raw_overall.get("status") or "unknown")

  # The service decides readiness. Only domains it actually reported can narrow the
  # flag; domains it does not track stay "unknown" without closing the gate.
  reported = [name for name in VALIDATION_DOMAINS if isinstance(data.get(name), Mapping)]
  incomplete = [name for name in reported if domains[name].status != "completed" or domains[name].has_blocking_issues]
  ready = reported_ready and not incomplete
  if reported_ready and incomplete:
    logger.warning("Validation service reported ready with incomplete domains: %s", ", ".join(incomplete))

  return ValidationSnapshot(domains=domains, overall=OverallReadiness(status=overall_status, ready=ready))


async def read_validation_snapshot(source: ValidationSource) -> ValidationSnapshot:
  """Fetch the current readiness state; the call has no side effects."""
  payload = await source.fetch_validation_snapshot()
  snapshot = snapshot_from_payload(payload)
  logger.debug("Validation snapshot ready=%s domains=%s", snapshot.ready, {name: state.status for name, state in snapshot.domains.items()})
  return snapshot
