"""Parsing of raw GitHub payloads into normalized domain records.

All functions here are pure: no network or store access. Payloads with a
missing or mistyped required field raise :class:`ParseError` instead of
producing partially filled records.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, List, Optional

from .errors import ParseError
from .models import JobDetails, JobStep, RawRecord, WorkflowRun


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse GitHub ISO8601 timestamps into timezone-aware datetimes.

    Raises:
        ParseError: If ``value`` is present but not a valid timestamp.
    """
    if not value:
        return None
    if not isinstance(value, str):
        raise ParseError(f"Expected an ISO8601 timestamp string, got {value!r}")

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ParseError(f"Invalid ISO8601 timestamp: {value!r}") from exc

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _require(raw: RawRecord, key: str, kind: type, context: str) -> Any:
    value = raw.get(key)
    # bool is an int subclass; a boolean id is never valid
    if value is None or isinstance(value, bool) or not isinstance(value, kind):
        raise ParseError(f"{context} payload has missing or invalid '{key}': {value!r}")
    return value


def _optional_str(raw: RawRecord, key: str, context: str) -> Optional[str]:
    value = raw.get(key)
    if value is not None and not isinstance(value, str):
        raise ParseError(f"{context} payload has invalid '{key}': {value!r}")
    return value


def _require_timestamp(raw: RawRecord, key: str, context: str) -> datetime:
    parsed = parse_timestamp(raw.get(key))
    if parsed is None:
        raise ParseError(f"{context} payload is missing '{key}'")
    return parsed


def describe_trigger(event: Optional[str], branch: Optional[str]) -> str:
    """Describe what triggered a run, e.g. ``"push to main"``."""
    triggered_by = event or "unknown"
    if branch:
        triggered_by += f" to {branch}"
    return triggered_by


def normalize_run(raw: RawRecord, repository: str) -> WorkflowRun:
    """Map one raw GitHub workflow run into a :class:`WorkflowRun`.

    ``duration_in_seconds`` is the floored difference between ``updated_at``
    and ``created_at`` for completed runs and ``None`` for every other status.
    """
    if not isinstance(raw, dict):
        raise ParseError(f"Workflow run payload must be an object, got {type(raw).__name__}")

    context = f"Workflow run (repository={repository})"
    run_id = _require(raw, "id", int, context)
    context = f"Workflow run {run_id} (repository={repository})"

    status = _require(raw, "status", str, context)
    created_at = _require_timestamp(raw, "created_at", context)
    updated_at = _require_timestamp(raw, "updated_at", context)

    duration_in_seconds = None
    if status == "completed":
        duration_in_seconds = math.floor((updated_at - created_at).total_seconds())

    name = _optional_str(raw, "name", context) or _optional_str(raw, "workflow_name", context) or "Workflow"

    return WorkflowRun(
        run_id=run_id,
        name=name,
        status=status,
        conclusion=_optional_str(raw, "conclusion", context),
        html_url=_require(raw, "html_url", str, context),
        created_at=created_at,
        updated_at=updated_at,
        triggered_by=describe_trigger(
            _optional_str(raw, "event", context),
            _optional_str(raw, "head_branch", context),
        ),
        head_sha=_require(raw, "head_sha", str, context),
        run_number=_require(raw, "run_number", int, context),
        run_attempt=_require(raw, "run_attempt", int, context),
        duration_in_seconds=duration_in_seconds,
        repository=repository,
    )


def normalize_step(raw: RawRecord) -> JobStep:
    """Map one raw job step, rounding its duration to whole seconds."""
    context = "Job step"
    if not isinstance(raw, dict):
        raise ParseError(f"{context} payload must be an object, got {type(raw).__name__}")
    started_at = parse_timestamp(raw.get("started_at"))
    completed_at = parse_timestamp(raw.get("completed_at"))

    duration = None
    if started_at is not None and completed_at is not None:
        duration = round((completed_at - started_at).total_seconds())

    return JobStep(
        name=_require(raw, "name", str, context),
        status=_require(raw, "status", str, context),
        conclusion=_optional_str(raw, "conclusion", context),
        number=_require(raw, "number", int, context),
        started_at=started_at,
        completed_at=completed_at,
        duration=duration,
    )


def normalize_jobs(raw_jobs: List[RawRecord]) -> List[JobDetails]:
    """Map raw jobs of a run into :class:`JobDetails` with per-step timing."""
    jobs: List[JobDetails] = []

    for raw in raw_jobs:
        context = "Job"
        if not isinstance(raw, dict):
            raise ParseError(f"{context} payload must be an object, got {type(raw).__name__}")
        raw_steps = raw.get("steps") or []
        if not isinstance(raw_steps, list):
            raise ParseError(f"{context} payload has invalid 'steps': {raw_steps!r}")

        jobs.append(
            JobDetails(
                job_id=_require(raw, "id", int, context),
                job_name=_require(raw, "name", str, context),
                conclusion=_optional_str(raw, "conclusion", context),
                steps=[normalize_step(step) for step in raw_steps],
            )
        )

    return jobs
