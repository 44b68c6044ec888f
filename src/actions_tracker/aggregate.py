"""Derived metrics over normalized workflow runs.

This module provides:
- Whole-repository stats (totals, success/failure counts, last successful run).
- A 7-day run-count histogram.
- A 7-day success/failure split of completed runs.
- Deployment status and failure summaries built from upstream records.

Calendar days are evaluated in the process-local time zone. Every function
is a pure function of its inputs and the current date, which callers may pin
through the ``today``/``now`` arguments.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

from .models import (
    DeploymentStatus,
    FailedTest,
    FailureDetails,
    JobDetails,
    RawRecord,
    SuccessfulDeployment,
    WorkflowActivity,
    WorkflowRun,
    WorkflowStats,
)
from .transform import parse_timestamp

WINDOW_DAYS = 7
DEPLOYMENT_ENVIRONMENT = "github-pages"
DEPLOYMENT_SOURCE = "main branch"


def window_dates(today: Optional[date] = None, days: int = WINDOW_DAYS) -> List[str]:
    """Return ``days`` ISO dates ending with ``today`` (inclusive), oldest first."""
    end = today or date.today()
    return [(end - timedelta(days=offset)).isoformat() for offset in range(days - 1, -1, -1)]


def local_day(moment: datetime) -> str:
    """Calendar day of ``moment`` in the process-local time zone."""
    return moment.astimezone().date().isoformat()


def compute_stats(
    runs: Sequence[WorkflowRun],
    repository: str,
    now: Optional[datetime] = None,
) -> WorkflowStats:
    """Compute whole-repository stats from the full run list.

    ``last_successful_run_id`` is the successful run with the latest
    ``created_at``; equal timestamps are broken by the highest ``run_id``.
    """
    successful = [run for run in runs if run.conclusion == "success"]
    failure_count = sum(1 for run in runs if run.conclusion == "failure")

    last_successful_run_id = None
    if successful:
        latest = max(successful, key=lambda run: (run.created_at, run.run_id))
        last_successful_run_id = latest.run_id

    return WorkflowStats(
        repository=repository,
        total_runs=len(runs),
        success_count=len(successful),
        failure_count=failure_count,
        last_successful_run_id=last_successful_run_id,
        last_updated=now or datetime.now(timezone.utc),
    )


def compute_activity(
    runs: Sequence[WorkflowRun],
    repository: str,
    today: Optional[date] = None,
) -> List[WorkflowActivity]:
    """Count runs per day over the last 7 days; older runs are ignored."""
    counts: Dict[str, int] = {day: 0 for day in window_dates(today)}

    for run in runs:
        day = local_day(run.created_at)
        if day in counts:
            counts[day] += 1

    return [
        WorkflowActivity(repository=repository, date=day, run_count=count)
        for day, count in counts.items()
    ]


def compute_deployments(
    runs: Sequence[WorkflowRun],
    repository: str,
    today: Optional[date] = None,
) -> List[SuccessfulDeployment]:
    """Split completed runs per day over the last 7 days into successes and failures.

    Every run that completed without ``success`` counts as a failure, so
    cancelled runs land in ``failure_count``. The failure count never goes
    below zero.
    """
    completed: Dict[str, int] = {day: 0 for day in window_dates(today)}
    succeeded: Dict[str, int] = dict.fromkeys(completed, 0)

    for run in runs:
        if run.status != "completed":
            continue
        day = local_day(run.created_at)
        if day not in completed:
            continue
        completed[day] += 1
        if run.conclusion == "success":
            succeeded[day] += 1

    return [
        SuccessfulDeployment(
            repository=repository,
            date=day,
            success_count=succeeded[day],
            failure_count=max(0, total - succeeded[day]),
        )
        for day, total in completed.items()
    ]


def pages_url(repository: str) -> str:
    """GitHub Pages URL of ``owner/name``."""
    owner, _, name = repository.partition("/")
    return f"https://{owner}.github.io/{name}/"


def build_deployment_status(
    deployments: Sequence[RawRecord],
    repository: str,
    stats: Optional[WorkflowStats],
) -> DeploymentStatus:
    """Summarize the newest deployment; ``deployments`` are ordered newest first."""
    latest = deployments[0] if deployments else None

    creator = None
    if latest and isinstance(latest.get("creator"), dict):
        creator = latest["creator"].get("login")

    return DeploymentStatus(
        is_active=latest is not None,
        environment=(latest or {}).get("environment") or DEPLOYMENT_ENVIRONMENT,
        last_deployed_at=parse_timestamp(latest.get("created_at")) if latest else None,
        creator=creator,
        url=pages_url(repository),
        deployment_source=DEPLOYMENT_SOURCE,
        last_successful_run_id=stats.last_successful_run_id if stats else None,
    )


def summarize_failures(
    repository: str,
    run: WorkflowRun,
    jobs: Sequence[JobDetails],
    is_test_run: bool,
) -> FailureDetails:
    """Report each failed step of each failed job as a failed test entry."""
    if run.conclusion != "failure":
        return FailureDetails(
            repository=repository,
            run_id=run.run_id,
            summary="No failure details available",
            is_test_run=is_test_run,
        )

    failed_tests: List[FailedTest] = []
    for job in jobs:
        if job.conclusion != "failure":
            continue
        for step in job.steps:
            if step.conclusion == "failure":
                failed_tests.append(
                    FailedTest(
                        file=job.job_name,
                        test=step.name,
                        message=f"Step {step.number} concluded with failure",
                    )
                )

    if failed_tests:
        summary = f"{len(failed_tests)} failed step(s) detected in '{run.name}'"
    else:
        summary = f"'{run.name}' failed without a failing step"

    return FailureDetails(
        repository=repository,
        run_id=run.run_id,
        summary=summary,
        failed_tests=failed_tests,
        is_test_run=is_test_run,
    )
