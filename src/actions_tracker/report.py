"""Text rendering of dashboard resources.

This module provides utilities for:
- Formatting second-based durations as ``45s``, ``3m 5s`` or ``1h 2m 3s``.
- Formatting timestamps relative to now (``"2 hours ago"``).
- Labelling run status/conclusion pairs.
- Building the human-readable dashboard and run-detail reports.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from .models import (
    DeploymentStatus,
    FailureDetails,
    RepositoryRegistry,
    RunsPage,
    SuccessfulDeployment,
    WorkflowActivity,
    WorkflowRunDetails,
    WorkflowStats,
)

_BAR_WIDTH = 20


def format_duration(seconds: Optional[int]) -> str:
    """Format seconds as a compact duration.

    Returns:
        ``"N/A"`` when ``seconds`` is ``None``; otherwise ``"Xs"``,
        ``"Xm Ys"`` or ``"Xh Ym Zs"`` depending on magnitude.
    """
    if seconds is None:
        return "N/A"

    if seconds < 60:
        return f"{seconds}s"

    minutes, remaining_seconds = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {remaining_seconds}s"

    hours, remaining_minutes = divmod(minutes, 60)
    return f"{hours}h {remaining_minutes}m {remaining_seconds}s"


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit if count == 1 else unit + 's'} ago"


def format_time_ago(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Describe how long ago ``moment`` was, e.g. ``"3 days ago"``."""
    if moment is None:
        return "N/A"

    current = now or datetime.now(timezone.utc)
    seconds = int((current - moment).total_seconds())
    if seconds < 60:
        return _plural(seconds, "second")

    minutes = seconds // 60
    if minutes < 60:
        return _plural(minutes, "minute")

    hours = minutes // 60
    if hours < 24:
        return _plural(hours, "hour")

    days = hours // 24
    if days < 30:
        return _plural(days, "day")

    return _plural(days // 30, "month")


def status_label(status: str, conclusion: Optional[str]) -> str:
    """Map a run's status/conclusion pair to a display label."""
    if status in ("in_progress", "queued", "waiting"):
        return "Running"

    if status == "completed":
        if conclusion == "success":
            return "Success"
        if conclusion == "failure":
            return "Failed"
        if conclusion == "cancelled":
            return "Cancelled"

    return "Unknown"


def _bar(count: int, peak: int) -> str:
    if peak <= 0:
        return ""
    return "#" * max(1 if count else 0, round(count / peak * _BAR_WIDTH))


def generate_dashboard(
    repository: str,
    stats: WorkflowStats,
    activity: Sequence[WorkflowActivity],
    deployments: Sequence[SuccessfulDeployment],
    deployment_status: DeploymentStatus,
    runs_page: RunsPage,
    now: Optional[datetime] = None,
) -> str:
    """Generate a human-readable dashboard for a repository.

    The report includes the run summary and success rate, the deployment
    status, the 7-day activity histogram, the daily deployment split and one
    page of recent runs.
    """
    peak = max((bucket.run_count for bucket in activity), default=0)

    lines = [
        f"Repository: {repository}",
        "GitHub Actions Dashboard",
        "",
        "1) Workflow Summary",
        f"   Total runs: {stats.total_runs}",
        f"   Successful: {stats.success_count}",
        f"   Failed: {stats.failure_count}",
        f"   Success rate: {stats.success_rate}%",
        f"   Last successful run: {stats.last_successful_run_id or 'n/a'}",
        f"   Last updated: {format_time_ago(stats.last_updated, now)}",
        "",
        "2) Deployment Status",
        f"   Active: {'yes' if deployment_status.is_active else 'no'}",
        f"   Environment: {deployment_status.environment}",
        f"   URL: {deployment_status.url}",
        f"   Source: {deployment_status.deployment_source}",
        f"   Last deployed: {format_time_ago(deployment_status.last_deployed_at, now)}",
        f"   Deployed by: {deployment_status.creator or 'n/a'}",
        "",
        f"3) Activity (last {len(activity)} days)",
    ]
    lines.extend(
        f"   {bucket.date}  {bucket.run_count:>3}  {_bar(bucket.run_count, peak)}"
        for bucket in activity
    )

    lines.extend(["", "4) Deployments (success / failure)"])
    lines.extend(
        f"   {entry.date}  {entry.success_count:>3} / {entry.failure_count:<3}"
        for entry in deployments
    )

    pagination = runs_page.pagination
    lines.extend(["", f"5) Recent Runs (page {pagination.page})"])
    if not runs_page.runs:
        lines.append("   No workflow runs found.")
    for run in runs_page.runs:
        lines.append(
            f"   #{run.run_number} {run.name} [{status_label(run.status, run.conclusion)}]"
            f" {format_duration(run.duration_in_seconds)}"
            f" - {run.triggered_by}, {format_time_ago(run.created_at, now)}"
        )
    if pagination.has_more:
        lines.append(f"   More runs available on page {pagination.page + 1}.")

    return "\n".join(lines)


def _failure_lines(failure_details: FailureDetails) -> List[str]:
    lines = [f"   {failure_details.summary}"]
    lines.extend(
        f"   - {failed.file} :: {failed.test}: {failed.message}"
        for failed in failure_details.failed_tests
    )
    return lines


def generate_run_details(details: WorkflowRunDetails) -> str:
    """Generate a report for one run, its jobs and step durations."""
    run = details.run
    lines = [
        f"Repository: {details.repository}",
        f"Run {run.run_id}: {run.name} #{run.run_number} (attempt {run.run_attempt})",
        f"   Status: {status_label(run.status, run.conclusion)}",
        f"   Triggered by: {run.triggered_by}",
        f"   Commit: {run.head_sha[:7]}",
        f"   Duration: {format_duration(run.duration_in_seconds)}",
        f"   URL: {run.html_url}",
        "",
        f"Jobs: {details.jobs_count}",
    ]

    for job in details.jobs:
        lines.append(f"   {job.job_name} [{job.conclusion or 'pending'}]")
        lines.extend(
            f"     {step.number:>2}. {step.name} [{step.conclusion or step.status}]"
            f" {format_duration(step.duration)}"
            for step in job.steps
        )

    if details.failure_details is not None:
        lines.extend(["", "Failures:"])
        lines.extend(_failure_lines(details.failure_details))

    return "\n".join(lines)


def generate_repository_list(registry: RepositoryRegistry) -> str:
    lines = ["Tracked repositories:"]
    for repository in registry.repositories:
        marker = " (default)" if repository == registry.default else ""
        lines.append(f"   {repository}{marker}")
    return "\n".join(lines)


def generate_failure_report(failure_details: FailureDetails) -> str:
    """Generate a report listing the failed steps of a run."""
    header = f"Repository: {failure_details.repository}\nRun {failure_details.run_id} failures:"
    return "\n".join([header, *_failure_lines(failure_details)])
