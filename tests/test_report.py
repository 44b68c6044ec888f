"""Tests for text rendering of dashboard resources."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from actions_tracker.models import (
    DeploymentStatus,
    FailedTest,
    FailureDetails,
    JobDetails,
    JobStep,
    Pagination,
    RunsPage,
    SuccessfulDeployment,
    WorkflowActivity,
    WorkflowRun,
    WorkflowRunDetails,
    WorkflowStats,
)
from actions_tracker.report import (
    format_duration,
    format_time_ago,
    generate_dashboard,
    generate_failure_report,
    generate_run_details,
    status_label,
)

NOW = datetime(2026, 1, 10, 12, 0, 0, tzinfo=timezone.utc)


def _make_run(run_id: int = 1, conclusion: str | None = "failure") -> WorkflowRun:
    return WorkflowRun(
        run_id=run_id,
        name="Python Tests",
        status="completed",
        conclusion=conclusion,
        html_url=f"https://github.com/A/B/actions/runs/{run_id}",
        created_at=NOW - timedelta(hours=2),
        updated_at=NOW - timedelta(hours=1),
        triggered_by="push to main",
        head_sha="abcdef0123456",
        run_number=42,
        run_attempt=1,
        duration_in_seconds=3661,
        repository="A/B",
    )


def test_format_duration_handles_none_and_each_magnitude():
    """Verify durations render as seconds, minutes or hours with remainders."""
    assert format_duration(None) == "N/A"
    assert format_duration(0) == "0s"
    assert format_duration(59) == "59s"
    assert format_duration(185) == "3m 5s"
    assert format_duration(3661) == "1h 1m 1s"


def test_format_time_ago_uses_largest_unit_and_pluralizes():
    """Verify relative times pick the right unit and singular/plural form."""
    assert format_time_ago(None, NOW) == "N/A"
    assert format_time_ago(NOW - timedelta(seconds=1), NOW) == "1 second ago"
    assert format_time_ago(NOW - timedelta(minutes=5), NOW) == "5 minutes ago"
    assert format_time_ago(NOW - timedelta(hours=1), NOW) == "1 hour ago"
    assert format_time_ago(NOW - timedelta(days=3), NOW) == "3 days ago"
    assert format_time_ago(NOW - timedelta(days=65), NOW) == "2 months ago"


def test_status_label_maps_status_and_conclusion():
    """Verify running, terminal and unknown states get their display labels."""
    assert status_label("queued", None) == "Running"
    assert status_label("waiting", None) == "Running"
    assert status_label("completed", "success") == "Success"
    assert status_label("completed", "failure") == "Failed"
    assert status_label("completed", "cancelled") == "Cancelled"
    assert status_label("completed", "skipped") == "Unknown"


def test_generate_dashboard_contains_sections_and_values():
    """Verify the dashboard includes stats, deployment status, activity, deployments and runs."""
    stats = WorkflowStats(
        repository="A/B",
        total_runs=2,
        success_count=1,
        failure_count=1,
        last_successful_run_id=7,
        last_updated=NOW - timedelta(minutes=3),
    )
    activity = [WorkflowActivity(repository="A/B", date="2026-01-10", run_count=2)]
    deployments = [SuccessfulDeployment(repository="A/B", date="2026-01-10", success_count=1, failure_count=1)]
    deployment_status = DeploymentStatus(
        is_active=True,
        environment="github-pages",
        last_deployed_at=NOW - timedelta(days=1),
        creator="octocat",
        url="https://A.github.io/B/",
        deployment_source="main branch",
        last_successful_run_id=7,
    )
    runs_page = RunsPage(runs=[_make_run()], pagination=Pagination(page=1, per_page=1, has_more=True))

    report = generate_dashboard("A/B", stats, activity, deployments, deployment_status, runs_page, now=NOW)

    assert "Repository: A/B" in report
    assert "Success rate: 50%" in report
    assert "Last successful run: 7" in report
    assert "Last updated: 3 minutes ago" in report
    assert "URL: https://A.github.io/B/" in report
    assert "Deployed by: octocat" in report
    assert "2026-01-10    2  ####################" in report
    assert "2026-01-10    1 / 1" in report
    assert "#42 Python Tests [Failed] 1h 1m 1s - push to main, 2 hours ago" in report
    assert "More runs available on page 2." in report


def test_generate_run_details_lists_jobs_steps_and_failures():
    """Verify run details show run metadata, step durations and failed steps."""
    step = JobStep(
        name="Run tests",
        status="completed",
        conclusion="failure",
        number=2,
        started_at=None,
        completed_at=None,
        duration=42,
    )
    failure_details = FailureDetails(
        repository="A/B",
        run_id=1,
        summary="1 failed step(s) detected in 'Python Tests'",
        failed_tests=[FailedTest(file="pytest", test="Run tests", message="Step 2 concluded with failure")],
        is_test_run=True,
    )
    details = WorkflowRunDetails(
        repository="A/B",
        run=_make_run(),
        jobs=[JobDetails(job_id=1, job_name="pytest", conclusion="failure", steps=[step])],
        failure_details=failure_details,
        is_test_workflow=True,
    )

    report = generate_run_details(details)

    assert "Run 1: Python Tests #42 (attempt 1)" in report
    assert "Commit: abcdef0" in report
    assert "Jobs: 1" in report
    assert " 2. Run tests [failure] 42s" in report
    assert "- pytest :: Run tests: Step 2 concluded with failure" in report
    assert generate_failure_report(failure_details).startswith("Repository: A/B\nRun 1 failures:")
