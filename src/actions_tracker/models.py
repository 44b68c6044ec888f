"""Domain models for cached GitHub Actions workflow data.

Run, stats and activity records are owned by :class:`~actions_tracker.store.RecordStore`.
Deployment splits, deployment status and run details are derived per request
and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

STATUS_FILTERS = ("all", "completed", "in_progress", "failed")
SORT_ORDERS = ("recent", "duration")

RawRecord = Dict[str, Any]


@dataclass(slots=True)
class WorkflowRun:
    """Normalized record of one workflow execution."""

    run_id: int
    name: str
    status: str
    conclusion: Optional[str]
    html_url: str
    created_at: datetime
    updated_at: datetime
    triggered_by: str
    head_sha: str
    run_number: int
    run_attempt: int
    duration_in_seconds: Optional[int]
    repository: str
    id: Optional[int] = None


@dataclass(slots=True)
class WorkflowStats:
    """Aggregate snapshot of all known runs of a repository."""

    repository: str
    total_runs: int
    success_count: int
    failure_count: int
    last_successful_run_id: Optional[int]
    last_updated: datetime
    id: Optional[int] = None

    @property
    def success_rate(self) -> int:
        """Integer success percentage, ``0`` when no runs exist."""
        if self.total_runs == 0:
            return 0
        return round(self.success_count / self.total_runs * 100)


@dataclass(slots=True)
class WorkflowActivity:
    """Number of runs started on one calendar day (``YYYY-MM-DD``)."""

    repository: str
    date: str
    run_count: int
    id: Optional[int] = None


@dataclass(slots=True)
class SuccessfulDeployment:
    """Success/failure split of completed runs on one calendar day."""

    repository: str
    date: str
    success_count: int
    failure_count: int


@dataclass(slots=True)
class DeploymentStatus:
    """Latest GitHub Pages deployment snapshot for a repository."""

    is_active: bool
    environment: str
    last_deployed_at: Optional[datetime]
    creator: Optional[str]
    url: str
    deployment_source: str
    last_successful_run_id: Optional[int]


@dataclass(slots=True)
class Pagination:
    page: int
    per_page: int
    has_more: bool


@dataclass(slots=True)
class RunsPage:
    """One page of runs answered from the store."""

    runs: List[WorkflowRun]
    pagination: Pagination


@dataclass(slots=True)
class JobStep:
    name: str
    status: str
    conclusion: Optional[str]
    number: int
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    duration: Optional[int]


@dataclass(slots=True)
class JobDetails:
    job_id: int
    job_name: str
    conclusion: Optional[str]
    steps: List[JobStep] = field(default_factory=list)


@dataclass(slots=True)
class FailedTest:
    file: str
    test: str
    message: str


@dataclass(slots=True)
class FailureDetails:
    """Failure summary for a run, built from failed job steps."""

    repository: str
    run_id: int
    summary: str
    failed_tests: List[FailedTest] = field(default_factory=list)
    is_test_run: bool = False


@dataclass(slots=True)
class WorkflowRunDetails:
    """A run together with its jobs and per-step timing."""

    repository: str
    run: WorkflowRun
    jobs: List[JobDetails]
    failure_details: Optional[FailureDetails]
    is_test_workflow: bool

    @property
    def jobs_count(self) -> int:
        return len(self.jobs)


@dataclass(slots=True)
class RepositoryRegistry:
    repositories: Tuple[str, ...]
    default: str

