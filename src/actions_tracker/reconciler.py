"""Cache reconciliation between the GitHub API and the record store.

Each ``get_*`` method decides whether the cached state is enough to answer or
whether the repository must be refreshed from upstream first. A refresh:

1. fetches the full current run list,
2. normalizes every run (any malformed run aborts before the store is touched),
3. merges runs into the store by ``run_id``,
4. recomputes and replaces the repository stats,
5. recomputes and upserts the 7 daily activity buckets.

Answers are always read back from the store. Upstream failures propagate to
the caller unchanged; stale cache is never served in their place.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from threading import Lock
from typing import Dict, List, Optional, cast

from .aggregate import (
    DEPLOYMENT_ENVIRONMENT,
    WINDOW_DAYS,
    build_deployment_status,
    compute_activity,
    compute_deployments,
    compute_stats,
    summarize_failures,
)
from .config import Config
from .errors import InvalidRequestError, NotFoundError
from .github_client import GitHubClient
from .models import (
    SORT_ORDERS,
    STATUS_FILTERS,
    DeploymentStatus,
    FailureDetails,
    JobDetails,
    Pagination,
    RepositoryRegistry,
    RunsPage,
    SuccessfulDeployment,
    WorkflowActivity,
    WorkflowRun,
    WorkflowRunDetails,
    WorkflowStats,
)
from .store import RecordStore
from .transform import normalize_jobs, normalize_run

logger = logging.getLogger(__name__)


def matches_status(run: WorkflowRun, status: Optional[str]) -> bool:
    """Return whether ``run`` passes the ``status`` filter."""
    if status == "completed":
        return run.status == "completed"
    if status == "in_progress":
        return run.status == "in_progress"
    if status == "failed":
        return run.conclusion == "failure"
    return True


def sort_runs(runs: List[WorkflowRun], sort: str) -> List[WorkflowRun]:
    """Order runs newest first, or longest first for ``sort="duration"``."""
    if sort == "duration":
        return sorted(runs, key=lambda run: run.duration_in_seconds or 0, reverse=True)
    return sorted(runs, key=lambda run: run.created_at, reverse=True)


class Reconciler:
    """Serves dashboard resources from the store, refreshing from GitHub on a miss.

    At most one upstream refresh per repository is in flight at a time.
    Callers arriving while a refresh runs wait for it and share its outcome,
    including its exception.
    """

    def __init__(self, config: Config, client: GitHubClient, store: RecordStore) -> None:
        self._config = config
        self._client = client
        self._store = store
        self._inflight_mu = Lock()
        self._inflight: Dict[str, "Future[List[WorkflowRun]]"] = {}

    # Refresh

    def _refresh(self, repository: str) -> List[WorkflowRun]:
        with self._inflight_mu:
            pending = self._inflight.get(repository)
            owner = pending is None
            if owner:
                pending = Future()
                self._inflight[repository] = pending

        if not owner:
            logger.debug("Joining in-flight refresh", extra={"repository": repository})
            return pending.result()

        try:
            runs = self._fetch_and_merge(repository)
        except BaseException as exc:
            pending.set_exception(exc)
            raise
        else:
            pending.set_result(runs)
            return runs
        finally:
            with self._inflight_mu:
                self._inflight.pop(repository, None)

    def _fetch_and_merge(self, repository: str) -> List[WorkflowRun]:
        raw_runs = self._client.list_workflow_runs(repository)
        runs = [normalize_run(raw, repository) for raw in raw_runs]

        for run in runs:
            self._store.put_run(run)

        self._store.put_stats(repository, compute_stats(runs, repository))

        for bucket in compute_activity(runs, repository):
            self._store.put_activity(repository, bucket.date, bucket.run_count)

        logger.info(
            "Refreshed workflow data from GitHub",
            extra={"repository": repository, "run_count": len(runs)},
        )
        return runs

    def refresh_all(self, repository: Optional[str] = None) -> WorkflowStats:
        """Force-refresh runs, stats and activity and return the new stats."""
        repository = self._config.resolve_repository(repository)
        self._refresh(repository)
        return cast(WorkflowStats, self._store.get_stats(repository))

    # Cached resources

    def list_repositories(self) -> RepositoryRegistry:
        return RepositoryRegistry(
            repositories=self._config.repositories,
            default=self._config.default_repository,
        )

    def get_runs(
        self,
        repository: Optional[str] = None,
        page: int = 1,
        per_page: int = 10,
        status: Optional[str] = None,
        sort: Optional[str] = None,
        force_refresh: bool = False,
    ) -> RunsPage:
        """Return one page of runs, filtered by ``status`` and ordered by ``sort``.

        The filter and sort apply across all cached runs of the repository
        before the page is sliced out. ``has_more`` is approximated as a full
        page.
        """
        repository = self._config.resolve_repository(repository)
        sort = sort or "recent"
        if page < 1 or per_page < 1:
            raise InvalidRequestError("'page' and 'per_page' must be greater than 0.")
        if status is not None and status not in STATUS_FILTERS:
            raise InvalidRequestError(
                f"Unsupported status filter '{status}'. Expected one of: {', '.join(STATUS_FILTERS)}"
            )
        if sort not in SORT_ORDERS:
            raise InvalidRequestError(
                f"Unsupported sort order '{sort}'. Expected one of: {', '.join(SORT_ORDERS)}"
            )

        if force_refresh or self._store.count_runs(repository) == 0:
            self._refresh(repository)
        else:
            logger.debug("Serving workflow runs from cache", extra={"repository": repository})

        runs = [
            run
            for run in self._store.list_runs(repository, limit=None)
            if matches_status(run, status)
        ]
        offset = (page - 1) * per_page
        page_runs = sort_runs(runs, sort)[offset:offset + per_page]

        return RunsPage(
            runs=page_runs,
            pagination=Pagination(page=page, per_page=per_page, has_more=len(page_runs) == per_page),
        )

    def get_stats(self, repository: Optional[str] = None, force_refresh: bool = False) -> WorkflowStats:
        repository = self._config.resolve_repository(repository)

        stats = self._store.get_stats(repository)
        if stats is None or force_refresh:
            self._refresh(repository)
            stats = self._store.get_stats(repository)
        else:
            logger.debug("Serving workflow stats from cache", extra={"repository": repository})

        return cast(WorkflowStats, stats)

    def get_activity(
        self,
        repository: Optional[str] = None,
        days: int = WINDOW_DAYS,
        force_refresh: bool = False,
    ) -> List[WorkflowActivity]:
        """Return up to ``days`` daily buckets, oldest first.

        The cache is refreshed whenever it holds fewer than ``days`` buckets.
        Only 7 buckets are written per refresh, so a larger window fills up
        over several days of refreshes.
        """
        repository = self._config.resolve_repository(repository)
        if days < 1:
            raise InvalidRequestError("'days' must be greater than 0.")

        activity = self._store.list_activity(repository, days)
        if len(activity) < days or force_refresh:
            self._refresh(repository)
            activity = self._store.list_activity(repository, days)
        else:
            logger.debug("Serving workflow activity from cache", extra={"repository": repository})

        return activity

    # Per-request derived resources

    def get_deployment_status(self, repository: Optional[str] = None) -> DeploymentStatus:
        """Summarize the latest GitHub Pages deployment; always queries upstream."""
        repository = self._config.resolve_repository(repository)

        stats = self._store.get_stats(repository)
        deployments = self._client.list_deployments(repository, environment=DEPLOYMENT_ENVIRONMENT)
        return build_deployment_status(deployments, repository, stats)

    def get_successful_deployments(self, repository: Optional[str] = None) -> List[SuccessfulDeployment]:
        """Compute the 7-day success/failure split from a fresh run fetch."""
        repository = self._config.resolve_repository(repository)
        runs = self._refresh(repository)
        return compute_deployments(runs, repository)

    def _lookup_run(self, repository: str, run_id: Optional[int]) -> WorkflowRun:
        if run_id is None:
            raise InvalidRequestError("Run ID is required")

        cached = self._store.get_run_by_id(run_id)
        if cached is not None and cached.repository == repository and cached.status == "completed":
            return cached

        # unfinished runs are re-read so their status and duration are current
        try:
            raw = self._client.get_workflow_run(repository, run_id)
        except NotFoundError:
            logger.info(
                "Workflow run not found",
                extra={"repository": repository, "run_id": run_id},
            )
            raise
        return self._store.put_run(normalize_run(raw, repository))

    def _is_test_workflow(self, run: WorkflowRun) -> bool:
        return run.name in self._config.test_workflow_names

    def _list_jobs(self, repository: str, run_id: int) -> List[JobDetails]:
        return normalize_jobs(self._client.list_run_jobs(repository, run_id))

    def get_run_details(
        self,
        repository: Optional[str] = None,
        run_id: Optional[int] = None,
        include_jobs: bool = False,
    ) -> WorkflowRunDetails:
        """Return a run with its jobs and step timing.

        Jobs are fetched for configured test workflows or when ``include_jobs``
        is set. Failure details are attached to failed test workflow runs.

        Raises:
            InvalidRequestError: If ``run_id`` is missing.
            NotFoundError: If the run is neither cached nor known to GitHub.
        """
        repository = self._config.resolve_repository(repository)
        run = self._lookup_run(repository, run_id)

        is_test_workflow = self._is_test_workflow(run)
        jobs: List[JobDetails] = []
        if is_test_workflow or include_jobs:
            jobs = self._list_jobs(repository, run.run_id)

        failure_details = None
        if is_test_workflow and run.conclusion == "failure":
            failure_details = summarize_failures(repository, run, jobs, is_test_run=True)

        return WorkflowRunDetails(
            repository=repository,
            run=run,
            jobs=jobs,
            failure_details=failure_details,
            is_test_workflow=is_test_workflow,
        )

    def get_run_failures(self, repository: Optional[str] = None, run_id: Optional[int] = None) -> FailureDetails:
        """Return the failed steps of a run; empty for runs that did not fail."""
        repository = self._config.resolve_repository(repository)
        run = self._lookup_run(repository, run_id)

        jobs: List[JobDetails] = []
        if run.conclusion == "failure":
            jobs = self._list_jobs(repository, run.run_id)

        return summarize_failures(repository, run, jobs, is_test_run=self._is_test_workflow(run))

    def delete_run(self, run_id: int) -> bool:
        """Remove a cached run; returns whether it existed."""
        removed = self._store.delete_run(run_id)
        logger.info("Deleted cached workflow run", extra={"run_id": run_id, "removed": removed})
        return removed
