"""In-memory record store for workflow runs, stats and daily activity.

Runs are keyed by their GitHub ``run_id``; stats by repository; activity by
``(repository, date)``. Each record also carries a surrogate ``id`` assigned on
first insert and preserved by every later merge.

Records handed out are copies, so callers cannot mutate stored state except
through the ``put_*``/``delete_*`` methods.
"""

from __future__ import annotations

import itertools
from dataclasses import replace
from threading import Lock
from typing import Dict, List, Optional, Tuple

from .models import WorkflowActivity, WorkflowRun, WorkflowStats


class RecordStore:
    """Thread-safe, volatile store owned by the process entry point."""

    def __init__(self) -> None:
        self._mu = Lock()
        self._ids = itertools.count(1)
        self._runs: Dict[int, WorkflowRun] = {}
        self._stats: Dict[str, WorkflowStats] = {}
        self._activity: Dict[Tuple[str, str], WorkflowActivity] = {}

    # Workflow runs

    def list_runs(
        self,
        repository: str,
        limit: Optional[int] = 10,
        offset: int = 0,
    ) -> List[WorkflowRun]:
        """Return runs of ``repository``, newest first, sliced by ``offset``/``limit``.

        ``limit=None`` returns every run from ``offset`` on.
        """
        with self._mu:
            runs = [replace(run) for run in self._runs.values() if run.repository == repository]

        runs.sort(key=lambda run: run.created_at, reverse=True)
        end = None if limit is None else offset + limit
        return runs[offset:end]

    def count_runs(self, repository: str) -> int:
        with self._mu:
            return sum(1 for run in self._runs.values() if run.repository == repository)

    def get_run_by_id(self, run_id: int) -> Optional[WorkflowRun]:
        with self._mu:
            run = self._runs.get(run_id)
            return replace(run) if run else None

    def put_run(self, run: WorkflowRun) -> WorkflowRun:
        """Insert ``run`` or merge it over the stored run with the same ``run_id``.

        The stored surrogate ``id`` wins over whatever ``run.id`` holds.
        """
        with self._mu:
            existing = self._runs.get(run.run_id)
            surrogate_id = existing.id if existing else next(self._ids)
            stored = replace(run, id=surrogate_id)
            self._runs[run.run_id] = stored
            return replace(stored)

    def delete_run(self, run_id: int) -> bool:
        with self._mu:
            return self._runs.pop(run_id, None) is not None

    # Workflow stats

    def get_stats(self, repository: str) -> Optional[WorkflowStats]:
        with self._mu:
            stats = self._stats.get(repository)
            return replace(stats) if stats else None

    def put_stats(self, repository: str, stats: WorkflowStats) -> WorkflowStats:
        """Replace the stats snapshot of ``repository``, keeping its surrogate ``id``."""
        with self._mu:
            existing = self._stats.get(repository)
            surrogate_id = existing.id if existing else next(self._ids)
            stored = replace(stats, repository=repository, id=surrogate_id)
            self._stats[repository] = stored
            return replace(stored)

    # Workflow activity

    def list_activity(self, repository: str, days: int = 7) -> List[WorkflowActivity]:
        """Return the last ``days`` activity buckets of ``repository``, oldest first."""
        if days <= 0:
            return []

        with self._mu:
            buckets = [
                replace(activity)
                for (repo, _), activity in self._activity.items()
                if repo == repository
            ]

        buckets.sort(key=lambda activity: activity.date)
        return buckets[-days:]

    def put_activity(self, repository: str, date: str, run_count: int) -> WorkflowActivity:
        """Upsert the ``(repository, date)`` bucket."""
        key = (repository, date)
        with self._mu:
            existing = self._activity.get(key)
            if existing:
                stored = replace(existing, run_count=run_count)
            else:
                stored = WorkflowActivity(
                    repository=repository,
                    date=date,
                    run_count=run_count,
                    id=next(self._ids),
                )
            self._activity[key] = stored
            return replace(stored)
