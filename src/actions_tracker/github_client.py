"""GitHub REST API client for workflow run and deployment retrieval."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from .config import Config
from .errors import NotFoundError, ParseError, UpstreamUnavailableError
from .models import RawRecord

logger = logging.getLogger(__name__)


class GitHubClient:
    """Small client for the GitHub Actions and Deployments REST APIs.

    Every method returns raw, untyped payload records; shaping them into
    domain models is left to :mod:`actions_tracker.transform`.
    """

    _BASE_URL = "https://api.github.com"
    _RUNS_PAGE_SIZE = 100
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30

    def __init__(self, config: Config) -> None:
        """Initialize a GitHub API client.

        Args:
            config: Validated runtime configuration. When ``config.token`` is
                set, requests are authenticated with it.
        """
        self._config = config
        self._timeout_seconds = config.timeout_seconds

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": "GitHub-Actions-Tracker",
            }
        )
        if config.token:
            self._session.headers["Authorization"] = f"Bearer {config.token}"

    def _build_url(self, repository: str, path: str) -> str:
        """Build a fully qualified API URL below ``/repos/{repository}``."""
        return f"{self._BASE_URL}/repos/{repository}/{path.lstrip('/')}"

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _get_json(
        self,
        repository: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Execute a GET request with retry logic for 429/5xx responses.

        Raises:
            NotFoundError: If GitHub answers 404.
            UpstreamUnavailableError: If the request repeatedly fails, returns
                another HTTP status >= 400, or does not return valid JSON.
        """
        url = self._build_url(repository, path)
        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            try:
                response = self._session.get(url, params=params, timeout=self._timeout_seconds)
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise UpstreamUnavailableError(
                        f"GitHub request failed after retries: GET {url}"
                    ) from exc
                logger.warning(
                    "GitHub request raised, retrying",
                    extra={"url": url, "attempt": attempt, "error": str(exc)},
                )
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < self._MAX_RETRIES:
                backoff = self._extract_backoff_seconds(response, attempt)
                logger.warning(
                    "GitHub request throttled or failed, retrying",
                    extra={"url": url, "status_code": status_code, "backoff_seconds": backoff},
                )
                time.sleep(backoff)
                continue

            if status_code == 404:
                raise NotFoundError(f"GitHub resource not found: GET {url}")

            if status_code >= 400:
                raise UpstreamUnavailableError(
                    "GitHub API request failed: "
                    f"GET {url} returned {status_code} - {response.text}"
                )

            try:
                return response.json()
            except ValueError as exc:
                raise UpstreamUnavailableError(f"GitHub API returned invalid JSON: GET {url}") from exc

        raise UpstreamUnavailableError(f"GitHub request failed after retries: GET {url}") from last_error

    def _get_object(self, repository: str, path: str, params: Optional[Dict[str, Any]] = None) -> RawRecord:
        payload = self._get_json(repository, path, params=params)
        if not isinstance(payload, dict):
            raise ParseError(f"GitHub API returned unexpected payload shape for {path}: expected an object")
        return payload

    def _list_field(self, payload: RawRecord, key: str, path: str) -> List[RawRecord]:
        items = payload.get(key, [])
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise ParseError(f"GitHub API returned unexpected '{key}' for {path}: expected a list of objects")
        return items

    def list_workflow_runs(self, repository: str) -> List[RawRecord]:
        """List the most recent workflow runs of a repository.

        Uses ``per_page``/``page`` pagination and stops at the first partial page
        or after ``config.max_pages`` pages, whichever comes first.
        """
        runs: List[RawRecord] = []

        for page in range(1, self._config.max_pages + 1):
            payload = self._get_object(
                repository,
                "actions/runs",
                params={"per_page": self._RUNS_PAGE_SIZE, "page": page},
            )
            page_items = self._list_field(payload, "workflow_runs", "actions/runs")
            runs.extend(page_items)

            if len(page_items) < self._RUNS_PAGE_SIZE:
                break

        logger.debug(
            "Fetched workflow runs",
            extra={"repository": repository, "run_count": len(runs)},
        )
        return runs

    def get_workflow_run(self, repository: str, run_id: int) -> RawRecord:
        """Fetch a single workflow run."""
        return self._get_object(repository, f"actions/runs/{run_id}")

    def list_run_jobs(self, repository: str, run_id: int) -> List[RawRecord]:
        """List jobs (with their steps) of a workflow run."""
        path = f"actions/runs/{run_id}/jobs"
        payload = self._get_object(repository, path)
        return self._list_field(payload, "jobs", path)

    def list_deployments(self, repository: str, environment: str = "github-pages") -> List[RawRecord]:
        """List deployments of ``environment``, newest first."""
        payload = self._get_json(repository, "deployments", params={"environment": environment})
        if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
            raise ParseError("GitHub API returned unexpected payload shape for deployments: expected a list")
        return payload
