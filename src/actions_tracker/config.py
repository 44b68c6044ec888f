"""Configuration parsing and validation for the GitHub Actions tracker."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .errors import ConfigurationError, InvalidRequestError

AVAILABLE_REPOSITORIES: Tuple[str, ...] = (
    "Lucas-Song-Dev/Personal-Website",
    "Lucas-Song-Dev/RedditPainpoint",
)
DEFAULT_REPOSITORY = "Lucas-Song-Dev/RedditPainpoint"
DEFAULT_TEST_WORKFLOWS: Tuple[str, ...] = ("Python Tests", "Frontend Tests")


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the tracker."""

    token: Optional[str] = None
    repositories: Tuple[str, ...] = AVAILABLE_REPOSITORIES
    default_repository: str = DEFAULT_REPOSITORY
    timeout_seconds: int = 30
    max_pages: int = 1
    test_workflow_names: Tuple[str, ...] = DEFAULT_TEST_WORKFLOWS

    def resolve_repository(self, repository: Optional[str]) -> str:
        """Return ``repository`` or the default, rejecting unregistered names.

        Raises:
            InvalidRequestError: If the repository is not in the registry.
        """
        if not repository:
            return self.default_repository

        if repository not in self.repositories:
            raise InvalidRequestError(
                f"Repository '{repository}' is not tracked. "
                f"Available repositories: {', '.join(self.repositories)}"
            )
        return repository


def _validate_repository_name(name: str) -> None:
    owner, _, repo = name.partition("/")
    if not owner or not repo or "/" in repo:
        raise ConfigurationError(
            f"Invalid repository '{name}': expected the form 'owner/name'."
        )


def load_config(
    repositories: Optional[Sequence[str]] = None,
    default_repository: Optional[str] = None,
    timeout_seconds: int = 30,
    max_pages: int = 1,
) -> Config:
    """Build and validate application configuration.

    Args:
        repositories: Registry of ``owner/name`` repositories; defaults to
            :data:`AVAILABLE_REPOSITORIES`.
        default_repository: Repository used when a request names none.
        timeout_seconds: Per-request GitHub API timeout in seconds.
        max_pages: Maximum number of workflow-run pages fetched per refresh.

    Returns:
        A validated ``Config`` instance. ``GITHUB_TOKEN`` is read from the
        environment when set; anonymous access is used otherwise.

    Raises:
        ConfigurationError: If any value is missing or out of range.
    """
    registry = tuple(repositories) if repositories else AVAILABLE_REPOSITORIES
    for name in registry:
        _validate_repository_name(name)

    default = default_repository or (
        DEFAULT_REPOSITORY if DEFAULT_REPOSITORY in registry else registry[0]
    )
    if default not in registry:
        raise ConfigurationError(
            f"Default repository '{default}' is not part of the repository registry."
        )

    if timeout_seconds <= 0:
        raise ConfigurationError(
            "Invalid value for 'timeout_seconds': expected an integer greater than 0."
        )
    if max_pages <= 0:
        raise ConfigurationError(
            "Invalid value for 'max_pages': expected an integer greater than 0."
        )

    token = os.getenv("GITHUB_TOKEN", "").strip() or None

    return Config(
        token=token,
        repositories=registry,
        default_repository=default,
        timeout_seconds=timeout_seconds,
        max_pages=max_pages,
    )
