"""Command-line argument parsing for the GitHub Actions tracker."""

from __future__ import annotations

import argparse

from .models import SORT_ORDERS, STATUS_FILTERS


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments for the dashboard.

    Returns:
        Parsed CLI arguments. Without ``--run-id`` or ``--list-repos`` the full
        dashboard for ``--repo`` is rendered.
    """
    parser = argparse.ArgumentParser(
        prog="actions-tracker",
        description=(
            "Show cached GitHub Actions workflow runs, success rate, daily activity "
            "and deployments for a tracked repository."
        ),
    )

    parser.add_argument(
        "--repo",
        default=None,
        help="Repository to show as owner/name (default: the configured default repository).",
    )
    parser.add_argument(
        "--status",
        choices=STATUS_FILTERS,
        default=None,
        help="Only list runs with this status.",
    )
    parser.add_argument(
        "--sort",
        choices=SORT_ORDERS,
        default="recent",
        help="Order of listed runs (default: recent).",
    )
    parser.add_argument(
        "--page",
        type=_positive_int,
        default=1,
        help="Page of runs to list (default: 1).",
    )
    parser.add_argument(
        "--per-page",
        type=_positive_int,
        default=10,
        help="Runs per page (default: 10).",
    )
    parser.add_argument(
        "--days",
        type=_positive_int,
        default=7,
        help="Number of days of activity to show (default: 7).",
    )
    parser.add_argument(
        "--run-id",
        type=_positive_int,
        default=None,
        help="Show details of a single workflow run instead of the dashboard.",
    )
    parser.add_argument(
        "--include-jobs",
        action="store_true",
        help="With --run-id, always fetch the run's jobs and steps.",
    )
    parser.add_argument(
        "--failures",
        action="store_true",
        help="With --run-id, show only the failed steps of the run.",
    )
    parser.add_argument(
        "--list-repos",
        action="store_true",
        help="List tracked repositories and exit.",
    )
    parser.add_argument(
        "--watch",
        type=_positive_int,
        default=None,
        metavar="SECONDS",
        help="Re-render the dashboard every SECONDS seconds, refreshing from GitHub each time.",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_int,
        default=30,
        help="GitHub API request timeout in seconds (default: 30).",
    )
    parser.add_argument(
        "--max-pages",
        type=_positive_int,
        default=1,
        help="Maximum pages of 100 workflow runs fetched per refresh (default: 1).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser.parse_args()
