"""Entry point for the GitHub Actions tracker."""

from __future__ import annotations

import argparse
import logging
import sys
import time

from .cli import parse_args
from .config import load_config
from .errors import (
    ConfigurationError,
    InvalidRequestError,
    NotFoundError,
    ParseError,
    UpstreamUnavailableError,
)
from .github_client import GitHubClient
from .reconciler import Reconciler
from .report import (
    generate_dashboard,
    generate_failure_report,
    generate_repository_list,
    generate_run_details,
)
from .store import RecordStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_INVALID = 2
EXIT_NOT_FOUND = 3
EXIT_UPSTREAM = 4


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def render_dashboard(reconciler: Reconciler, args: argparse.Namespace) -> str:
    """Collect every dashboard resource for ``args.repo`` and render it.

    The deployment split always refreshes from GitHub, so it is fetched first
    and the remaining sections are answered from that same refresh.
    """
    repository = reconciler.list_repositories().default if args.repo is None else args.repo

    deployments = reconciler.get_successful_deployments(repository=repository)
    runs_page = reconciler.get_runs(
        repository=repository,
        page=args.page,
        per_page=args.per_page,
        status=args.status,
        sort=args.sort,
    )
    stats = reconciler.get_stats(repository=repository)
    activity = reconciler.get_activity(repository=repository, days=args.days)
    deployment_status = reconciler.get_deployment_status(repository=repository)

    return generate_dashboard(
        repository=repository,
        stats=stats,
        activity=activity,
        deployments=deployments,
        deployment_status=deployment_status,
        runs_page=runs_page,
    )


def run_command(reconciler: Reconciler, args: argparse.Namespace) -> str:
    """Answer a single (non-watch) invocation."""
    if args.list_repos:
        return generate_repository_list(reconciler.list_repositories())

    if args.run_id is not None:
        if args.failures:
            return generate_failure_report(
                reconciler.get_run_failures(repository=args.repo, run_id=args.run_id)
            )
        return generate_run_details(
            reconciler.get_run_details(
                repository=args.repo,
                run_id=args.run_id,
                include_jobs=args.include_jobs,
            )
        )

    if args.failures or args.include_jobs:
        raise InvalidRequestError("Run ID is required")

    return render_dashboard(reconciler, args)


def watch_dashboard(reconciler: Reconciler, args: argparse.Namespace) -> None:
    """Re-render the dashboard every ``args.watch`` seconds until interrupted.

    A tick that fails because GitHub is unavailable or returns an unexpected
    payload is reported and the loop keeps going.
    """
    while True:
        try:
            print(render_dashboard(reconciler, args))
            print()
        except (UpstreamUnavailableError, ParseError) as exc:
            logger.warning(
                "Dashboard refresh failed: %s",
                exc,
                extra={"repository": args.repo},
            )
        time.sleep(args.watch)


def orchestrate_dashboard() -> int:
    """Run the tracker and map failures to exit codes.

    Returns:
        ``0`` on success, ``2`` for invalid input or configuration, ``3`` when a
        run does not exist, ``4`` when GitHub is unavailable or returns
        unexpected payloads and ``1`` for anything else.
    """
    try:
        args = parse_args()
        configure_logging(args.verbose)

        config = load_config(timeout_seconds=args.timeout, max_pages=args.max_pages)
        store = RecordStore()
        reconciler = Reconciler(config=config, client=GitHubClient(config=config), store=store)

        if args.watch is not None:
            try:
                watch_dashboard(reconciler, args)
            except KeyboardInterrupt:
                logger.info("Stopped watching")
            return EXIT_OK

        print(run_command(reconciler, args))
        return EXIT_OK
    except (ConfigurationError, InvalidRequestError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_INVALID
    except NotFoundError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_NOT_FOUND
    except (UpstreamUnavailableError, ParseError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_UPSTREAM
    except Exception:
        logger.exception("Unexpected error while rendering the dashboard")
        return EXIT_UNEXPECTED


def main() -> None:
    sys.exit(orchestrate_dashboard())


if __name__ == "__main__":
    main()
