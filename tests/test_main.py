"""Tests for application orchestration in the main module."""

import sys
from argparse import Namespace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import Mock, patch

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from actions_tracker.config import Config
from actions_tracker.errors import InvalidRequestError, NotFoundError, UpstreamUnavailableError
from actions_tracker.main import orchestrate_dashboard, render_dashboard, run_command
from actions_tracker.models import RepositoryRegistry
from actions_tracker.reconciler import Reconciler
from actions_tracker.store import RecordStore


def _args(**overrides) -> Namespace:
    values = dict(
        repo=None,
        status=None,
        sort="recent",
        page=1,
        per_page=10,
        days=7,
        run_id=None,
        include_jobs=False,
        failures=False,
        list_repos=False,
        watch=None,
        timeout=30,
        max_pages=1,
        verbose=False,
    )
    values.update(overrides)
    return Namespace(**values)


def _config() -> Config:
    return Config(repositories=("A/B",), default_repository="A/B")


def _raw_run() -> dict:
    created = datetime.now(timezone.utc) - timedelta(hours=2)
    return {
        "id": 7,
        "name": "CI",
        "status": "completed",
        "conclusion": "success",
        "html_url": "https://github.com/A/B/actions/runs/7",
        "created_at": created.isoformat(),
        "updated_at": (created + timedelta(minutes=3)).isoformat(),
        "event": "push",
        "head_branch": "main",
        "head_sha": "abc1234def",
        "run_number": 7,
        "run_attempt": 1,
    }


def test_orchestrate_dashboard_success(capsys):
    """Verify orchestration returns 0 and wires config, client, store and reconciler."""
    args = _args()
    config = _config()
    client = Mock()
    reconciler = Mock()

    with patch("actions_tracker.main.parse_args", return_value=args) as parse_args_mock, patch(
        "actions_tracker.main.load_config", return_value=config
    ) as load_config_mock, patch(
        "actions_tracker.main.GitHubClient", return_value=client
    ) as client_ctor_mock, patch(
        "actions_tracker.main.Reconciler", return_value=reconciler
    ) as reconciler_ctor_mock, patch(
        "actions_tracker.main.run_command", return_value="REPORT"
    ) as run_command_mock:
        exit_code = orchestrate_dashboard()

    assert exit_code == 0
    parse_args_mock.assert_called_once_with()
    load_config_mock.assert_called_once_with(timeout_seconds=30, max_pages=1)
    client_ctor_mock.assert_called_once_with(config=config)
    assert reconciler_ctor_mock.call_args.kwargs["client"] is client
    run_command_mock.assert_called_once_with(reconciler, args)
    assert "REPORT" in capsys.readouterr().out


def test_run_command_renders_dashboard_from_all_resources():
    """Verify the dashboard pulls deployments first, then runs, stats and activity for the repository."""
    reconciler = Mock()
    reconciler.list_repositories.return_value = RepositoryRegistry(repositories=("A/B",), default="A/B")

    with patch("actions_tracker.main.generate_dashboard", return_value="DASHBOARD") as dashboard_mock:
        output = run_command(reconciler, _args(status="failed"))

    assert output == "DASHBOARD"
    called = [name for name, _, _ in reconciler.mock_calls]
    assert called.index("get_successful_deployments") < called.index("get_runs")
    reconciler.get_runs.assert_called_once_with(
        repository="A/B",
        page=1,
        per_page=10,
        status="failed",
        sort="recent",
    )
    reconciler.get_stats.assert_called_once_with(repository="A/B")
    reconciler.get_activity.assert_called_once_with(repository="A/B", days=7)
    reconciler.get_successful_deployments.assert_called_once_with(repository="A/B")
    reconciler.get_deployment_status.assert_called_once_with(repository="A/B")
    assert dashboard_mock.call_args.kwargs["repository"] == "A/B"


def test_run_command_lists_repositories():
    """Verify --list-repos renders the registry without fetching anything."""
    reconciler = Mock()
    reconciler.list_repositories.return_value = RepositoryRegistry(repositories=("A/B", "C/D"), default="A/B")

    output = run_command(reconciler, _args(list_repos=True))

    assert "A/B (default)" in output
    assert "C/D" in output
    reconciler.get_runs.assert_not_called()


def test_run_command_with_run_id_renders_details_or_failures():
    """Verify --run-id routes to run details, and --failures to the failure summary."""
    reconciler = Mock()

    with patch("actions_tracker.main.generate_run_details", return_value="DETAILS"), patch(
        "actions_tracker.main.generate_failure_report", return_value="FAILURES"
    ):
        details = run_command(reconciler, _args(repo="A/B", run_id=5, include_jobs=True))
        failures = run_command(reconciler, _args(repo="A/B", run_id=5, failures=True))

    assert details == "DETAILS"
    assert failures == "FAILURES"
    reconciler.get_run_details.assert_called_once_with(repository="A/B", run_id=5, include_jobs=True)
    reconciler.get_run_failures.assert_called_once_with(repository="A/B", run_id=5)


def test_orchestrate_dashboard_watch_stops_on_keyboard_interrupt(capsys):
    """Verify watch mode renders each cycle and exits cleanly on Ctrl-C."""
    args = _args(watch=30)

    with patch("actions_tracker.main.parse_args", return_value=args), patch(
        "actions_tracker.main.load_config", return_value=_config()
    ), patch("actions_tracker.main.GitHubClient"), patch("actions_tracker.main.Reconciler"), patch(
        "actions_tracker.main.render_dashboard", return_value="DASHBOARD"
    ), patch(
        "actions_tracker.main.time.sleep", side_effect=KeyboardInterrupt
    ) as sleep_mock:
        exit_code = orchestrate_dashboard()

    assert exit_code == 0
    sleep_mock.assert_called_once_with(30)
    assert "DASHBOARD" in capsys.readouterr().out


def test_watch_dashboard_keeps_running_after_failed_tick(capsys, caplog):
    """Verify a GitHub outage on one tick is logged and the next tick still renders."""
    args = _args(watch=5)
    render_results = [UpstreamUnavailableError("transient"), "DASHBOARD"]

    with patch("actions_tracker.main.parse_args", return_value=args), patch(
        "actions_tracker.main.load_config", return_value=_config()
    ), patch("actions_tracker.main.GitHubClient"), patch("actions_tracker.main.Reconciler"), patch(
        "actions_tracker.main.render_dashboard", side_effect=render_results
    ) as render_mock, patch(
        "actions_tracker.main.time.sleep", side_effect=[None, KeyboardInterrupt]
    ) as sleep_mock:
        exit_code = orchestrate_dashboard()

    assert exit_code == 0
    assert render_mock.call_count == 2
    assert sleep_mock.call_count == 2
    assert "DASHBOARD" in capsys.readouterr().out
    assert any("transient" in record.getMessage() for record in caplog.records)


def test_render_dashboard_fetches_runs_once_per_render():
    """Verify one dashboard render performs a single upstream run fetch on a warm cache."""
    config = _config()
    client = Mock()
    client.list_workflow_runs.return_value = [_raw_run()]
    client.list_deployments.return_value = []
    reconciler = Reconciler(config=config, client=client, store=RecordStore())
    reconciler.get_stats("A/B")
    client.list_workflow_runs.reset_mock()

    output = render_dashboard(reconciler, _args())

    assert "Repository: A/B" in output
    assert client.list_workflow_runs.call_count == 1


def _run_with_error(error: Exception) -> int:
    with patch("actions_tracker.main.parse_args", return_value=_args()), patch(
        "actions_tracker.main.load_config", return_value=_config()
    ), patch("actions_tracker.main.GitHubClient"), patch("actions_tracker.main.Reconciler"), patch(
        "actions_tracker.main.run_command", side_effect=error
    ):
        return orchestrate_dashboard()


def test_orchestrate_dashboard_invalid_request_returns_invalid_exit_code():
    """Verify invalid requests map to exit code 2."""
    assert _run_with_error(InvalidRequestError("Run ID is required")) == 2


def test_orchestrate_dashboard_not_found_returns_not_found_exit_code():
    """Verify missing runs map to exit code 3."""
    assert _run_with_error(NotFoundError("missing")) == 3


def test_orchestrate_dashboard_upstream_error_returns_upstream_exit_code():
    """Verify GitHub failures map to exit code 4."""
    assert _run_with_error(UpstreamUnavailableError("GitHub is down")) == 4


def test_orchestrate_dashboard_unexpected_error_returns_generic_exit_code():
    """Verify unexpected exceptions are mapped to the generic non-zero exit code."""
    with patch("actions_tracker.main.parse_args", side_effect=RuntimeError("boom")):
        exit_code = orchestrate_dashboard()

    assert exit_code == 1
