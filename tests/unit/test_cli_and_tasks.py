"""
Unit tests for the typer CLI and the Celery job task.
"""
from unittest.mock import AsyncMock, MagicMock, patch

from typer.testing import CliRunner

from cio import __version__
from cio.cli.cli import app
from cio.core.celery_app import celery_app
from cio.core.exceptions import ValidationError
from cio.services.functions import JobName
from cio.tasks.sync import run_job_task

runner = CliRunner()


class TestCLI:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_jobs_list_shows_scope(self):
        result = runner.invoke(app, ["jobs", "list"])
        assert result.exit_code == 0
        assert "sync-companies" in result.output
        assert "global" in result.output

    def test_jobs_run_exits_non_zero_on_failure(self):
        rows = [{"id": 1, "company_id": 1, "status": "completed", "conclusion": "failure"}]
        with patch("cio.cli.commands.jobs._run", new=AsyncMock(return_value=rows)), \
                patch("cio.cli.commands.jobs.setup_logging"):
            result = runner.invoke(app, ["jobs", "run", "sync-travel", "--company", "Oxide"])

        assert result.exit_code == 1
        assert "failure" in result.output

    def test_jobs_run_succeeds(self):
        rows = [{"id": 1, "company_id": 1, "status": "completed", "conclusion": "success"}]
        with patch("cio.cli.commands.jobs._run", new=AsyncMock(return_value=rows)), \
                patch("cio.cli.commands.jobs.setup_logging"):
            result = runner.invoke(app, ["jobs", "run", "sync-travel"])

        assert result.exit_code == 0

    def test_tokens_connect(self):
        with patch("cio.cli.commands.tokens._connect", new=AsyncMock(return_value="2026-01-01")) as connect, \
                patch("cio.cli.commands.tokens.setup_logging"):
            result = runner.invoke(app, ["tokens", "connect", "ramp", "--company", "Oxide"])

        assert result.exit_code == 0
        assert "Connected" in result.output
        connect.assert_awaited_once_with("ramp", "Oxide")

    def test_tokens_connect_unsupported_product(self):
        error = ValidationError("Unsupported client-credentials product: zoom")
        with patch("cio.cli.commands.tokens._connect", new=AsyncMock(side_effect=error)), \
                patch("cio.cli.commands.tokens.setup_logging"):
            result = runner.invoke(app, ["tokens", "connect", "zoom", "--company", "Oxide"])

        assert result.exit_code == 1
        assert "Unsupported" in result.output


class TestRunJobTask:
    def test_task_runs_job_and_returns_rows(self):
        function = MagicMock(id=7, cio_company_id=1, status="completed", conclusion="success")
        with patch("cio.tasks.sync.run_job", new=AsyncMock(return_value=[function])) as run_job:
            result = run_job_task("sync-travel", "Oxide")

        assert result == {
            "job": "sync-travel",
            "functions": [{"id": 7, "company_id": 1, "status": "completed", "conclusion": "success"}],
        }
        assert run_job.await_args.args[1:3] == ("sync-travel", "Oxide")

    def test_every_job_is_scheduled(self):
        scheduled = {entry["args"][0] for entry in celery_app.conf.beat_schedule.values()}
        assert scheduled == {job.value for job in JobName}
