"""Tests for the mirror CLI (mirror/cli.py)."""

import json
from unittest.mock import AsyncMock, patch

import click.testing
import pytest

from mirror.cli import cli
from mirror.schemas.lists import ListCategory
from mirror.schemas.mail import PollResult


@pytest.fixture
def runner():
    return click.testing.CliRunner()


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "lists"
    with (
        patch("mirror.cli.LIST_DATA_DIR", new=str(path)),
        patch("mirror.cli.INGEST_AUDIT_LOG_PATH", new=str(tmp_path / "audit.jsonl")),
    ):
        yield path


class TestHelp:
    def test_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("serve", "poll", "show", "add", "clear", "status"):
            assert command in result.output

    def test_poll_category_choices(self, runner):
        result = runner.invoke(cli, ["poll", "--help"])
        assert result.exit_code == 0
        assert "--category" in result.output


class TestAddShowClear:
    def test_add_then_show(self, runner, data_dir):
        result = runner.invoke(cli, ["add", "costco", "Rice", "Olive oil", "Rice"])
        assert result.exit_code == 0
        assert "Added 2 item(s) to costco" in result.output
        assert json.loads((data_dir / "costco_list.json").read_text()) == ["Rice", "Olive oil"]

        result = runner.invoke(cli, ["show", "costco"])
        assert result.exit_code == 0
        assert "costco (2)" in result.output
        assert "  - Rice" in result.output
        assert "  - Olive oil" in result.output

    def test_show_all_empty(self, runner, data_dir):
        result = runner.invoke(cli, ["show"])
        assert result.exit_code == 0
        assert "shopping (0)" in result.output
        assert "amazon (0)" in result.output
        assert "(empty)" in result.output

    def test_show_all_follows_store_categories(self, runner, data_dir):
        from mirror.lists.store import ListStore

        store = ListStore.open(data_dir, [ListCategory.COSTCO])
        with patch("mirror.cli._open_store", return_value=store):
            result = runner.invoke(cli, ["show"])

        assert result.exit_code == 0
        assert "costco (0)" in result.output
        assert "shopping" not in result.output

    def test_add_unknown_category(self, runner, data_dir):
        result = runner.invoke(cli, ["add", "walmart", "Rice"])
        assert result.exit_code != 0

    def test_clear_with_yes(self, runner, data_dir):
        runner.invoke(cli, ["add", "amazon", "Cable"])
        result = runner.invoke(cli, ["clear", "amazon", "--yes"])
        assert result.exit_code == 0
        assert json.loads((data_dir / "amazon_list.json").read_text()) == []

    def test_clear_aborted(self, runner, data_dir):
        runner.invoke(cli, ["add", "amazon", "Cable"])
        result = runner.invoke(cli, ["clear", "amazon"], input="n\n")
        assert result.exit_code != 0
        assert json.loads((data_dir / "amazon_list.json").read_text()) == ["Cable"]


class TestPoll:
    def test_missing_mailbox_config(self, runner, data_dir):
        with patch("mirror.cli.mailbox_configured", return_value=False):
            result = runner.invoke(cli, ["poll"])
        assert result.exit_code == 1
        assert "IMAP_HOST" in result.output

    def test_prints_results(self, runner, data_dir):
        results = [
            PollResult(category=ListCategory.SHOPPING, matched=1, processed=1, items_added=2),
            PollResult(category=ListCategory.AMAZON),
        ]
        with (
            patch("mirror.cli.mailbox_configured", return_value=True),
            patch("mirror.cli.mailbox_config"),
            patch(
                "mirror.orchestrator.poller.run_poll_cycle", new=AsyncMock(return_value=results)
            ) as mock_cycle,
        ):
            result = runner.invoke(cli, ["poll", "-c", "shopping", "-c", "amazon"])

        assert result.exit_code == 0
        assert "shopping: matched=1 processed=1 added=2" in result.output
        assert mock_cycle.await_args.args[0] == [ListCategory.SHOPPING, ListCategory.AMAZON]

    def test_errors_exit_nonzero(self, runner, data_dir):
        results = [PollResult(category=ListCategory.COSTCO, error="connection refused")]
        with (
            patch("mirror.cli.mailbox_configured", return_value=True),
            patch("mirror.cli.mailbox_config"),
            patch("mirror.orchestrator.poller.run_poll_cycle", new=AsyncMock(return_value=results)),
        ):
            result = runner.invoke(cli, ["poll", "-c", "costco"])

        assert result.exit_code == 1
        assert "connection refused" in result.output


class TestStatus:
    def test_status_overview(self, runner, data_dir):
        runner.invoke(cli, ["add", "shopping", "Milk"])
        with (
            patch("mirror.cli.mailbox_configured", return_value=True),
            patch("mirror.cli.google_calendar_configured", return_value=False),
        ):
            result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0
        assert "Mirror Status" in result.output
        assert "1 item(s)" in result.output
        assert "Mailbox:            configured" in result.output
        assert "Google Calendar:    not configured" in result.output
        assert "Emails ingested (24h): 0" in result.output


class TestServe:
    def test_serve_without_mailbox_skips_polling(self, runner, data_dir):
        with (
            patch("mirror.cli.mailbox_configured", return_value=False),
            patch("uvicorn.run") as mock_run,
        ):
            result = runner.invoke(cli, ["serve", "--port", "4000"])

        assert result.exit_code == 0
        assert "without email polling" in result.output
        _args, kwargs = mock_run.call_args
        assert kwargs["port"] == 4000

    def test_serve_with_mailbox_builds_scheduler(self, runner, data_dir):
        with (
            patch("mirror.cli.mailbox_configured", return_value=True),
            patch("mirror.cli.mailbox_config"),
            patch("mirror.orchestrator.scheduler.PollScheduler") as mock_scheduler,
            patch("mirror.api.app.create_app") as mock_create,
            patch("uvicorn.run"),
        ):
            result = runner.invoke(cli, ["serve"])

        assert result.exit_code == 0
        mock_scheduler.assert_called_once()
        assert mock_create.call_args.kwargs["scheduler"] is mock_scheduler.return_value
