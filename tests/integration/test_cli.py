import json

from typer.testing import CliRunner

from careerautomate.cli.app import app

runner = CliRunner()


def test_init_creates_session_tables() -> None:
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0
    tables = json.loads(result.stdout)["tables"]
    assert "ui_sessions" in tables
    assert "wizard_drafts" in tables


def test_config_masks_secrets() -> None:
    result = runner.invoke(app, ["config"])
    assert result.exit_code == 0
    values = json.loads(result.stdout)
    assert values["secret_key"] == "***"
    assert values["session_timeout_min"] == 15


def test_controls_reports_backend_failure(monkeypatch) -> None:
    from careerautomate.cli import app as cli_module
    from careerautomate.errors import ServiceError

    class Unreachable:
        def select(self, *args, **kwargs):
            raise ServiceError("Failed to load system_controls", status_code=503)

    monkeypatch.setattr(cli_module, "build_services", lambda settings: type("S", (), {"backend": Unreachable()})())
    result = runner.invoke(app, ["controls"])
    assert result.exit_code == 1


def test_sqlite_parent_only_for_file_databases() -> None:
    from pathlib import Path

    from careerautomate.db.init import sqlite_parent

    assert sqlite_parent("sqlite:///./data/careerautomate.db") == Path("./data")
    assert sqlite_parent("sqlite:///:memory:") is None
    assert sqlite_parent("postgresql://app@db/careerautomate") is None
