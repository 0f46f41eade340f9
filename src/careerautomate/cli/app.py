from __future__ import annotations

import json

import typer
import uvicorn

from careerautomate.config import get_settings
from careerautomate.core.system_controls import backend_row_fetcher, read_flags
from careerautomate.db.init import init_database
from careerautomate.errors import ServiceError
from careerautomate.logging_config import configure_logging
from careerautomate.services.registry import build_services

app = typer.Typer(help="CareerAutomate CLI")

_SECRET_FIELDS = {"secret_key", "supabase_anon_key"}


@app.command("init")
def init_cmd() -> None:
    """Create data directories and the local session tables."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
    reload: bool = typer.Option(False, "--reload"),
    log_level: str | None = typer.Option(None, "--log-level"),
) -> None:
    configure_logging(log_level)
    settings = get_settings()
    uvicorn.run(
        "careerautomate.api.app:create_app",
        factory=True,
        host=host or settings.app_host,
        port=port or settings.app_port,
        reload=reload,
        log_level=(log_level or settings.log_level).lower(),
    )


@app.command("controls")
def controls_cmd() -> None:
    """Print the operator flags as the backend currently reports them."""
    configure_logging()
    settings = get_settings()
    services = build_services(settings)
    try:
        emergency_stop, automations_stopped = read_flags(backend_row_fetcher(services.backend)())
    except ServiceError as exc:
        typer.echo(f"Could not read system controls: {exc.user_message}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(
        json.dumps(
            {"emergency_stop": emergency_stop, "automations_stopped": automations_stopped},
            indent=2,
        )
    )


@app.command("config")
def config_cmd() -> None:
    configure_logging()
    values = get_settings().model_dump(mode="json")
    for field in _SECRET_FIELDS:
        if values.get(field):
            values[field] = "***"
    typer.echo(json.dumps(values, indent=2, sort_keys=True))


if __name__ == "__main__":
    app()
