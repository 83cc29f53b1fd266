"""Command-line interface for the space tracker."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .config import TrackerSettings
from .errors import TrackerError
from .paths import get_db_path, get_log_path
from .server_runner import run_dashboard

app = typer.Typer(help="Track time spent in groups of applications.")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=_LOG_FORMAT,
    )


def _open_service(db_path: Optional[Path], settings: Optional[TrackerSettings] = None):
    from .service import TrackerService

    return TrackerService(db_path or get_db_path(), settings)


def _resolve_space(service, space: str):
    """Look a space up by id first, then by case-insensitive name."""
    for candidate in service.list_spaces():
        if candidate.id == space or candidate.name.casefold() == space.casefold():
            return candidate
    typer.echo(f"No space named {space!r}.", err=True)
    raise typer.Exit(code=1)


@app.command()
def track(
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the tracker SQLite database.",
    ),
    tick_seconds: int = typer.Option(
        1,
        "--interval",
        min=1,
        help="Tick interval in seconds.",
    ),
    flush_seconds: Optional[float] = typer.Option(
        None,
        "--flush-interval",
        min=1.0,
        help="How often buffered time is written (defaults to every tick).",
    ),
    log_file: bool = typer.Option(
        False, "--log-file", help="Also write logs to the data directory."
    ),
) -> None:
    """Run the tick loop until interrupted, tracking the active space."""
    if log_file:
        handler = logging.FileHandler(get_log_path(), encoding="utf-8")
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logging.getLogger().addHandler(handler)
    settings = TrackerSettings.from_intervals(tick_seconds, flush_seconds)
    service = _open_service(db_path, settings)
    try:
        service.engine.run_forever()
    finally:
        service.close()


@app.command()
def spaces(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """List spaces and their applications."""
    service = _open_service(db_path)
    try:
        rows = service.list_spaces()
        if not rows:
            typer.echo("No spaces yet. Create one with `create-space`.")
            return
        for space in rows:
            marker = "*" if space.is_active else " "
            apps = ", ".join(space.apps) or "(no apps)"
            typer.echo(f"{marker} {space.name:<20} {apps}  [{space.id}]")
    finally:
        service.close()


@app.command("create-space")
def create_space(
    name: str = typer.Argument(..., help="Display name of the space."),
    color: Optional[str] = typer.Option(None, "--color", help="Hex colour, e.g. #3b82f6."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Create a new, inactive space."""
    service = _open_service(db_path)
    try:
        space = service.create_space(name, color)
    except TrackerError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    finally:
        service.close()
    typer.echo(f"Created {space.name} [{space.id}]")


@app.command("add-app")
def add_app(
    space: str = typer.Argument(..., help="Space name or id."),
    app_name: str = typer.Argument(..., help="Application name to track."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Add an application to a space."""
    service = _open_service(db_path)
    try:
        target = _resolve_space(service, space)
        updated = service.add_app(target.id, app_name)
        typer.echo(f"{updated.name}: {', '.join(updated.apps)}")
    finally:
        service.close()


@app.command()
def toggle(
    space: str = typer.Argument(..., help="Space name or id."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Turn tracking for a space on or off."""
    service = _open_service(db_path)
    try:
        target = _resolve_space(service, space)
        is_active = service.set_active(target.id)
        typer.echo(f"{target.name} is now {'active' if is_active else 'inactive'}.")
    finally:
        service.close()


@app.command()
def summary(
    time_range: str = typer.Option(
        "day", "--range", help="One of day, week or month."
    ),
    space: Optional[str] = typer.Option(None, "--space", help="Limit to one space."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Print totals, a per-app ranking and per-day buckets."""
    from .reporting import SummaryPrinter

    service = _open_service(db_path)
    try:
        space_id = _resolve_space(service, space).id if space else None
        try:
            result = service.analytics(time_range, space_id)
        except TrackerError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=1) from exc
        SummaryPrinter().print_summary(result)
    finally:
        service.close()


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
    tick_seconds: int = typer.Option(
        1,
        "--interval",
        min=1,
        help="Tick interval in seconds.",
    ),
    flush_seconds: Optional[float] = typer.Option(
        None,
        "--flush-interval",
        min=1.0,
        help="How often buffered time is written (defaults to every tick).",
    ),
    open_browser: bool = typer.Option(
        True,
        "--open-browser/--no-open-browser",
        help="Open the API docs in your default browser.",
    ),
) -> None:
    """Start the local API with the background tick loop."""
    settings = TrackerSettings.from_intervals(tick_seconds, flush_seconds)
    run_dashboard(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        settings=settings,
        open_browser=open_browser,
    )
