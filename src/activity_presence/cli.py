"""Command-line interface for the presence broadcaster."""

from __future__ import annotations

import json
import logging
import signal
from pathlib import Path
from typing import Optional

import typer

from .classifier import classify
from .config import ConfigError, PresenceSettings, load_settings, save_settings
from .models import RawWindowSample
from .paths import get_config_path, get_log_path
from .reporting import SummaryPrinter, describe_result

app = typer.Typer(help="Broadcast your current activity as a Discord presence.")

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@app.callback(no_args_is_help=True)
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs."),
    log_to_file: bool = typer.Option(
        False, "--log-file/--no-log-file", help="Also write logs to the user log directory."
    ),
) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_to_file:
        handlers.append(logging.FileHandler(get_log_path(), encoding="utf-8"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
    )


def _load(config_path: Optional[Path], create_missing: bool) -> PresenceSettings:
    try:
        return load_settings(config_path or get_config_path(), create_missing=create_missing)
    except ConfigError as exc:
        typer.echo(f"Error loading config: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def run(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        path_type=Path,
        help="Location of config.json.",
    ),
    init_config: bool = typer.Option(
        True,
        "--init-config/--no-init-config",
        help="Write a default config when none exists instead of exiting.",
    ),
) -> None:
    """Poll the foreground window and publish it until interrupted."""
    from .app import PresenceApp
    from .metrics import sample_metrics
    from .probe import create_idle_detector
    from .transport import PypresenceTransport

    settings = _load(config_path, init_config)
    if not settings.default_client_id:
        typer.echo("defaultClientId is empty; set it in the config file.", err=True)
        raise typer.Exit(code=1)

    presence = PresenceApp(
        settings,
        PypresenceTransport,
        idle_detector=create_idle_detector(),
        metrics_source=sample_metrics,
    )

    def _handle_signal(signum: int, _frame: object) -> None:
        logger.info("Received %s, shutting down...", signal.Signals(signum).name)
        presence.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    typer.echo("Presence broadcaster running. Press Ctrl+C to exit.")
    try:
        presence.run()
    finally:
        presence.stop()
        SummaryPrinter(presence.tracker.totals()).print_session_summary()


@app.command("classify")
def classify_command(
    title: str = typer.Argument(..., help="Window title to classify."),
    process: str = typer.Argument(..., help="Process name owning the window."),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", path_type=Path, help="Location of config.json."
    ),
) -> None:
    """Show how a window title and process name would be classified."""
    settings = _load(config_path, create_missing=False) if config_path else PresenceSettings()
    sample = RawWindowSample(window_title=title, process_name=process)
    result = classify(sample, settings.priority_rules, settings.custom_rules)
    typer.echo(describe_result(result))


@app.command("init-config")
def init_config_command(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", path_type=Path, help="Where to write config.json."
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    """Write the default configuration file."""
    path = config_path or get_config_path()
    if path.exists() and not force:
        typer.echo(f"{path} already exists; use --force to overwrite.", err=True)
        raise typer.Exit(code=1)
    save_settings(path, PresenceSettings())
    typer.echo(f"Wrote default configuration to {path}")


@app.command("show-config")
def show_config(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", path_type=Path, help="Location of config.json."
    ),
) -> None:
    """Print the effective configuration."""
    settings = _load(config_path, create_missing=False)
    typer.echo(json.dumps(settings.to_dict(), indent=2))
