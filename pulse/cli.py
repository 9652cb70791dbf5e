"""CLI interface for Pulse.

Usage:
    pulse run [--config PATH] [--verbose] [--no-notify]
    pulse check [--wifi/--no-wifi]
    pulse config show|set|import|export
    pulse version
"""

import json
import signal
import threading
from pathlib import Path
from typing import Optional

import typer
from loguru import logger

from pulse import __version__
from pulse.app import STATE_MESSAGES, PulseApp, build_service
from pulse.core.config import Config
from pulse.core.logger import configure_logging
from pulse.core.types import PathSnapshot
from pulse.services.monitoring import PsutilPathObserver

app = typer.Typer(
    name="pulse",
    help="Pulse - Know when your Wi-Fi is up but the internet is not",
    add_completion=False,
)
config_app = typer.Typer(help="Manage configuration")
app.add_typer(config_app, name="config")

ConfigOption = typer.Option(None, "--config", "-c", help="Path to configuration file")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable debug logging")


def _init_core(config_path: Optional[Path], verbose: bool = False) -> Config:
    """Configure logging and load configuration."""
    config = Config(config_path)
    level = "DEBUG" if verbose else str(config.get("log_level", "info"))
    configure_logging(level)
    return config


def _wait_for_shutdown():
    """Block until Ctrl+C or SIGTERM."""
    stop_event = threading.Event()

    def _handle_sigterm(signum, frame):
        stop_event.set()

    try:
        signal.signal(signal.SIGTERM, _handle_sigterm)
    except ValueError:
        # Not in the main thread
        pass

    try:
        while not stop_event.wait(1.0):
            pass
    except KeyboardInterrupt:
        typer.echo("")


def _parse_value(raw: str):
    """Interpret a CLI value as JSON (numbers, booleans) and fall back to a string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


@app.command()
def run(
    config_path: Optional[Path] = ConfigOption,
    verbose: bool = VerboseOption,
    no_notify: bool = typer.Option(False, "--no-notify", help="Log transitions without desktop notifications"),
):
    """Watch connectivity and notify on every change."""
    config = _init_core(config_path, verbose)
    if no_notify:
        config.set("notifications.enabled", False)

    try:
        pulse = PulseApp(config)
    except ValueError as e:
        typer.echo(f"❌ Error: invalid configuration: {e}", err=True)
        raise typer.Exit(1)

    pulse.start()
    typer.echo("👀 Watching connectivity (Ctrl+C to stop)...")
    try:
        _wait_for_shutdown()
    finally:
        typer.echo("🛑 Stopping...")
        pulse.stop()


@app.command()
def check(
    config_path: Optional[Path] = ConfigOption,
    verbose: bool = VerboseOption,
    wifi: Optional[bool] = typer.Option(None, "--wifi/--no-wifi", help="Override Wi-Fi detection"),
):
    """Run one connectivity evaluation and print the result."""
    config = _init_core(config_path, verbose)

    path = PsutilPathObserver().snapshot()
    if wifi is not None:
        path = PathSnapshot(
            satisfied=path.satisfied if path else True,
            is_wifi=wifi,
            interface=path.interface if path else None,
        )

    if path is not None:
        link = "up" if path.satisfied else "down"
        kind = "Wi-Fi" if path.is_wifi else "non-Wi-Fi"
        typer.echo(f"🔌 Link {link} ({kind}{', ' + path.interface if path.interface else ''})")
    else:
        typer.echo("🔌 Link state unknown")

    try:
        service = build_service(config)
    except ValueError as e:
        typer.echo(f"❌ Error: invalid configuration: {e}", err=True)
        raise typer.Exit(1)

    state = service.evaluate(path)
    logger.debug(f"[CLI] check -> {state}")
    typer.echo(f"{STATE_MESSAGES[state]} ({state.value})")


@app.command()
def version():
    """Show version."""
    typer.echo(f"Pulse v{__version__}")


@config_app.command("show")
def config_show(config_path: Optional[Path] = ConfigOption):
    """Show current configuration."""
    config = Config(config_path)
    typer.echo(f"Configuration file: {config.config_path}")
    typer.echo(json.dumps(config.config_data, indent=2))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Dot-notation key, e.g. watcher.debounce_delay"),
    value: str = typer.Argument(..., help="Value (JSON literals are parsed)"),
    config_path: Optional[Path] = ConfigOption,
):
    """Set a configuration value and save."""
    parsed = _parse_value(value)
    try:
        Config.validate(key, parsed)
    except ValueError as e:
        typer.echo(f"❌ Error: {e}", err=True)
        raise typer.Exit(1)

    config = Config(config_path)
    config.set(key, parsed)
    try:
        config.save()
    except OSError as e:
        typer.echo(f"❌ Error: could not save configuration: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"✓ {key} = {config.get(key)}")


@config_app.command("import")
def config_import(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to import"),
    file_format: str = typer.Option("json", "--format", help="File format (json or yaml)"),
    config_path: Optional[Path] = ConfigOption,
):
    """Import configuration from file."""
    if file_format not in ("json", "yaml"):
        typer.echo(f"❌ Error: unsupported format '{file_format}'", err=True)
        raise typer.Exit(1)

    config = Config(config_path)
    if config.import_config(file, file_format):
        typer.echo(f"✓ Configuration imported from {file}")
    else:
        typer.echo("✗ Failed to import configuration", err=True)
        raise typer.Exit(1)


@config_app.command("export")
def config_export(
    file: Path = typer.Argument(..., help="Destination file"),
    file_format: str = typer.Option("json", "--format", help="File format (json or yaml)"),
    config_path: Optional[Path] = ConfigOption,
):
    """Export configuration to file."""
    if file_format not in ("json", "yaml"):
        typer.echo(f"❌ Error: unsupported format '{file_format}'", err=True)
        raise typer.Exit(1)

    config = Config(config_path)
    if config.export_config(file, file_format):
        typer.echo(f"✓ Configuration exported to {file}")
    else:
        typer.echo("✗ Failed to export configuration", err=True)
        raise typer.Exit(1)


def main():
    app()


if __name__ == "__main__":
    main()
