"""CLI for the Container CPU Monitor.

Provides a command-line interface using Typer for:
- Serving the HTTP API
- Watching a single container's average CPU usage from the terminal
- Generating a sample configuration file
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

import typer
import uvicorn
from docker.errors import DockerException, NotFound
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from cpu_monitor.api.app import create_app
from cpu_monitor.core.config import load_config
from cpu_monitor.core.schemas import MonitorConfig
from cpu_monitor.monitoring.registry import ContainerMonitor
from cpu_monitor.runtime.docker_runtime import DockerRuntime
from cpu_monitor.utils.logging import setup_logging

app = typer.Typer(
    name="cpu-monitor",
    help="Time-weighted CPU usage monitor for Docker containers",
    add_completion=False,
)

console = Console()
logger = logging.getLogger(__name__)


def _load_config_or_exit(config: Path | None) -> MonitorConfig:
    try:
        return load_config(config)
    except Exception as e:
        console.print(f"[bold red]Error loading config: {e}[/]")
        raise typer.Exit(1) from e


@app.command()
def serve(
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to configuration file (YAML/JSON)"
    ),
    host: str | None = typer.Option(None, "--host", help="Bind address (overrides config)"),
    port: int | None = typer.Option(None, "--port", "-p", help="HTTP port (overrides config)"),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Logging level"),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Write logs to file in addition to console"
    ),
    json_logs: bool = typer.Option(
        False, "--json-logs", help="Output logs in JSON format (for programmatic parsing)"
    ),
) -> None:
    """Serve the monitoring HTTP API."""
    monitor_config = _load_config_or_exit(config)

    options = {"host": host, "port": port, "log_level": log_level, "json_logs": json_logs or None}
    overrides = {key: value for key, value in options.items() if value is not None}
    try:
        monitor_config = MonitorConfig.model_validate({**monitor_config.model_dump(), **overrides})
    except ValidationError as e:
        console.print(f"[bold red]Invalid option: {e}[/]")
        raise typer.Exit(1) from e

    setup_logging(
        level=monitor_config.log_level,
        log_file=log_file,
        json_format=monitor_config.json_logs,
        rich_console=not monitor_config.json_logs,
    )

    try:
        api = create_app(config=monitor_config)
    except DockerException as e:
        console.print(f"[bold red]Cannot connect to Docker: {e}[/]")
        raise typer.Exit(1) from e

    _show_config_summary(monitor_config)
    uvicorn.run(api, host=monitor_config.host, port=monitor_config.port, log_config=None)


@app.command()
def watch(
    container_id: str = typer.Argument(..., help="Container ID or name to monitor"),
    interval: float = typer.Option(
        2.0, "--interval", "-i", min=0.1, help="Seconds between average reports"
    ),
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to configuration file (YAML/JSON)"
    ),
    log_level: str = typer.Option("WARNING", "--log-level", "-l", help="Logging level"),
) -> None:
    """Monitor one container and print its running average until it stops."""
    setup_logging(level=log_level)
    monitor_config = _load_config_or_exit(config)

    try:
        runtime = DockerRuntime.from_config(monitor_config)
    except DockerException as e:
        console.print(f"[bold red]Cannot connect to Docker: {e}[/]")
        raise typer.Exit(1) from e

    monitor = ContainerMonitor(poll_interval_seconds=monitor_config.poll_interval_seconds)
    try:
        monitor.start(container_id, runtime.open_stats_stream, runtime.snapshot_state)
    except NotFound as e:
        console.print(f"[bold red]Container not found: {container_id}[/]")
        raise typer.Exit(1) from e
    except DockerException as e:
        console.print(f"[bold red]Could not open stats stream: {e}[/]")
        raise typer.Exit(1) from e

    console.print(f"[bold blue]Monitoring {container_id} (Ctrl+C to stop)[/]")
    started = time.monotonic()
    last_average: float | None = None
    last_count = 0
    try:
        while True:
            time.sleep(interval)
            average = monitor.average_usage(container_id)
            if average is None:
                console.print("[bold yellow]Container is no longer running[/]")
                break
            last_average = average
            last_count = monitor.sample_count(container_id) or 0
            console.print(f"avg CPU [green]{average:6.2f}%[/]  ({last_count} samples)")
    except KeyboardInterrupt:
        console.print()
    finally:
        monitor.shutdown()
        runtime.close()

    _show_watch_summary(container_id, last_average, last_count, time.monotonic() - started)


@app.command()
def init_config(
    output: Path = typer.Option(
        Path("cpu-monitor.yaml"), "--output", "-o", help="Output configuration file"
    ),
) -> None:
    """Generate a sample configuration file."""
    sample_config = """\
# Container CPU Monitor configuration

# Seconds between container state checks
poll_interval_seconds: 1.0

# Docker daemon (omit to use DOCKER_HOST or the local socket)
# docker_base_url: "unix:///var/run/docker.sock"
docker_timeout_seconds: 60

# HTTP API
host: "0.0.0.0"
port: 3000

# Logging
log_level: INFO
json_logs: false
"""
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(sample_config)
    console.print(f"[bold green]Sample configuration written to {output}[/]")


def _show_config_summary(config: MonitorConfig) -> None:
    """Display a summary of the service configuration."""
    table = Table(title="CPU Monitor Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Listen", f"{config.host}:{config.port}")
    table.add_row("Poll Interval", f"{config.poll_interval_seconds}s")
    table.add_row("Docker", config.docker_base_url or "from environment")
    table.add_row("Log Level", config.log_level)

    console.print(table)


def _show_watch_summary(
    container_id: str, average: float | None, sample_count: int, elapsed_seconds: float
) -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Container", f"[cyan]{container_id}[/]")
    table.add_row("Watched", f"{elapsed_seconds:.1f}s")
    table.add_row("Samples", str(sample_count))
    table.add_row("Average CPU", f"[green]{average:.2f}%[/]" if average is not None else "N/A")

    console.print(table)
    logger.debug(f"Watch of {container_id} finished after {elapsed_seconds:.1f}s")


if __name__ == "__main__":
    app()
