"""CLI entrypoint for the memory pool simulator.

Usage:
    poolsim run workloads/first_fit_demo.yaml
    poolsim list
    poolsim serve --port 8080 --capacity 4096
"""

from pathlib import Path

import typer
import uvicorn
import yaml
from pydantic import ValidationError

from poolsim import __version__
from poolsim.adapters.config.logging import configure_logging, get_logger
from poolsim.adapters.config.settings import get_settings
from poolsim.adapters.config.workload_loader import discover_workloads, load_workload
from poolsim.application.workload_runner import WorkloadRunner
from poolsim.domain.errors import PoolSimError
from poolsim.entrypoints.api_server import create_app

app = typer.Typer(
    name="poolsim",
    help="First-fit memory pool simulator",
    add_completion=False,
)


@app.command()
def run(
    path: Path = typer.Argument(..., help="Workload YAML file"),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only print the final reports",
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        "-l",
        help="Log level for run diagnostics (written to stderr)",
    ),
) -> None:
    """Replay a workload and print its transcript and final reports.

    Exits with status 1 if any step's expectation did not match, and 2 if
    the workload could not be loaded or executed.

    Example:
        $ poolsim run workloads/first_fit_demo.yaml
        $ poolsim run my_workload.yaml --quiet
    """
    configure_logging(log_level, json_output=False)
    logger = get_logger(__name__)

    try:
        workload = load_workload(path)
    except FileNotFoundError as e:
        typer.echo(f"Workload not found: {path}", err=True)
        raise typer.Exit(code=2) from e
    except (OSError, UnicodeDecodeError) as e:
        typer.echo(f"Cannot read workload {path}: {e}", err=True)
        raise typer.Exit(code=2) from e
    except (yaml.YAMLError, ValidationError) as e:
        typer.echo(f"Invalid workload {path}:\n{e}", err=True)
        raise typer.Exit(code=2) from e

    try:
        result = WorkloadRunner(workload).run()
    except PoolSimError as e:
        logger.error("workload_aborted", workload=workload.id, error=str(e))
        typer.echo(f"Workload {workload.id} aborted: {e}", err=True)
        raise typer.Exit(code=2) from e

    if not quiet:
        typer.echo(f"# {workload.title} (capacity {workload.capacity})")
        for step in result.steps:
            typer.echo(step.describe())
            if step.output:
                typer.echo(step.output, nl=False)
        typer.echo("# final")
    typer.echo(result.final_active, nl=False)
    typer.echo(result.final_available, nl=False)

    if not result.ok:
        typer.echo(f"{len(result.mismatches)} expectation(s) failed", err=True)
        raise typer.Exit(code=1)


@app.command("list")
def list_workloads(
    directory: Path = typer.Argument(
        None,
        help="Directory to scan (default: from settings)",
    ),
) -> None:
    """List workload files available in a directory."""
    directory = directory or Path(get_settings().workload.directory)
    workloads = discover_workloads(directory)
    if not workloads:
        typer.echo(f"No workloads found in {directory}")
        return
    for workload_id, path in workloads.items():
        typer.echo(f"{workload_id}\t{path}")


@app.command()
def serve(
    host: str = typer.Option(
        None,
        "--host",
        "-h",
        help="Server bind address (default: from settings)",
    ),
    port: int = typer.Option(
        None,
        "--port",
        "-p",
        help="Server port (default: from settings)",
    ),
    capacity: int = typer.Option(
        None,
        "--capacity",
        "-c",
        min=1,
        help="Pool capacity in bytes (default: from settings)",
    ),
    log_level: str = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level (default: from settings)",
    ),
) -> None:
    """Start the pool HTTP server.

    Example:
        $ poolsim serve
        $ poolsim serve --host 0.0.0.0 --port 8080 --capacity 65536
    """
    settings = get_settings()

    final_host = host or settings.server.host
    final_port = port or settings.server.port
    final_log_level = log_level or settings.server.log_level

    if capacity:
        settings.pool.capacity = capacity
    settings.server.log_level = final_log_level.upper()

    fastapi_app = create_app()
    get_logger(__name__).info(
        "server_starting",
        host=final_host,
        port=final_port,
        capacity=settings.pool.capacity,
    )

    uvicorn.run(
        fastapi_app,
        host=final_host,
        port=final_port,
        log_level=final_log_level.lower(),
        access_log=True,
    )


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"poolsim v{__version__}")


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = get_settings()

    typer.echo("=" * 60)
    typer.echo("poolsim - Configuration")
    typer.echo("=" * 60)
    typer.echo()
    typer.echo("[Pool]")
    typer.echo(f"  Capacity: {settings.pool.capacity} bytes")
    typer.echo()
    typer.echo("[Server]")
    typer.echo(f"  Host: {settings.server.host}")
    typer.echo(f"  Port: {settings.server.port}")
    typer.echo(f"  Log level: {settings.server.log_level}")
    typer.echo(f"  JSON logs: {settings.server.json_logs}")
    typer.echo()
    typer.echo("[Workloads]")
    typer.echo(f"  Directory: {settings.workload.directory}")
    typer.echo("=" * 60)


def main() -> None:
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
