"""Main CLI entry point for cognigen.

This module provides the Typer application with the generation commands and
the web server launcher.

Usage:
    cognigen generate "login form with validation" --framework react
    cognigen generate --mode from-specification --spec spec.json --target project
    cognigen history --limit 10
    cognigen serve --port 8000
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from cognigen.cli import generation as generation_cli
from cognigen.config import CognigenConfig, load_config
from cognigen.logging import setup_logging

app = typer.Typer(
    name="cognigen",
    help="cognigen: multi-stage code generation pipeline",
    no_args_is_help=True,
)

app.command("generate")(generation_cli.generate)
app.command("history")(generation_cli.history)
app.command("metrics")(generation_cli.metrics)
app.command("clear-cache")(generation_cli.clear_cache)

console = Console()


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded cognigen configuration
    """

    def __init__(self, config: CognigenConfig):
        self.config = config


_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: CognigenConfig) -> AppContext:
    """Initialize the global application context.

    Args:
        config: cognigen configuration

    Returns:
        Initialized AppContext instance
    """
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Host to bind to"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port to bind to"),
    ] = None,
) -> None:
    """Start the cognigen HTTP API.

    Host and port default to the ``[web]`` configuration section.
    """
    import uvicorn

    from cognigen.web.app import create_app

    config = get_app_context().config
    bind_host = host or config.web.host
    bind_port = port or config.web.port

    console.print("[bold cyan]Starting cognigen API server[/bold cyan]")
    console.print(f"[dim]Host:[/dim] {bind_host}")
    console.print(f"[dim]Port:[/dim] {bind_port}")
    console.print()

    uvicorn.run(
        create_app(config),
        host=bind_host,
        port=bind_port,
        log_level=config.logging.level.lower(),
    )


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Load configuration, configure logging and initialize the context."""
    try:
        config = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1)

    # Logs go to stderr so --json output on stdout stays parseable
    log_config = config.logging.model_copy(
        update={"level": "DEBUG" if verbose else config.logging.level, "format": "console"}
    )
    setup_logging(log_config, stream=sys.stderr)

    initialize_context(config)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]", style="dim")


if __name__ == "__main__":
    app()
