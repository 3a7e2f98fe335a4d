"""Generation CLI commands.

This module provides the ``generate``, ``history``, ``metrics`` and
``clear-cache`` commands.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from cognigen.pipeline.engine import GenerationEngine
from cognigen.pipeline.factory import engine_from_config
from cognigen.pipeline.models import (
    CodeStyle,
    ComplexityLevel,
    GenerationContext,
    GenerationFailure,
    GenerationMode,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
    GenerationTarget,
    TechnicalSpecification,
)

console = Console()


def _run_with_engine(action: Any) -> Any:
    """Build an engine from the CLI context, run ``action(engine)`` and close it."""
    from cognigen.main import get_app_context

    ctx = get_app_context()

    async def _runner() -> Any:
        async with engine_from_config(ctx.config) as engine:
            return await action(engine)

    return asyncio.run(_runner())


def write_output(result: GenerationResult, output_dir: Path) -> list[Path]:
    """Write generated sources, tests, manifest and readme under ``output_dir``."""
    written: list[Path] = []

    def _write(relative: str, content: str) -> None:
        path = output_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content if content.endswith("\n") else content + "\n", encoding="utf-8")
        written.append(path)

    for component in result.components:
        _write(component.file_path, component.source)
        if component.test_source and component.test_path:
            _write(component.test_path, component.test_source)
    manifest_name = "package.json" if "project" not in result.package_manifest else "manifest.json"
    _write(manifest_name, json.dumps(result.package_manifest, indent=2))
    _write("README.md", result.readme)
    return written


def generate(
    prompt: Annotated[Optional[str], typer.Argument(help="Natural-language request")] = None,
    mode: Annotated[
        GenerationMode, typer.Option("--mode", "-m", help="Input mode")
    ] = GenerationMode.FROM_PROMPT,
    blueprint: Annotated[
        Optional[str], typer.Option("--blueprint", help="Blueprint id (from-blueprint)")
    ] = None,
    spec_file: Annotated[
        Optional[Path],
        typer.Option(
            "--spec",
            "-s",
            help="Technical specification JSON file (from-specification)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    example_file: Annotated[
        Optional[Path],
        typer.Option(
            "--example",
            help="Example source file (from-example)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    target: Annotated[
        GenerationTarget, typer.Option("--target", "-t", help="Scope of the output")
    ] = GenerationTarget.COMPONENT,
    language: Annotated[str, typer.Option("--language", "-l")] = "typescript",
    framework: Annotated[Optional[str], typer.Option("--framework", "-f")] = None,
    style: Annotated[CodeStyle, typer.Option("--style")] = CodeStyle.FUNCTIONAL,
    domain: Annotated[str, typer.Option("--domain", "-d")] = "generic",
    complexity: Annotated[
        ComplexityLevel, typer.Option("--complexity")
    ] = ComplexityLevel.STANDARD,
    tests: Annotated[
        Optional[bool], typer.Option("--tests/--no-tests", help="Force test generation on or off")
    ] = None,
    min_quality: Annotated[
        Optional[int], typer.Option("--min-quality", min=0, max=100)
    ] = None,
    user_id: Annotated[str, typer.Option("--user")] = "cli",
    project_id: Annotated[Optional[str], typer.Option("--project")] = None,
    output_dir: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Write files to this directory")
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw result as JSON")] = False,
) -> None:
    """Generate code from a prompt, blueprint, specification or example."""
    specification = None
    if spec_file is not None:
        try:
            specification = TechnicalSpecification.model_validate_json(
                spec_file.read_text(encoding="utf-8")
            )
        except ValidationError as e:
            console.print(f"[red]Invalid specification file:[/red] {escape(str(e))}")
            raise typer.Exit(code=1)

    request = GenerationRequest(
        user_id=user_id,
        project_id=project_id,
        mode=mode,
        target=target,
        prompt=prompt,
        blueprint_id=blueprint,
        specification=specification,
        example_code=example_file.read_text(encoding="utf-8") if example_file else None,
        language=language,
        framework=framework,
        style=style,
        include_tests=tests,
        min_quality_score=min_quality,
        context=GenerationContext(domain=domain, complexity=complexity),
    )

    async def _generate(engine: GenerationEngine) -> GenerationResult | GenerationFailure:
        return await engine.generate(request)

    try:
        outcome = _run_with_engine(_generate)
    except Exception as e:
        console.print(f"[red]Error running generation:[/red] {e}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(outcome.model_dump_json(indent=2))
    elif isinstance(outcome, GenerationFailure):
        console.print(
            Panel(
                f"[red]{outcome.message}[/red]\n\n"
                f"[bold]Code:[/bold] {outcome.error_code}\n"
                f"[bold]Stage:[/bold] {outcome.failed_stage}",
                title="Generation Failed",
                border_style="red",
            )
        )
    else:
        _print_result(outcome)

    if isinstance(outcome, GenerationFailure):
        raise typer.Exit(code=1)
    if output_dir is not None:
        written = write_output(outcome, output_dir)
        console.print(f"[green]Wrote {len(written)} files to {output_dir}[/green]")


def _print_result(result: GenerationResult) -> None:
    color = "green" if result.validated else "yellow"
    console.print(
        Panel(
            f"[{color}]Generation completed[/{color}]\n\n"
            f"[bold]Generation:[/bold] {result.generation_id}\n"
            f"[bold]Architecture:[/bold] {result.architecture.style}\n"
            f"[bold]Quality:[/bold] {result.quality_score}/100\n"
            f"[bold]Validated:[/bold] {result.validated}\n"
            f"[bold]Degraded:[/bold] {result.degraded}",
            title="Generation Result",
            border_style=color,
        )
    )
    table = Table(title="Components")
    table.add_column("Name", style="bold")
    table.add_column("Type", style="magenta")
    table.add_column("Path", style="cyan")
    table.add_column("Lines", justify="right")
    table.add_column("Complexity", justify="right")
    table.add_column("Tests")
    for component in result.components:
        table.add_row(
            component.name,
            component.type,
            component.file_path,
            str(component.metadata.line_count),
            str(component.metadata.complexity),
            "yes" if component.test_source else "no",
        )
    console.print(table)
    for name in result.skipped_components:
        console.print(f"[yellow]Skipped:[/yellow] {name}")


def history(
    limit: Annotated[int, typer.Option("--limit", "-n", min=1)] = 20,
    user_id: Annotated[Optional[str], typer.Option("--user")] = None,
    project_id: Annotated[Optional[str], typer.Option("--project")] = None,
    status: Annotated[
        Optional[GenerationStatus], typer.Option("--status", help="completed or failed")
    ] = None,
    format: Annotated[str, typer.Option("--format", help="table or json")] = "table",
) -> None:
    """List recent generation runs."""

    async def _history(engine: GenerationEngine) -> list[Any]:
        return await engine.store.list_history(
            limit=limit, user_id=user_id, project_id=project_id, status=status
        )

    try:
        records = _run_with_engine(_history)
    except Exception as e:
        console.print(f"[red]Error listing history:[/red] {e}")
        raise typer.Exit(code=1)

    if format == "json":
        typer.echo(json.dumps([r.model_dump(mode="json") for r in records], indent=2))
        return
    if not records:
        console.print("[yellow]No generations found[/yellow]")
        return

    table = Table(title="Generation History")
    table.add_column("Generation", style="cyan", no_wrap=True)
    table.add_column("Mode")
    table.add_column("Status")
    table.add_column("Quality", justify="right")
    table.add_column("Components", justify="right")
    table.add_column("Created", style="dim")
    for r in records:
        status_color = "green" if r.status == GenerationStatus.COMPLETED else "red"
        table.add_row(
            r.generation_id,
            r.mode.value,
            f"[{status_color}]{r.status.value}[/{status_color}]",
            "-" if r.quality_score is None else str(r.quality_score),
            str(r.total_components),
            r.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


def metrics(
    format: Annotated[str, typer.Option("--format", help="table or json")] = "table",
) -> None:
    """Show aggregate generation metrics."""

    async def _metrics(engine: GenerationEngine) -> Any:
        return await engine.get_metrics()

    try:
        result = _run_with_engine(_metrics)
    except Exception as e:
        console.print(f"[red]Error computing metrics:[/red] {e}")
        raise typer.Exit(code=1)

    if format == "json":
        typer.echo(result.model_dump_json(indent=2))
        return
    table = Table(title="Generation Metrics")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    for key, value in result.model_dump().items():
        table.add_row(key.replace("_", " "), str(value))
    console.print(table)


def clear_cache() -> None:
    """Drop every cached generation result."""

    async def _clear(engine: GenerationEngine) -> int:
        return await engine.store.clear_cache()

    try:
        removed = _run_with_engine(_clear)
    except Exception as e:
        console.print(f"[red]Error clearing cache:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]Removed {removed} cached results[/green]")
