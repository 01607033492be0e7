"""brickrun CLI

Usage:
    brickrun run pipeline.yaml                       # run with no input
    brickrun run pipeline.yaml -i '{"name": "Ada"}'  # JSON input bound to @input
    brickrun run pipeline.yaml -o greeting=Hi        # override @options values
    brickrun validate pipeline.yaml                  # check a document
    brickrun bricks                                  # list available bricks
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Iterator, List, Optional

import typer
from rich.table import Table

from brickrun import __version__
from brickrun.bricks.registry import default_registry
from brickrun.config import RuntimeSettings, find_settings_file
from brickrun.document import PipelineDocument
from brickrun.exceptions import (
    BrickrunError,
    ContextError,
    get_error_message,
    get_root_cause,
)
from brickrun.integrations.locator import LocalIntegrationLocator
from brickrun.logging_utils import console, setup_logging
from brickrun.models.brick import BrickConfig
from brickrun.models.expression import PipelineExpression, to_json
from brickrun.runner import DocumentRunner
from brickrun.telemetry import MemoryTraceSink

log = logging.getLogger(__name__)

app = typer.Typer(help="Brick pipeline runtime")


def parse_option_overrides(values: Optional[List[str]]) -> dict[str, Any]:
    """Parse KEY=VALUE pairs. Values are JSON when they parse as JSON."""
    overrides: dict[str, Any] = {}
    for item in values or []:
        if "=" not in item:
            raise typer.BadParameter(f"Expected KEY=VALUE, got: {item}")
        key, raw = item.split("=", 1)
        try:
            overrides[key.strip()] = json.loads(raw)
        except json.JSONDecodeError:
            overrides[key.strip()] = raw
    return overrides


def _load_document(path: Path) -> PipelineDocument:
    try:
        return PipelineDocument.load(path)
    except BrickrunError as e:
        console.print(f"[red]Error:[/red] {e}")
        for error in getattr(e, "errors", []):
            console.print(f"  [dim]-[/dim] {error}")
        raise typer.Exit(1)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    """Run declarative brick pipelines."""
    if version:
        console.print(f"brickrun {__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def run(
    document: Path = typer.Argument(..., help="Pipeline document (YAML/JSON)."),
    input: Optional[str] = typer.Option(
        None, "-i", "--input", help="JSON value bound to @input."
    ),
    option: Optional[List[str]] = typer.Option(
        None, "-o", "--option", help="KEY=VALUE override for @options."
    ),
    integrations: Optional[Path] = typer.Option(
        None, "--integrations", help="YAML file with integration configurations."
    ),
    settings_file: Optional[Path] = typer.Option(
        None, "-s", "--settings", help="Path to brickrun.yaml."
    ),
    trace: bool = typer.Option(False, "--trace", help="Print step traces."),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging."),
) -> None:
    """Run a pipeline document and print its result as JSON."""
    setup_logging(verbose)

    doc = _load_document(document)
    settings = RuntimeSettings.load(settings_file or find_settings_file(document.parent))

    try:
        input_value = json.loads(input) if input is not None else {}
    except json.JSONDecodeError as e:
        console.print(f"[red]Error:[/red] Invalid JSON input: {e}")
        raise typer.Exit(1)

    trace_sink = MemoryTraceSink() if trace else None
    runner = DocumentRunner(
        settings=settings,
        locator=LocalIntegrationLocator.from_file(integrations) if integrations else None,
        trace_sink=trace_sink,
    )

    try:
        result = asyncio.run(
            runner.run(doc, input=input_value, options_args=parse_option_overrides(option))
        )
    except BrickrunError as e:
        log.debug("Run failed", exc_info=True)
        cause = get_root_cause(e)
        console.print(f"[red]Error:[/red] {get_error_message(e)}")
        if isinstance(e, ContextError) and cause is not e:
            console.print(f"[dim]Cause:[/dim] {type(cause).__name__}: {get_error_message(cause)}")
        _print_traces(trace_sink)
        raise typer.Exit(1)

    _print_traces(trace_sink)
    console.print_json(json.dumps(to_json(result), default=str))


def _print_traces(trace_sink: MemoryTraceSink | None) -> None:
    if trace_sink is None:
        return
    table = Table(title="Traces")
    table.add_column("Brick", style="cyan")
    table.add_column("Branches")
    table.add_column("Result")
    for record in trace_sink.exits():
        branches = " > ".join(f"{b.key}[{b.counter}]" for b in record.branches) or "-"
        if record.error:
            result = f"[red]{record.error.get('name')}[/red]"
        elif record.skipped_run:
            result = "[dim]skipped[/dim]"
        else:
            result = "[green]ok[/green]"
        table.add_row(record.brick_id, branches, result)
    console.print(table)


@app.command()
def validate(
    document: Path = typer.Argument(..., help="Pipeline document (YAML/JSON)."),
) -> None:
    """Check that a pipeline document parses and references known bricks."""
    doc = _load_document(document)
    registry = default_registry()
    known = set(doc.definitions) | {b.id for b in registry.all()}

    missing = sorted({step.id for step in _walk_steps(doc)} - known)
    if missing:
        for brick_id in missing:
            console.print(f"[red]Error:[/red] Unknown brick: {brick_id}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] {document} is valid (apiVersion {doc.api_version.value})")


def _walk_steps(doc: PipelineDocument) -> Iterator[BrickConfig]:
    def walk(value: Any) -> Iterator[BrickConfig]:
        if isinstance(value, PipelineExpression):
            for step in value.value:
                yield step
                yield from walk(step.config)
        elif isinstance(value, dict):
            for v in value.values():
                yield from walk(v)
        elif isinstance(value, list):
            for v in value:
                yield from walk(v)

    pipelines = [doc.pipeline, *(d.pipeline for d in doc.definitions.values())]
    for pipeline in pipelines:
        for step in pipeline:
            yield step
            yield from walk(step.config)


@app.command()
def bricks() -> None:
    """List the built-in bricks."""
    table = Table(title="Bricks")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Pure")
    table.add_column("Description", style="dim")
    for brick in default_registry().all():
        table.add_row(brick.id, brick.name, "yes" if brick.is_pure() else "no", brick.description)
    console.print(table)


if __name__ == "__main__":
    app()
