# src/jsonbridge/cli.py
"""
jsonbridge Command Line Interface (CLI).

This module implements the terminal interface using `typer` and `rich`.

Commands
--------
- **process**: validate, extract and order the independent blocks of a JSON
  file, print the insertion order and write the output document.
- **validate**: report every block occurrence lacking its key field.
- **blocks**: list the registered blocks and their foreign-key tokens.

Registry sources
----------------
Blocks come from a JSON file (``--blocks``), from repeated
``--block name=key_field`` options, or from ``JSONBRIDGE_BLOCKS_FILE``.
Both options may be combined.

Usage
-----
    $ jsonbridge process data.json --blocks blocks.json -o processed.json
    $ jsonbridge validate data.json --block users=id_user --block contacts=id_contact
"""

from __future__ import annotations

import json
import traceback
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from jsonbridge.core.blackboard.storage import TraceWriter
from jsonbridge.core.errors import JsonBridgeError
from jsonbridge.core.registry import BlockRegistry
from jsonbridge.core.settings import CyclePolicy, load_settings
from jsonbridge.pipelines.json_processor import (
    JsonProcessor,
    ProcessingResult,
    write_output,
)
from jsonbridge.preprocessing.validator import collect_violations

# Ensure env vars (like JSONBRIDGE_BLOCKS_FILE) are loaded before any logic runs
load_dotenv()

app = typer.Typer(
    help="jsonbridge: detach independent JSON blocks and order them for bulk insertion.",
    rich_markup_mode="markdown",
)
console = Console()

BlocksFileOption = Annotated[
    Path | None,
    typer.Option(
        "--blocks",
        "-b",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="JSON file describing the independent blocks.",
    ),
]
BlockOption = Annotated[
    list[str] | None,
    typer.Option(
        "--block",
        "-k",
        help="Inline block definition `name=key_field` (repeatable).",
    ),
]
InputArgument = Annotated[
    Path,
    typer.Argument(
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Path to the JSON document to process.",
    ),
]


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _parse_block_option(spec: str) -> tuple[str, str]:
    name, sep, key_field = spec.partition("=")
    if not sep or not name.strip() or not key_field.strip():
        raise typer.BadParameter(
            f"'{spec}' is not of the form name=key_field", param_hint="--block"
        )
    return name, key_field


def _load_registry(blocks_file: Path | None, block_specs: list[str] | None) -> BlockRegistry:
    """Helper: build the registry from the file and inline options."""
    source = blocks_file or load_settings().blocks_file
    try:
        registry = BlockRegistry.from_file(source) if source is not None else BlockRegistry()
        for spec in block_specs or []:
            registry.add_block(*_parse_block_option(spec))
    except JsonBridgeError as e:
        raise typer.BadParameter(str(e), param_hint="--blocks/--block") from e
    if not len(registry):
        raise typer.BadParameter(
            "no independent blocks configured (use --blocks, --block or JSONBRIDGE_BLOCKS_FILE)",
            param_hint="--blocks",
        )
    return registry


def _render_order(result: ProcessingResult) -> None:
    """Helper: print the insertion order as a table."""
    table = Table(title="Insertion order")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Block", style="bold cyan")
    table.add_column("Instances", justify="right")
    table.add_column("Depends on")

    prerequisites: dict[str, list[str]] = {}
    for src, dsts in result["dependencies"].items():
        for dst in dsts:
            prerequisites.setdefault(dst, []).append(src)

    unresolved = set(result["unresolved"])
    self_cyclic = set(result["self_references"])
    for i, (name, items) in enumerate(result["ordered_blocks"], start=1):
        label = name
        if name in unresolved:
            label = f"{name} [yellow](cycle)[/yellow]"
        elif name in self_cyclic:
            label = f"{name} [yellow](self)[/yellow]"
        table.add_row(str(i), label, str(len(items)), ", ".join(prerequisites.get(name, [])))
    console.print(table)


def _render_trace(result: ProcessingResult) -> None:
    console.print("\n[bold dim]Execution Trace:[/bold dim]")
    for i, snap in enumerate(result["blackboard"].traces()):
        if snap.note:
            console.print(f" [dim]{i + 1:02d}. {snap.note}[/dim]")


def _report_error(exc: Exception, verbose: bool) -> None:
    console.print(f"\n[bold red]Processing Error:[/bold red] {exc}")
    if verbose:
        traceback.print_exc()


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def process(
    file: InputArgument,
    blocks: BlocksFileOption = None,
    block: BlockOption = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Where to write the processed JSON."),
    ] = None,
    cycle_policy: Annotated[
        str | None,
        typer.Option(
            "--cycle-policy",
            help="accept | warn | fail: what to do with cyclic block groups.",
        ),
    ] = None,
    with_document: Annotated[
        bool,
        typer.Option("--with-document", help="Also write the rewritten source document."),
    ] = False,
    trace_dir: Annotated[
        Path | None,
        typer.Option("--trace-dir", help="Persist stage snapshots as JSON files here."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show full error tracebacks for debugging."),
    ] = False,
) -> None:
    """
    Validate, extract and order the independent blocks of a JSON file.
    """
    if cycle_policy is not None and cycle_policy not in ("accept", "warn", "fail"):
        raise typer.BadParameter(
            "must be one of accept, warn, fail", param_hint="--cycle-policy"
        )
    registry = _load_registry(blocks, block)

    console.print(
        Panel.fit(
            f"[bold cyan]jsonbridge[/bold cyan]\nProcessing: [u]{file.name}[/u]",
            border_style="cyan",
        )
    )

    policy: CyclePolicy | None = cycle_policy  # type: ignore[assignment]
    processor = JsonProcessor(registry, cycle_policy=policy)
    try:
        result = processor.process_file(file)
    except (JsonBridgeError, ValueError, OSError) as e:
        _report_error(e, verbose)
        raise typer.Exit(code=1) from e

    _render_order(result)
    if result["unresolved"]:
        console.print(
            "[yellow]Cyclic dependencies, best-effort order kept for: "
            f"{', '.join(result['unresolved'])}[/yellow]"
        )

    payload: dict[str, Any] = processor.build_output(result, include_document=with_document)
    target = output or file.with_name(f"{file.stem}.processed.json")
    write_output(payload, target)
    console.print(Panel(f"Saved to: {target}", title="Output", border_style="green"))

    if trace_dir is not None:
        paths = TraceWriter(trace_dir).write_all(result["blackboard"].traces())
        console.print(f"[dim]Wrote {len(paths)} trace snapshot(s) to {trace_dir}[/dim]")
    if verbose:
        _render_trace(result)


@app.command()  # type: ignore[misc]
def validate(
    file: InputArgument,
    blocks: BlocksFileOption = None,
    block: BlockOption = None,
) -> None:
    """
    Report every independent block occurrence that lacks its key field.
    """
    registry = _load_registry(blocks, block)
    try:
        root = json.loads(file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        _report_error(e, verbose=False)
        raise typer.Exit(code=1) from e

    try:
        violations = collect_violations(root, registry)
    except JsonBridgeError as e:
        _report_error(e, verbose=False)
        raise typer.Exit(code=1) from e

    if not violations:
        console.print(f"[bold green]No violations[/bold green] in {file.name}.")
        return

    table = Table(title=f"{len(violations)} violation(s)")
    table.add_column("Path", style="cyan")
    table.add_column("Block")
    table.add_column("Problem", style="red")
    for v in violations:
        table.add_row(v.path, v.block, v.message)
    console.print(table)
    raise typer.Exit(code=1)


@app.command(name="blocks")  # type: ignore[misc]
def list_blocks(
    blocks: BlocksFileOption = None,
    block: BlockOption = None,
) -> None:
    """
    List the registered independent blocks and their foreign-key tokens.
    """
    registry = _load_registry(blocks, block)
    table = Table(title=f"{len(registry)} independent block(s)")
    table.add_column("Block", style="bold cyan")
    table.add_column("Key field")
    table.add_column("Foreign-key token", style="magenta")
    for definition in registry:
        table.add_row(definition.name, definition.key_field, definition.foreign_key_token)
    console.print(table)


if __name__ == "__main__":
    app()
