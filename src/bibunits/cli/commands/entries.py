"""CLI command printing the entries of BibTeX files."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer

from bibunits.aggregator import CITATION_KEY_TAG, ORIGINAL_TAG, TYPE_TAG, Entry
from bibunits.config import ParserConfig, ProcessorSpec, load_config
from bibunits.exceptions import BibtexError
from bibunits.parser import parse_file_entries

from ..diagnostics import CliEmitter
from ..state import emit_error, get_cli_state


if TYPE_CHECKING:
    from rich.panel import Panel


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"


InputFilesArgument = Annotated[
    list[Path],
    typer.Argument(
        metavar="FILE...",
        help="BibTeX files to parse. Each file is parsed independently.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
    ),
]

FormatOption = Annotated[
    OutputFormat,
    typer.Option("--format", "-f", help="Render entries as rich panels or JSON."),
]

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="YAML configuration file (escape character, encoding, processors).",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
]

ProcessorOption = Annotated[
    list[str] | None,
    typer.Option(
        "--processor",
        "-p",
        help="Processor applied after the configured ones. Repeat to chain processors.",
    ),
]


def format_person(person: Mapping[str, object]) -> str:
    """Render a split name back into reading order."""
    parts = [person.get(part) for part in ("first", "von", "last")]
    text = " ".join(str(part) for part in parts if part)
    jr = person.get("jr")
    if jr:
        text = f"{text}, {jr}"
    if text:
        return text
    fallback = person.get("text")
    return str(fallback).strip() if fallback else ""


def format_value(value: object) -> str:
    """Render tag values, including lists produced by processors."""
    if value is None:
        return "-"
    if isinstance(value, Mapping):
        return format_person(value)
    if isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
        return ", ".join(format_value(item) for item in value)
    return str(value)


def build_entry_panel(entry: Mapping[str, Any]) -> Panel:
    """Create a Rich panel that visualises a single entry."""
    from rich import box
    from rich.panel import Panel
    from rich.table import Table

    tags = {
        name: value
        for name, value in entry.items()
        if name not in {TYPE_TAG, CITATION_KEY_TAG, ORIGINAL_TAG}
    }
    grid = Table.grid(padding=(0, 1))
    grid.add_column(style="bold green", no_wrap=True)
    grid.add_column()

    lowered = {name.lower(): name for name in tags}
    for label, candidates in (
        ("Title", ("title",)),
        ("Authors", ("author",)),
        ("Year", ("year",)),
        ("Journal", ("journal", "booktitle")),
    ):
        for candidate in candidates:
            name = lowered.get(candidate)
            if name is not None:
                grid.add_row(label, format_value(tags.pop(name)))
                break

    for name, value in tags.items():
        grid.add_row(name, format_value(value))

    key = entry.get(CITATION_KEY_TAG) or "-"
    entry_type = entry.get(TYPE_TAG) or "entry"
    return Panel(grid, title=f"{key} ({entry_type})", box=box.ROUNDED, expand=False)


def _resolve_config(config_path: Path | None, processors: list[str] | None) -> ParserConfig:
    config = load_config(config_path) if config_path is not None else ParserConfig()
    if processors:
        extra = [ProcessorSpec(name=name) for name in processors]
        config = config.model_copy(update={"processors": [*config.processors, *extra]})
    return config


def _portable(entries: list[Entry], *, include_original: bool) -> list[Entry]:
    if include_original:
        return entries
    return [
        {name: value for name, value in entry.items() if name != ORIGINAL_TAG}
        for entry in entries
    ]


def entries(
    inputs: InputFilesArgument,
    output_format: FormatOption = OutputFormat.TABLE,
    config_path: ConfigOption = None,
    processor: ProcessorOption = None,
    include_original: Annotated[
        bool,
        typer.Option("--original/--no-original", help="Include the verbatim source in JSON."),
    ] = False,
) -> None:
    """Parse BibTeX files and print their entries."""
    state = get_cli_state()
    try:
        config = _resolve_config(config_path, processor)
    except (BibtexError, ValueError) as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    results: dict[str, list[Entry]] = {}
    for path in inputs:
        try:
            results[str(path)] = parse_file_entries(path, config, emitter=CliEmitter(state))
        except BibtexError as exc:
            emit_error(f"{path}: {exc}", exception=exc)
            raise typer.Exit(code=1) from exc

    if output_format is OutputFormat.JSON:
        payload = {
            source: _portable(found, include_original=include_original)
            for source, found in results.items()
        }
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    console = state.console
    for source, found in results.items():
        console.rule(f"{Path(source).name} ({len(found)} entries)")
        for entry in found:
            console.print(build_entry_panel(entry))


__all__ = ["OutputFormat", "build_entry_panel", "entries", "format_person", "format_value"]
