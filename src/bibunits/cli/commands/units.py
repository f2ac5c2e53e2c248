"""CLI command listing the units found in a BibTeX file."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from bibunits.exceptions import BibtexError
from bibunits.scanner import Scanner

from ..state import emit_error, get_cli_state


_PREVIEW_WIDTH = 60


def _preview(text: str) -> str:
    flattened = text.replace("\n", "\\n")
    if len(flattened) > _PREVIEW_WIDTH:
        return flattened[: _PREVIEW_WIDTH - 1] + "…"
    return flattened


def units(
    source: Annotated[
        Path,
        typer.Argument(
            metavar="FILE",
            help="BibTeX file to scan.",
            exists=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ],
    encoding: Annotated[str, typer.Option("--encoding", help="Source text encoding.")] = "utf-8",
) -> None:
    """Print every unit of a BibTeX file with its offset and length."""
    from rich import box
    from rich.table import Table

    try:
        text = source.read_text(encoding=encoding)
        found = list(Scanner(encoding=encoding).iter_units(text))
    except (OSError, UnicodeDecodeError) as exc:
        emit_error(f"Failed to read '{source}': {exc}", exception=exc)
        raise typer.Exit(code=1) from exc
    except BibtexError as exc:
        emit_error(f"{source}: {exc}", exception=exc)
        raise typer.Exit(code=1) from exc

    table = Table(title=source.name, box=box.SIMPLE, header_style="bold cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Offset", justify="right")
    table.add_column("Length", justify="right")
    table.add_column("Text", overflow="fold")
    for unit in found:
        table.add_row(unit.kind.name, str(unit.offset), str(unit.length), _preview(unit.text))
    get_cli_state().console.print(table)


__all__ = ["units"]
