"""Command implementations registered on the Typer application."""

from __future__ import annotations

from .entries import entries
from .units import units


__all__ = ["entries", "units"]
