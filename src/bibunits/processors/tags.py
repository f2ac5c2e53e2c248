"""Processors rewriting tag names and selecting tags."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from ..aggregator import RESERVED_TAGS, Entry
from .registry import register_processor


def _is_synthetic(name: str) -> bool:
    return name in RESERVED_TAGS


@register_processor("tag-case")
class TagNameCaseProcessor:
    """Rewrite every non-synthetic tag name to lower or upper case."""

    def __init__(self, case: str = "lower") -> None:
        if case not in {"lower", "upper"}:
            raise ValueError(f"Unsupported tag name case '{case}', use 'lower' or 'upper'.")
        self.case = case

    def __call__(self, entry: Entry) -> Entry:
        converted: Entry = {}
        for name, value in entry.items():
            if not _is_synthetic(name):
                name = name.lower() if self.case == "lower" else name.upper()
            converted[name] = value
        return converted


@register_processor("trim")
class TrimProcessor:
    """Strip surrounding whitespace from string values."""

    def __init__(self, tags: Iterable[str] | None = None) -> None:
        self.tags = {tag.lower() for tag in tags} if tags is not None else None

    def __call__(self, entry: Entry) -> Entry:
        entry = dict(entry)
        for name, value in entry.items():
            if name == "_original" or not isinstance(value, str):
                continue
            if self.tags is None or name.lower() in self.tags:
                entry[name] = value.strip()
        return entry


@register_processor("coverage")
class TagCoverageProcessor:
    """Keep, or remove, the listed tags. Synthetic tags always survive."""

    def __init__(self, tags: Iterable[str], strategy: str = "keep") -> None:
        if strategy not in {"keep", "remove"}:
            raise ValueError(f"Unsupported coverage strategy '{strategy}'.")
        self.tags = {tag.lower() for tag in tags}
        self.strategy = strategy

    def __call__(self, entry: Entry) -> Entry:
        keep = self.strategy == "keep"
        return {
            name: value
            for name, value in entry.items()
            if _is_synthetic(name) or (name.lower() in self.tags) == keep
        }


@register_processor("fill-missing")
class FillMissingProcessor:
    """Add default values for tags an entry does not define."""

    def __init__(self, defaults: Mapping[str, str]) -> None:
        self.defaults = dict(defaults)

    def __call__(self, entry: Entry) -> Entry:
        entry = dict(entry)
        present = {name.lower() for name in entry}
        for name, value in self.defaults.items():
            if name.lower() not in present:
                entry[name] = value
        return entry


__all__ = [
    "FillMissingProcessor",
    "TagCoverageProcessor",
    "TagNameCaseProcessor",
    "TrimProcessor",
]
