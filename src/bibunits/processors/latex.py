"""Convert LaTeX markup in tag values to Unicode."""

from __future__ import annotations

import codecs
from collections.abc import Iterable
import re

import latexcodec  # noqa: F401  # registers the "ulatex" codec

from ..aggregator import CITATION_KEY_TAG, ORIGINAL_TAG, TYPE_TAG, Entry
from ..exceptions import ProcessorError
from .registry import register_processor


_GROUPING_BRACE_RE = re.compile(r"(?<!\\)[{}]")
_SKIPPED_TAGS = frozenset({TYPE_TAG, CITATION_KEY_TAG, ORIGINAL_TAG, "url", "doi"})


def latex_to_unicode(text: str) -> str:
    """Decode LaTeX accents and symbols, then drop grouping braces."""
    decoded = codecs.decode(text, "ulatex")
    return _GROUPING_BRACE_RE.sub("", decoded)


@register_processor("latex")
class LatexToUnicodeProcessor:
    """Convert LaTeX markup of string values to Unicode text."""

    def __init__(self, tags: Iterable[str] | None = None) -> None:
        self.tags = {tag.lower() for tag in tags} if tags is not None else None

    def __call__(self, entry: Entry) -> Entry:
        entry = dict(entry)
        for name, value in entry.items():
            lowered = name.lower()
            if lowered in _SKIPPED_TAGS or not isinstance(value, str):
                continue
            if self.tags is not None and lowered not in self.tags:
                continue
            try:
                entry[name] = latex_to_unicode(value)
            except (UnicodeDecodeError, ValueError) as exc:
                raise ProcessorError(
                    f"Cannot convert LaTeX in tag '{name}': {exc}", entry.get(CITATION_KEY_TAG)
                ) from exc
        return entry


__all__ = ["LatexToUnicodeProcessor", "latex_to_unicode"]
