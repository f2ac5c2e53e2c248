"""Split keyword lists."""

from __future__ import annotations

import re

from ..aggregator import Entry
from .registry import register_processor


@register_processor("keywords")
class KeywordsProcessor:
    """Turn the ``keywords`` tag into a list of trimmed keywords."""

    def __init__(self, separators: str = ",;", tag: str = "keywords") -> None:
        if not separators:
            raise ValueError("At least one keyword separator is required.")
        self.tag = tag.lower()
        self._pattern = re.compile(f"[{re.escape(separators)}]")

    def __call__(self, entry: Entry) -> Entry:
        entry = dict(entry)
        for name, value in entry.items():
            if name.lower() == self.tag and isinstance(value, str):
                entry[name] = [part.strip() for part in self._pattern.split(value) if part.strip()]
        return entry


__all__ = ["KeywordsProcessor"]
