"""Split author and editor lists into name parts."""

from __future__ import annotations

from collections.abc import Iterable

from pybtex.bibtex.utils import split_name_list
from pybtex.database import Person
from pybtex.exceptions import PybtexError

from ..aggregator import CITATION_KEY_TAG, Entry
from ..exceptions import ProcessorError
from .registry import register_processor


def _join(parts: Iterable[str]) -> str:
    return " ".join(part for part in parts if part)


def split_person(text: str) -> dict[str, str]:
    """Split a single BibTeX name into ``first``, ``von``, ``last`` and ``jr`` parts."""
    person = Person(text)
    return {
        "first": _join([*person.first_names, *person.middle_names]),
        "von": _join(person.prelast_names),
        "last": _join(person.last_names),
        "jr": _join(person.lineage_names),
        "text": text.strip(),
    }


@register_processor("names")
class NamesProcessor:
    """Replace name list tags by a list of split names."""

    def __init__(self, tags: Iterable[str] = ("author", "editor")) -> None:
        self.tags = {tag.lower() for tag in tags}

    def __call__(self, entry: Entry) -> Entry:
        entry = dict(entry)
        for name, value in entry.items():
            if name.lower() not in self.tags or not isinstance(value, str):
                continue
            try:
                entry[name] = [split_person(item) for item in split_name_list(value) if item]
            except PybtexError as exc:
                raise ProcessorError(
                    f"Cannot split names in tag '{name}': {exc}", entry.get(CITATION_KEY_TAG)
                ) from exc
        return entry


__all__ = ["NamesProcessor", "split_person"]
