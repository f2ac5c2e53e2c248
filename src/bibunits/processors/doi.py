"""Derive URLs from DOIs."""

from __future__ import annotations

from ..aggregator import Entry
from .registry import register_processor


_DOI_PREFIXES = (
    "https://doi.org/",
    "http://doi.org/",
    "https://dx.doi.org/",
    "http://dx.doi.org/",
)


def normalise_doi(value: str) -> str | None:
    """Return a canonical representation for DOI strings, or ``None`` when empty."""
    candidate = value.strip()
    lowered = candidate.lower()
    for prefix in _DOI_PREFIXES:
        if lowered.startswith(prefix):
            candidate = candidate[len(prefix) :]
            break

    candidate = candidate.strip()
    if candidate.lower().startswith("doi:"):
        candidate = candidate.split(":", 1)[1]

    candidate = candidate.strip().strip("/")
    return candidate or None


@register_processor("doi-url")
class UrlFromDoiProcessor:
    """Add a ``url`` tag built from ``doi`` when the entry has no URL."""

    def __init__(self, template: str = "https://doi.org/{doi}") -> None:
        if "{doi}" not in template:
            raise ValueError("URL template must contain a '{doi}' placeholder.")
        self.template = template

    def __call__(self, entry: Entry) -> Entry:
        names = {name.lower(): name for name in entry}
        if "url" in names or "doi" not in names:
            return entry
        value = entry[names["doi"]]
        if not isinstance(value, str):
            return entry
        doi = normalise_doi(value)
        if doi is None:
            return entry
        entry = dict(entry)
        entry["url"] = self.template.format(doi=doi)
        return entry


__all__ = ["UrlFromDoiProcessor", "normalise_doi"]
