"""Normalise publication dates."""

from __future__ import annotations

import re

from ..aggregator import Entry
from .registry import register_processor


DATE_TAG = "_date"

_DIGITS_RE = re.compile(r"[0-9]+")

_MONTH_NAME_TO_INT: dict[str, int] = {
    "jan": 1,
    "january": 1,
    "feb": 2,
    "february": 2,
    "mar": 3,
    "march": 3,
    "apr": 4,
    "april": 4,
    "may": 5,
    "jun": 6,
    "june": 6,
    "jul": 7,
    "july": 7,
    "aug": 8,
    "august": 8,
    "sep": 9,
    "sept": 9,
    "september": 9,
    "oct": 10,
    "october": 10,
    "nov": 11,
    "november": 11,
    "dec": 12,
    "december": 12,
}


def normalise_month(value: str) -> str | None:
    """Convert month names, abbreviations and numbers to a two digit string."""
    candidate = value.strip().strip(".").lower()
    if not candidate:
        return None

    if _DIGITS_RE.fullmatch(candidate):
        month_int = int(candidate)
        if 1 <= month_int <= 12:
            return f"{month_int:02d}"
        return None

    month_int = _MONTH_NAME_TO_INT.get(candidate)
    if month_int is None:
        return None
    return f"{month_int:02d}"


def _find(entry: Entry, tag: str) -> tuple[str, str] | None:
    for name, value in entry.items():
        if name.lower() == tag and isinstance(value, str):
            return name, value
    return None


@register_processor("date")
class DateProcessor:
    """Normalise ``month`` and add an ISO formatted ``_date`` tag."""

    def __call__(self, entry: Entry) -> Entry:
        entry = dict(entry)
        month = _find(entry, "month")
        month_value: str | None = None
        if month is not None:
            month_value = normalise_month(month[1])
            if month_value is not None:
                entry[month[0]] = month_value

        year = _find(entry, "year")
        if year is None or not _DIGITS_RE.fullmatch(year[1].strip()) or month_value is None:
            return entry

        parts = [year[1].strip().zfill(4), month_value]
        day = _find(entry, "day")
        if day is not None and _DIGITS_RE.fullmatch(day[1].strip()) and 1 <= int(day[1]) <= 31:
            parts.append(f"{int(day[1]):02d}")
        entry[DATE_TAG] = "-".join(parts)
        return entry


__all__ = ["DATE_TAG", "DateProcessor", "normalise_month"]
