"""Built-in processors applied to exported entries.

Each processor is a callable taking an entry mapping and returning a new
mapping. They are registered on an `EntryAggregator` with `add_processor` and
run in registration order by `export()`. `get_processor` builds them by name,
which is how configuration files refer to them.
"""

from __future__ import annotations

from .dates import DateProcessor, normalise_month
from .doi import UrlFromDoiProcessor, normalise_doi
from .keywords import KeywordsProcessor
from .latex import LatexToUnicodeProcessor, latex_to_unicode
from .names import NamesProcessor, split_person
from .registry import get_processor, list_processors, register_processor
from .tags import FillMissingProcessor, TagCoverageProcessor, TagNameCaseProcessor, TrimProcessor


__all__ = [
    "DateProcessor",
    "FillMissingProcessor",
    "KeywordsProcessor",
    "LatexToUnicodeProcessor",
    "NamesProcessor",
    "TagCoverageProcessor",
    "TagNameCaseProcessor",
    "TrimProcessor",
    "UrlFromDoiProcessor",
    "get_processor",
    "latex_to_unicode",
    "list_processors",
    "normalise_doi",
    "normalise_month",
    "register_processor",
    "split_person",
]
