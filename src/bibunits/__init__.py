"""Primary public API for bibunits.

Architecture
: `Scanner` turns BibTeX source into a stream of units (entry boundaries,
  type, citation key, tag names and tag contents) with exact source offsets.
: `EntryAggregator` listens to that stream, expands `@string` abbreviations
  and `#` concatenations, and exposes the finished entries through `export()`.
: `Parser` wires a scanner to any number of listeners and reads strings,
  streams and files. `parse_entries` covers the common single-call case.

Usage Example

```pycon
>>> from bibunits import parse_entries
>>> entries = parse_entries(\"\"\"@article{doe2023,
...   title = {A {Minimal} Example},
...   year = 2023,
... }\"\"\")
>>> entries[0]["citation-key"], entries[0]["title"], entries[0]["year"]
('doe2023', 'A {Minimal} Example', '2023')
```
"""

from __future__ import annotations

from .aggregator import CITATION_KEY_TAG, ORIGINAL_TAG, TYPE_TAG, Entry, EntryAggregator, Processor
from .config import ParserConfig, ProcessorSpec, load_config
from .diagnostics import DiagnosticEmitter, LoggingEmitter, NullEmitter
from .exceptions import (
    AggregationError,
    BibtexError,
    ConfigError,
    ListenerStateError,
    ProcessorError,
    ScanError,
    UnknownAbbreviationError,
)
from .parser import Parser, parse_entries, parse_file_entries
from .scanner import Scanner
from .units import Unit, UnitKind, UnitListener
from .version import get_version


__version__ = get_version()

__all__ = [
    "CITATION_KEY_TAG",
    "ORIGINAL_TAG",
    "TYPE_TAG",
    "AggregationError",
    "BibtexError",
    "ConfigError",
    "DiagnosticEmitter",
    "Entry",
    "EntryAggregator",
    "ListenerStateError",
    "LoggingEmitter",
    "NullEmitter",
    "Parser",
    "ParserConfig",
    "Processor",
    "ProcessorError",
    "ProcessorSpec",
    "ScanError",
    "Scanner",
    "Unit",
    "UnitKind",
    "UnitListener",
    "UnknownAbbreviationError",
    "__version__",
    "get_version",
    "load_config",
    "parse_entries",
    "parse_file_entries",
]
