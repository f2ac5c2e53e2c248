"""Aggregation of scanner units into BibTeX entries.

Architecture
: `EntryAggregator` implements the unit listener contract. It keeps one
  `_EntryBuilder` for the entry being read, the abbreviation table filled by
  `@string` entries, and the list of finished entries.
: Tag names are stored under a lower-cased key while the first spelling seen
  is kept for display. A duplicate tag overwrites the value in place, so the
  position of the first occurrence survives.
: Raw content is resolved here, not in the scanner: the value is split on
  top-level `#`, delimited segments are unwrapped, digits are kept literally
  and every other segment must name an abbreviation defined earlier in the
  same input.

Implementation Rationale
: Abbreviations live on the aggregator instance. A fresh aggregator per input
  keeps `@string` definitions from leaking between files.
: Finished entries are never handed out directly. `export()` copies them and
  runs the registered processors on the copies, so processors cannot alter
  what the aggregator recorded.

Usage Example

```pycon
>>> from bibunits import EntryAggregator, Scanner
>>> aggregator = EntryAggregator()
>>> scanner = Scanner()
>>> scanner.add_listener(aggregator)
>>> scanner.scan('@string{jan = "January"} @misc{k, month = jan # " 15"}')
11
>>> aggregator.export()[0]["month"]
'January 15'
```
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
import logging
import re
from typing import Any, cast

from .diagnostics import DiagnosticEmitter, NullEmitter
from .exceptions import AggregationError, ListenerStateError, UnknownAbbreviationError
from .scanner import DEFAULT_ESCAPE_CHARACTER
from .units import UnitKind


logger = logging.getLogger(__name__)

Entry = dict[str, Any]
Processor = Callable[[Entry], Entry]

TYPE_TAG = "type"
CITATION_KEY_TAG = "citation-key"
ORIGINAL_TAG = "_original"
PREAMBLE_TAG = "preamble"
RESERVED_TAGS = frozenset({TYPE_TAG, CITATION_KEY_TAG, ORIGINAL_TAG})

_NUMBER_RE = re.compile(r"[0-9]+")


class EntryMode(Enum):
    """How the tags of the current entry are used."""

    ENTRY = "entry"
    STRING = "string"
    COMMENT = "comment"
    PREAMBLE = "preamble"


@dataclass(slots=True)
class _EntryBuilder:
    offset: int
    mode: EntryMode = EntryMode.ENTRY
    entry_type: str | None = None
    citation_key: str | None = None
    values: dict[str, str | None] = field(default_factory=dict)
    names: dict[str, str] = field(default_factory=dict)
    pending: str | None = None
    appending: bool = False


class EntryAggregator:
    """Assemble scanner units into ordered BibTeX entries."""

    def __init__(
        self,
        *,
        escape_character: str = DEFAULT_ESCAPE_CHARACTER,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.escape_character = escape_character
        self._emitter = emitter or NullEmitter()
        self._abbreviations: dict[str, str] = {}
        self._entries: list[Entry] = []
        self._processors: list[Processor] = []
        self._current: _EntryBuilder | None = None

    @property
    def abbreviations(self) -> Mapping[str, str]:
        """Return a snapshot of the abbreviation table keyed by lower-cased name."""
        return dict(self._abbreviations)

    @property
    def processors(self) -> tuple[Processor, ...]:
        return tuple(self._processors)

    def add_processor(self, processor: Processor) -> None:
        """Register a callable applied, in registration order, on exported entries."""
        if not callable(processor):
            raise TypeError(f"Processor must be callable, got {type(processor).__name__}.")
        self._processors.append(processor)

    def receive(self, text: str, kind: UnitKind | str, context: Mapping[str, int]) -> None:
        """Consume one unit emitted by the scanner."""
        kind = UnitKind(kind)
        offset = int(context.get("offset", 0))

        if kind is UnitKind.ENTRY_START:
            if self._current is not None:
                raise ListenerStateError(
                    "Entry started before the previous one ended", self._current.offset
                )
            self._current = _EntryBuilder(offset=offset)
            return

        builder = self._current
        if builder is None:
            raise ListenerStateError(f"Received {kind.name} outside of an entry")

        if kind is UnitKind.TYPE:
            self._on_type(builder, text)
        elif kind is UnitKind.ENTRY_END:
            self._on_entry_end(builder, text)
        elif builder.mode is EntryMode.COMMENT:
            return
        elif kind is UnitKind.CITATION_KEY:
            builder.citation_key = text
            builder.appending = False
        elif kind is UnitKind.TAG_NAME:
            self._on_tag_name(builder, text)
        else:
            self._on_content(builder, kind, text)

    def export(self) -> list[Entry]:
        """Return the finished entries with every processor applied."""
        if self._current is not None:
            raise ListenerStateError(
                "Cannot export while an entry is still open", self._current.offset
            )
        exported: list[Entry] = []
        for entry in self._entries:
            payload = dict(entry)
            for processor in self._processors:
                payload = processor(payload)
            exported.append(payload)
        return exported

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.export())

    def __len__(self) -> int:
        return len(self._entries)

    # Unit handlers ------------------------------------------------------

    def _on_type(self, builder: _EntryBuilder, text: str) -> None:
        builder.entry_type = text
        lowered = text.lower()
        if lowered == "string":
            builder.mode = EntryMode.STRING
        elif lowered == "comment":
            builder.mode = EntryMode.COMMENT
        elif lowered == "preamble":
            builder.mode = EntryMode.PREAMBLE

    def _on_tag_name(self, builder: _EntryBuilder, text: str) -> None:
        key = text.lower()
        if builder.mode is EntryMode.ENTRY and key in RESERVED_TAGS:
            renamed = f"_{text}"
            self._emitter.event(
                "reserved_tag", {"tag": text, "renamed": renamed, "offset": builder.offset}
            )
            text, key = renamed, renamed.lower()

        if key in builder.values:
            self._emitter.event(
                "duplicate_tag",
                {"tag": text, "key": builder.citation_key, "offset": builder.offset},
            )
        else:
            builder.names[key] = text
        builder.values[key] = None
        builder.pending = key
        builder.appending = False

    def _on_content(self, builder: _EntryBuilder, kind: UnitKind, text: str) -> None:
        if builder.pending is None:
            if builder.mode is not EntryMode.PREAMBLE:
                raise ListenerStateError(
                    f"Received {kind.name} without a tag name", builder.offset
                )
            self._on_tag_name(builder, PREAMBLE_TAG)

        key = cast(str, builder.pending)
        value = self._resolve(builder, kind, text)
        continuing = builder.appending
        if continuing:
            value = (builder.values[key] or "") + value
        builder.values[key] = value
        builder.appending = True

        if builder.mode is EntryMode.STRING:
            self._define_abbreviation(builder, key, value, continuing=continuing)

    def _on_entry_end(self, builder: _EntryBuilder, text: str) -> None:
        self._current = None
        if builder.mode is EntryMode.COMMENT:
            self._emitter.event(
                "entry_discarded", {"type": builder.entry_type, "offset": builder.offset}
            )
            return

        if builder.mode is EntryMode.STRING:
            for key, value in builder.values.items():
                if value is None:
                    raise AggregationError(
                        f"Abbreviation '{builder.names[key]}' has no value", builder.offset
                    )
            return

        entry: Entry = {TYPE_TAG: builder.entry_type}
        if builder.citation_key is not None:
            entry[CITATION_KEY_TAG] = builder.citation_key
        for key, value in builder.values.items():
            entry[builder.names[key]] = value
        entry[ORIGINAL_TAG] = text
        self._entries.append(entry)
        logger.debug(
            "Finalized @%s entry %r at offset %d",
            builder.entry_type,
            builder.citation_key,
            builder.offset,
        )

    # Resolution ---------------------------------------------------------

    def _define_abbreviation(
        self, builder: _EntryBuilder, key: str, value: str, *, continuing: bool
    ) -> None:
        known = key in self._abbreviations
        self._abbreviations[key] = value
        if continuing:
            return
        event = "abbreviation_redefined" if known else "abbreviation_defined"
        self._emitter.event(event, {"name": builder.names[key], "offset": builder.offset})

    def _resolve(self, builder: _EntryBuilder, kind: UnitKind, text: str) -> str:
        if kind is not UnitKind.RAW_CONTENT:
            return text
        parts: list[str] = []
        for segment in split_concatenation(text, self.escape_character):
            if not segment:
                raise AggregationError("Empty segment in concatenated content", builder.offset)
            parts.append(self._resolve_segment(builder, segment))
        return "".join(parts)

    def _resolve_segment(self, builder: _EntryBuilder, segment: str) -> str:
        if segment[0] in '{"':
            if not _is_wrapped(segment, self.escape_character):
                raise AggregationError(
                    f"Malformed segment {segment!r} in concatenated content", builder.offset
                )
            return unescape(segment[1:-1], self.escape_character)
        if _NUMBER_RE.fullmatch(segment):
            return segment
        value = self._abbreviations.get(segment.lower())
        if value is None:
            raise UnknownAbbreviationError(segment, builder.offset)
        return value


def split_concatenation(text: str, escape_character: str = DEFAULT_ESCAPE_CHARACTER) -> list[str]:
    """Split raw content on ``#`` outside quotes and braces, trimming each segment."""
    segments: list[str] = []
    start = 0
    depth = 0
    quoted = False
    index = 0
    while index < len(text):
        char = text[index]
        if char == escape_character and index + 1 < len(text):
            index += 2
            continue
        if char == "{":
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
        elif char == '"' and depth == 0:
            quoted = not quoted
        elif char == "#" and depth == 0 and not quoted:
            segments.append(text[start:index].strip())
            start = index + 1
        index += 1
    segments.append(text[start:].strip())
    return segments


def _is_wrapped(segment: str, escape_character: str) -> bool:
    """Return whether the opening delimiter of *segment* closes on its last character."""
    opener = segment[0]
    depth = 0
    index = 1
    while index < len(segment):
        char = segment[index]
        if char == escape_character and index + 1 < len(segment):
            index += 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                return opener == "{" and index == len(segment) - 1
            depth -= 1
        elif char == '"' and opener == '"' and depth == 0:
            return index == len(segment) - 1
        index += 1
    return False


def unescape(text: str, escape_character: str = DEFAULT_ESCAPE_CHARACTER) -> str:
    """Drop the escape character in front of braces, quotes and itself."""
    escapable = {"{", "}", '"', escape_character}
    chars: list[str] = []
    index = 0
    while index < len(text):
        char = text[index]
        if char == escape_character and index + 1 < len(text) and text[index + 1] in escapable:
            chars.append(text[index + 1])
            index += 2
            continue
        chars.append(char)
        index += 1
    return "".join(chars)


__all__ = [
    "CITATION_KEY_TAG",
    "ORIGINAL_TAG",
    "PREAMBLE_TAG",
    "RESERVED_TAGS",
    "TYPE_TAG",
    "Entry",
    "EntryAggregator",
    "EntryMode",
    "Processor",
    "split_concatenation",
    "unescape",
]
