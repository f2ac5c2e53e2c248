"""Lexical units exchanged between the scanner and its listeners."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable


class UnitKind(str, Enum):
    """Kinds of units emitted while scanning BibTeX source."""

    ENTRY_START = "entry_start"
    TYPE = "type"
    CITATION_KEY = "citation_key"
    TAG_NAME = "tag_name"
    RAW_CONTENT = "raw_content"
    BRACED_CONTENT = "braced_content"
    QUOTED_CONTENT = "quoted_content"
    ENTRY_END = "entry_end"

    @property
    def is_content(self) -> bool:
        return self in _CONTENT_KINDS


_CONTENT_KINDS = frozenset(
    {UnitKind.RAW_CONTENT, UnitKind.BRACED_CONTENT, UnitKind.QUOTED_CONTENT}
)


@dataclass(frozen=True, slots=True)
class Unit:
    """A single unit found in the source text."""

    kind: UnitKind
    text: str
    """Unescaped content, without outer delimiters."""

    offset: int
    """Byte position of the original span in the encoded source."""

    length: int
    """Byte length of the original span, escape characters included."""

    @property
    def end(self) -> int:
        return self.offset + self.length

    @property
    def context(self) -> dict[str, int]:
        return {"offset": self.offset, "length": self.length}


@runtime_checkable
class UnitListener(Protocol):
    """Receives units synchronously, once each, in source order."""

    def receive(self, text: str, kind: UnitKind, context: Mapping[str, int]) -> None: ...


__all__ = ["Unit", "UnitKind", "UnitListener"]
