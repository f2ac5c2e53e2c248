"""Exception hierarchy for scanning and aggregating BibTeX source."""

from __future__ import annotations


class BibtexError(RuntimeError):
    """Base exception for every failure raised by bibunits."""


class ScanError(BibtexError):
    """Raised when the character stream cannot be split into units."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{message} at offset {offset}")
        self.message = message
        self.offset = offset


class AggregationError(BibtexError):
    """Raised when units cannot be assembled into entries."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        if offset is not None:
            message = f"{message} (entry at offset {offset})"
        super().__init__(message)
        self.offset = offset


class UnknownAbbreviationError(AggregationError):
    """Raised when raw tag content names an abbreviation that is not defined."""

    def __init__(self, name: str, offset: int | None = None) -> None:
        super().__init__(f"Unknown abbreviation '{name}'", offset)
        self.name = name


class ListenerStateError(AggregationError):
    """Raised when units arrive in an order the aggregator cannot accept."""


class ProcessorError(BibtexError):
    """Raised when a processor cannot transform an entry."""

    def __init__(self, message: str, citation_key: str | None = None) -> None:
        if citation_key:
            message = f"{message} [{citation_key}]"
        super().__init__(message)
        self.citation_key = citation_key


class ConfigError(BibtexError):
    """Raised when a configuration payload cannot be loaded or validated."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


__all__ = [
    "AggregationError",
    "BibtexError",
    "ConfigError",
    "ListenerStateError",
    "ProcessorError",
    "ScanError",
    "UnknownAbbreviationError",
    "exception_messages",
]
