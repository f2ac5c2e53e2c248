"""Parsing entry points wiring the scanner to its listeners."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import IO, TYPE_CHECKING

from .aggregator import Entry, EntryAggregator, Processor
from .diagnostics import DiagnosticEmitter
from .exceptions import BibtexError
from .scanner import DEFAULT_ESCAPE_CHARACTER, Scanner
from .units import UnitListener


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .config import ParserConfig


class Parser:
    """Feed BibTeX source from strings, streams or files to unit listeners."""

    def __init__(
        self,
        *,
        escape_character: str = DEFAULT_ESCAPE_CHARACTER,
        encoding: str = "utf-8",
    ) -> None:
        self._scanner = Scanner(escape_character=escape_character, encoding=encoding)
        self.encoding = encoding

    @classmethod
    def from_config(cls, config: ParserConfig) -> Parser:
        return cls(escape_character=config.escape_character, encoding=config.encoding)

    @property
    def escape_character(self) -> str:
        return self._scanner.escape_character

    @property
    def listeners(self) -> tuple[UnitListener, ...]:
        return self._scanner.listeners

    def add_listener(self, listener: UnitListener) -> None:
        """Register a listener receiving every unit found by later parses."""
        if not callable(getattr(listener, "receive", None)):
            raise TypeError(f"{type(listener).__name__} does not implement receive().")
        self._scanner.add_listener(listener)

    def parse_string(self, text: str) -> int:
        """Scan *text*, returning the number of units delivered."""
        return self._scanner.scan(text)

    def parse_stream(self, stream: IO[str] | IO[bytes]) -> int:
        """Scan the remaining content of a readable text or binary stream."""
        payload = stream.read()
        if isinstance(payload, bytes):
            try:
                payload = payload.decode(self.encoding)
            except UnicodeDecodeError as exc:
                raise BibtexError(f"Failed to decode stream as {self.encoding}: {exc}") from exc
        return self.parse_string(payload)

    def parse_file(self, path: Path | str) -> int:
        """Scan a BibTeX file read with the configured encoding."""
        file_path = Path(path)
        try:
            text = file_path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            raise BibtexError(f"Failed to read '{file_path}': {exc}") from exc
        return self.parse_string(text)


def parse_entries(
    text: str,
    *,
    processors: Iterable[Processor] = (),
    emitter: DiagnosticEmitter | None = None,
    escape_character: str = DEFAULT_ESCAPE_CHARACTER,
) -> list[Entry]:
    """Parse *text* with a fresh parser and aggregator and return the entries."""
    aggregator = EntryAggregator(escape_character=escape_character, emitter=emitter)
    for processor in processors:
        aggregator.add_processor(processor)
    parser = Parser(escape_character=escape_character)
    parser.add_listener(aggregator)
    parser.parse_string(text)
    return aggregator.export()


def parse_file_entries(
    path: Path | str,
    config: ParserConfig | None = None,
    *,
    emitter: DiagnosticEmitter | None = None,
) -> list[Entry]:
    """Parse a file with a fresh parser and aggregator configured from *config*."""
    if config is None:
        from .config import ParserConfig

        config = ParserConfig()
    parser = Parser.from_config(config)
    aggregator = EntryAggregator(escape_character=config.escape_character, emitter=emitter)
    for processor in config.build_processors():
        aggregator.add_processor(processor)
    parser.add_listener(aggregator)
    parser.parse_file(path)
    return aggregator.export()


__all__ = ["Parser", "parse_entries", "parse_file_entries"]
