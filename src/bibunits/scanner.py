"""Character-level scanner splitting BibTeX source into units.

Architecture
: `Scanner` owns the listener list and the escape character. Each call to
  `iter_units` starts a private `_ScanRun` that walks the text once, so a
  scanner never carries state from one input to the next.
: Every state of the machine is a method on `_ScanRun` returning the next
  state. States that emit units are generators: they yield the units found and
  return the next state through `StopIteration`, so the lookahead stays at one
  character and every transition is explicit.

Offsets
: Unit offsets and lengths are byte positions of the original span in the
  source encoded with the scanner's encoding (UTF-8 by default). Escape
  characters are dropped from `Unit.text` but remain counted in
  `Unit.length`, so `source_bytes[offset:offset + length]` reproduces the
  input. For ASCII sources byte and character positions coincide.

Usage Example

```pycon
>>> from bibunits.scanner import Scanner
>>> [(unit.kind.name, unit.text) for unit in Scanner().iter_units("@misc{k, n = {v}}")][:4]
[('ENTRY_START', '@'), ('TYPE', 'misc'), ('CITATION_KEY', 'k'), ('TAG_NAME', 'n')]
```
"""

from __future__ import annotations

from collections.abc import Callable, Generator, Iterator
from enum import Enum
from itertools import accumulate
import logging

from .exceptions import ScanError
from .units import Unit, UnitKind, UnitListener


logger = logging.getLogger(__name__)

DEFAULT_ESCAPE_CHARACTER = "\\"

_OPENERS = {"{": "}", "(": ")"}
_TYPE_PUNCTUATION = frozenset("_-")
_NAME_STOP = frozenset('=,{}()"#@%')
_KEY_STOP = frozenset(',={}"')
_RAW_TOKEN_START = frozenset("_-+.:/'!?*&<>[]|$~^")


class ScanState(Enum):
    """States of the scanning machine."""

    OUTSIDE = "outside"
    TYPE = "type"
    CITATION_KEY = "citation_key"
    TAG_NAME = "tag_name"
    PRE_CONTENT = "pre_content"
    BRACED_CONTENT = "braced_content"
    QUOTED_CONTENT = "quoted_content"
    RAW_CONTENT = "raw_content"
    POST_CONTENT = "post_content"
    COMMENT_BODY = "comment_body"
    ENTRY_END = "entry_end"


_Step = Generator[Unit, None, "ScanState | None"]


def _byte_offsets(text: str, encoding: str) -> list[int] | None:
    """Return the byte offset of every character index, or ``None`` for ASCII text."""
    if text.isascii():
        return None
    return list(accumulate((len(char.encode(encoding)) for char in text), initial=0))


class _ScanRun:
    """Single pass over one source text."""

    def __init__(self, text: str, escape_character: str, encoding: str = "utf-8") -> None:
        self.text = text
        self.length = len(text)
        self.byte_offsets = _byte_offsets(text, encoding)
        self.pos = 0
        self.escape = escape_character
        self.escapable = frozenset({"{", "}", '"', escape_character})
        self.closer = "}"
        self.entry_start = 0
        self.handlers: dict[ScanState, Callable[[], _Step | ScanState]] = {
            ScanState.OUTSIDE: self._outside,
            ScanState.TYPE: self._read_type,
            ScanState.CITATION_KEY: self._read_citation_key,
            ScanState.TAG_NAME: self._read_tag_name,
            ScanState.PRE_CONTENT: self._pre_content,
            ScanState.BRACED_CONTENT: self._read_braced_content,
            ScanState.QUOTED_CONTENT: self._read_quoted_content,
            ScanState.RAW_CONTENT: self._read_raw_content,
            ScanState.POST_CONTENT: self._post_content,
            ScanState.COMMENT_BODY: self._skip_comment_body,
            ScanState.ENTRY_END: self._entry_end,
        }

    def run(self) -> Iterator[Unit]:
        state: ScanState | None = ScanState.OUTSIDE
        while state is not None:
            outcome = self.handlers[state]()
            if isinstance(outcome, Generator):
                state = yield from outcome
            else:
                state = outcome

    # Helpers ------------------------------------------------------------

    def _skip_whitespace(self) -> None:
        while self.pos < self.length and self.text[self.pos].isspace():
            self.pos += 1

    def _peek(self, what: str) -> str:
        """Return the current character, failing at end of input."""
        if self.pos >= self.length:
            raise self._error(f"Unterminated entry, expected {what}")
        return self.text[self.pos]

    def _is_escape(self, extra: frozenset[str] = frozenset()) -> bool:
        if self.text[self.pos] != self.escape or self.pos + 1 >= self.length:
            return False
        following = self.text[self.pos + 1]
        return following in self.escapable or following in extra

    def _byte(self, index: int) -> int:
        """Translate a character index into a byte offset."""
        if self.byte_offsets is None:
            return index
        return self.byte_offsets[index]

    def _error(self, message: str) -> ScanError:
        return ScanError(message, self._byte(self.pos))

    def _unit(self, kind: UnitKind, text: str, start: int, end: int) -> Unit:
        offset = self._byte(start)
        return Unit(kind=kind, text=text, offset=offset, length=self._byte(end) - offset)

    # States -------------------------------------------------------------

    def _outside(self) -> _Step:
        index = self.text.find("@", self.pos)
        if index == -1:
            self.pos = self.length
            return None
        self.entry_start = index
        self.pos = index + 1
        logger.debug("Entry found at offset %d", self._byte(index))
        yield self._unit(UnitKind.ENTRY_START, "@", index, index + 1)
        return ScanState.TYPE

    def _read_type(self) -> _Step:
        self._skip_whitespace()
        start = self.pos
        while self.pos < self.length and (
            self.text[self.pos].isalnum() or self.text[self.pos] in _TYPE_PUNCTUATION
        ):
            self.pos += 1
        end = self.pos
        if start == end:
            found = self._peek("entry type")
            raise self._error(f"Expected entry type after '@', found {found!r}")

        self._skip_whitespace()
        opener = self._peek("'{' or '('")
        if opener not in _OPENERS:
            raise self._error(f"Expected '{{' or '(' after entry type, found {opener!r}")
        entry_type = self.text[start:end]
        yield self._unit(UnitKind.TYPE, entry_type, start, end)

        self.closer = _OPENERS[opener]
        self.pos += 1
        lowered = entry_type.lower()
        if lowered == "comment":
            return ScanState.COMMENT_BODY
        if lowered == "string":
            return ScanState.TAG_NAME
        if lowered == "preamble":
            return ScanState.PRE_CONTENT
        return ScanState.CITATION_KEY

    def _read_citation_key(self) -> _Step:
        self._skip_whitespace()
        start = end = self.pos
        chars: list[str] = []
        kept = 0
        while self.pos < self.length:
            char = self.text[self.pos]
            if self._is_escape(frozenset({","})):
                chars.append(self.text[self.pos + 1])
                self.pos += 2
                end, kept = self.pos, len(chars)
                continue
            if char in _KEY_STOP or char == self.closer:
                break
            chars.append(char)
            self.pos += 1
            if not char.isspace():
                end, kept = self.pos, len(chars)
        # Inner whitespace belongs to the key, trailing whitespace does not.
        key = "".join(chars[:kept])

        char = self._peek("',' after citation key")
        if char == "=":
            # No citation key: the first token is already a tag name.
            if not key:
                raise self._error("Expected tag name before '='")
            if any(part.isspace() for part in key):
                raise ScanError(f"Invalid tag name {key!r}", self._byte(start))
            yield self._unit(UnitKind.TAG_NAME, key, start, end)
            self.pos += 1
            return ScanState.PRE_CONTENT
        if char != "," and char != self.closer:
            raise self._error(f"Unexpected character {char!r} after citation key")
        if key:
            yield self._unit(UnitKind.CITATION_KEY, key, start, end)
        if char == ",":
            self.pos += 1
            return ScanState.TAG_NAME
        return ScanState.ENTRY_END

    def _read_tag_name(self) -> _Step:
        self._skip_whitespace()
        char = self._peek(f"tag name or {self.closer!r}")
        if char == self.closer:
            return ScanState.ENTRY_END

        start = self.pos
        while self.pos < self.length:
            char = self.text[self.pos]
            if char.isspace() or char in _NAME_STOP or char == self.closer:
                break
            self.pos += 1
        end = self.pos
        if start == end:
            raise self._error(f"Expected tag name, found {char!r}")
        name = self.text[start:end]

        self._skip_whitespace()
        char = self._peek(f"'=' after tag name '{name}'")
        if char not in {"=", ",", self.closer}:
            raise self._error(f"Expected '=' after tag name '{name}', found {char!r}")
        yield self._unit(UnitKind.TAG_NAME, name, start, end)
        if char == "=":
            self.pos += 1
            return ScanState.PRE_CONTENT
        if char == ",":
            self.pos += 1
            return ScanState.TAG_NAME
        return ScanState.ENTRY_END

    def _pre_content(self) -> ScanState:
        self._skip_whitespace()
        char = self._peek("tag content")
        if char == "{":
            return ScanState.BRACED_CONTENT
        if char == '"':
            return ScanState.QUOTED_CONTENT
        if char.isalnum() or char in _RAW_TOKEN_START:
            return ScanState.RAW_CONTENT
        raise self._error(f"Unexpected character {char!r} at start of tag content")

    def _read_braced_content(self) -> _Step:
        start = self.pos
        self.pos += 1
        depth = 1
        chars: list[str] = []
        while True:
            if self.pos >= self.length:
                raise self._error(f"Unterminated braced content opened at {self._byte(start)}")
            char = self.text[self.pos]
            if self._is_escape():
                chars.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            self.pos += 1
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    break
            chars.append(char)
        yield self._unit(UnitKind.BRACED_CONTENT, "".join(chars), start, self.pos)
        return ScanState.POST_CONTENT

    def _read_quoted_content(self) -> _Step:
        start = self.pos
        self.pos += 1
        depth = 0
        chars: list[str] = []
        while True:
            if self.pos >= self.length:
                raise self._error(f"Unterminated quoted content opened at {self._byte(start)}")
            char = self.text[self.pos]
            if self._is_escape():
                chars.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            if char == '"' and depth == 0:
                self.pos += 1
                break
            if char == "{":
                depth += 1
            elif char == "}":
                if depth == 0:
                    raise self._error("Unbalanced '}' in quoted content")
                depth -= 1
            chars.append(char)
            self.pos += 1
        yield self._unit(UnitKind.QUOTED_CONTENT, "".join(chars), start, self.pos)
        return ScanState.POST_CONTENT

    def _read_raw_content(self) -> _Step:
        """Read a bare token or a ``#``-joined sequence, escapes kept verbatim."""
        start = self.pos
        depth = 0
        quoted = False
        while True:
            if self.pos >= self.length:
                raise self._error("Unterminated entry in raw tag content")
            char = self.text[self.pos]
            if self._is_escape():
                self.pos += 2
                continue
            if quoted:
                if char == '"' and depth == 0:
                    quoted = False
                elif char == "{":
                    depth += 1
                elif char == "}" and depth > 0:
                    depth -= 1
            elif depth > 0:
                if char == "{":
                    depth += 1
                elif char == "}":
                    depth -= 1
            elif char == "," or char == self.closer:
                break
            elif char == '"':
                quoted = True
            elif char == "{":
                depth += 1
            elif char == "}":
                raise self._error("Unbalanced '}' in raw tag content")
            self.pos += 1

        end = self.pos
        while end > start and self.text[end - 1].isspace():
            end -= 1
        yield self._unit(UnitKind.RAW_CONTENT, self.text[start:end], start, end)
        return ScanState.POST_CONTENT

    def _post_content(self) -> ScanState:
        self._skip_whitespace()
        char = self._peek(f"',' or {self.closer!r} after tag content")
        if char == ",":
            self.pos += 1
            return ScanState.TAG_NAME
        if char == "#":
            self.pos += 1
            return ScanState.PRE_CONTENT
        if char == self.closer:
            return ScanState.ENTRY_END
        raise self._error(f"Unexpected character {char!r} after tag content")

    def _skip_comment_body(self) -> ScanState:
        depth = 0
        while True:
            char = self._peek(f"{self.closer!r} closing the comment")
            if char == self.closer and depth == 0:
                return ScanState.ENTRY_END
            if char == "{":
                depth += 1
            elif char == "}":
                if depth == 0:
                    raise self._error("Unbalanced '}' in comment")
                depth -= 1
            self.pos += 1

    def _entry_end(self) -> _Step:
        self.pos += 1
        start = self.entry_start
        yield self._unit(UnitKind.ENTRY_END, self.text[start : self.pos], start, self.pos)
        return ScanState.OUTSIDE


class Scanner:
    """Split BibTeX source into units and hand them to listeners."""

    def __init__(
        self,
        *,
        escape_character: str = DEFAULT_ESCAPE_CHARACTER,
        encoding: str = "utf-8",
    ) -> None:
        if len(escape_character) != 1:
            raise ValueError("Escape character must be a single character.")
        self.escape_character = escape_character
        self.encoding = encoding
        self._listeners: list[UnitListener] = []

    @property
    def listeners(self) -> tuple[UnitListener, ...]:
        return tuple(self._listeners)

    def add_listener(self, listener: UnitListener) -> None:
        """Register a listener; listeners are called in registration order."""
        self._listeners.append(listener)

    def iter_units(self, text: str) -> Iterator[Unit]:
        """Lazily yield the units of *text* in source order."""
        return _ScanRun(text, self.escape_character, self.encoding).run()

    def scan(self, text: str) -> int:
        """Deliver every unit of *text* to the listeners, returning the unit count."""
        count = 0
        for unit in self.iter_units(text):
            context = unit.context
            for listener in self._listeners:
                listener.receive(unit.text, unit.kind, context)
            count += 1
        logger.debug("Scanned %d unit(s) from %d character(s)", count, len(text))
        return count


__all__ = ["DEFAULT_ESCAPE_CHARACTER", "ScanState", "Scanner"]
