"""Diagnostic abstractions shared by the aggregator, processors and CLI."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Interface used to surface warnings, errors, and structured events."""

    debug_enabled: bool

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Emitter that ignores every diagnostic."""

    debug_enabled: bool = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        return


class LoggingEmitter:
    """Emitter that forwards diagnostics to the standard logging module."""

    def __init__(
        self, *, logger_obj: logging.Logger | None = None, debug_enabled: bool = False
    ) -> None:
        self._logger = logger_obj or logger
        self.debug_enabled = debug_enabled

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.warning(message, exc_info=exc)
        else:
            self._logger.warning(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.error(message, exc_info=exc)
        else:
            self._logger.error(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message:
            self._logger.info(message)
            return
        self._logger.debug("diagnostic event %s: %s", name, dict(payload))


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return a human-friendly summary for selected diagnostic events."""
    data = dict(payload)
    offset = data.get("offset")
    where = f" at offset {offset}" if offset is not None else ""

    if name == "abbreviation_defined":
        abbreviation = data.get("name") or "<unknown>"
        return f"Defined abbreviation '{abbreviation}'{where}"

    if name == "abbreviation_redefined":
        abbreviation = data.get("name") or "<unknown>"
        return f"Redefined abbreviation '{abbreviation}'{where}"

    if name == "entry_discarded":
        entry_type = data.get("type") or "entry"
        return f"Discarded @{entry_type}{where}"

    if name == "duplicate_tag":
        tag = data.get("tag") or "<unknown>"
        key = data.get("key")
        suffix = f" in '{key}'" if key else ""
        return f"Duplicate tag '{tag}'{suffix}{where}; keeping the last value"

    if name == "reserved_tag":
        tag = data.get("tag") or "<unknown>"
        renamed = data.get("renamed") or "<unknown>"
        return f"Tag '{tag}'{where} clashes with a reserved name; stored as '{renamed}'"

    return None


__all__ = [
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "format_event_message",
]
