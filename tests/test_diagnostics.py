from __future__ import annotations

import logging

import pytest

from bibunits import EntryAggregator, Scanner
from bibunits.cli.diagnostics import CliEmitter
from bibunits.cli.state import emit_error, set_cli_state
from bibunits.diagnostics import (
    DiagnosticEmitter,
    LoggingEmitter,
    NullEmitter,
    format_event_message,
)
from bibunits.exceptions import BibtexError


def test_null_emitter_is_noop(caplog: pytest.LogCaptureFixture) -> None:
    emitter = NullEmitter()
    with caplog.at_level(logging.WARNING):
        emitter.warning("nothing to see")
        emitter.error("still quiet")
    assert not caplog.records
    emitter.event("ignored", {"value": 1})
    assert emitter.debug_enabled is False
    assert isinstance(emitter, DiagnosticEmitter)


def test_logging_emitter_logs_messages(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter(debug_enabled=True)
    with caplog.at_level(logging.ERROR):
        emitter.error("boom")
    assert any(record.message == "boom" for record in caplog.records)
    assert emitter.debug_enabled is True


def test_logging_emitter_formats_known_events(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter()
    with caplog.at_level(logging.DEBUG, logger="bibunits"):
        emitter.event("abbreviation_defined", {"name": "jan", "offset": 4})
        emitter.event("custom", {"flag": True})

    messages = [record.getMessage() for record in caplog.records]
    assert "Defined abbreviation 'jan' at offset 4" in messages
    assert "diagnostic event custom: {'flag': True}" in messages


def test_aggregator_events_reach_the_log(caplog: pytest.LogCaptureFixture) -> None:
    scanner = Scanner()
    scanner.add_listener(EntryAggregator(emitter=LoggingEmitter()))

    with caplog.at_level(logging.INFO, logger="bibunits"):
        scanner.scan("@misc{k, a = {1}, a = {2}}")

    assert any(
        record.getMessage() == "Duplicate tag 'a' in 'k' at offset 0; keeping the last value"
        for record in caplog.records
    )


@pytest.mark.parametrize(
    ("name", "payload", "expected"),
    [
        ("abbreviation_redefined", {"name": "acm"}, "Redefined abbreviation 'acm'"),
        ("entry_discarded", {"type": "comment", "offset": 3}, "Discarded @comment at offset 3"),
        (
            "reserved_tag",
            {"tag": "type", "renamed": "_type", "offset": 0},
            "Tag 'type' at offset 0 clashes with a reserved name; stored as '_type'",
        ),
        ("duplicate_tag", {"tag": "a"}, "Duplicate tag 'a'; keeping the last value"),
        ("unknown", {}, None),
    ],
)
def test_format_event_message(name: str, payload: dict, expected: str | None) -> None:
    assert format_event_message(name, payload) == expected


def test_cli_emitter_bridges_state(capsys: pytest.CaptureFixture[str]) -> None:
    state = set_cli_state(verbosity=1, debug=False)
    emitter = CliEmitter(state=state)

    emitter.warning("Heads up", exc=None)
    emitter.error("Boom", exc=None)
    emitter.event("duplicate_tag", {"tag": "a", "key": "k", "offset": 0})
    emitter.event("custom", {"flag": True})

    captured = capsys.readouterr()
    combined_output = f"{captured.out}\n{captured.err}"
    assert "Heads up" in combined_output
    assert "Boom" in combined_output
    assert "Duplicate tag 'a'" in combined_output
    assert "flag" not in combined_output


def test_render_message_lists_causes_when_very_verbose(
    capsys: pytest.CaptureFixture[str],
) -> None:
    set_cli_state(verbosity=2, debug=False)
    try:
        try:
            raise OSError("disk unplugged")
        except OSError as exc:
            raise BibtexError("Failed to read 'refs.bib'") from exc
    except BibtexError as exc:
        error = exc

    emit_error("refs.bib could not be parsed", exception=error)

    err = capsys.readouterr().err
    assert "caused by:" in err
    assert "disk unplugged" in err
    assert "type: BibtexError" in err
    set_cli_state(verbosity=0)
