from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from bibunits.aggregator import EntryAggregator, split_concatenation, unescape
from bibunits.exceptions import AggregationError, ListenerStateError, UnknownAbbreviationError
from bibunits.scanner import Scanner
from bibunits.units import UnitKind


class RecordingEmitter:
    debug_enabled = False

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


def _aggregate(text: str, aggregator: EntryAggregator | None = None) -> EntryAggregator:
    if aggregator is None:
        aggregator = EntryAggregator()
    scanner = Scanner()
    scanner.add_listener(aggregator)
    scanner.scan(text)
    return aggregator


def _entries(text: str) -> list[dict[str, Any]]:
    return _aggregate(text).export()


def test_entry_keeps_type_key_tags_and_source() -> None:
    text = "@Article{Doe2020, Title = {T}, year = 2020}"

    (entry,) = _entries(text)

    assert list(entry) == ["type", "citation-key", "Title", "year", "_original"]
    assert entry["type"] == "Article"
    assert entry["citation-key"] == "Doe2020"
    assert entry["Title"] == "T"
    assert entry["year"] == "2020"
    assert entry["_original"] == text


def test_entries_are_exported_in_source_order() -> None:
    entries = _entries("@misc{b}\n@misc{a}\n@book{c}")

    assert [entry["citation-key"] for entry in entries] == ["b", "a", "c"]


def test_rescanning_original_reproduces_the_entry() -> None:
    text = r'@misc{k, a = "x \" q" # {y}, b = 1 # "0", c = {\{z\}}, flag}'

    (entry,) = _entries(text)

    assert entry["_original"] == text
    assert entry["a"] == 'x " qy'
    assert entry["b"] == "10"
    assert entry["c"] == "{z}"
    assert _entries(entry["_original"]) == [entry]


def test_rescanning_original_with_the_same_abbreviations() -> None:
    strings = '@string{pub = "ACM"}\n'
    (entry,) = _entries(strings + "@book(k, publisher = pub # { Press}, year = 1984)")

    assert entry["publisher"] == "ACM Press"
    assert _entries(strings + entry["_original"]) == [entry]


def test_citation_key_with_inner_whitespace() -> None:
    (entry,) = _entries("@misc{a b, t = {x}}")

    assert entry["citation-key"] == "a b"


def test_entry_without_citation_key() -> None:
    (entry,) = _entries("@misc{title = {T}}")

    assert "citation-key" not in entry
    assert entry["title"] == "T"


def test_duplicate_tag_keeps_first_position_and_last_value() -> None:
    emitter = RecordingEmitter()
    aggregator = _aggregate(
        "@misc{k, a = {1}, b = {2}, A = {3}}", EntryAggregator(emitter=emitter)
    )

    (entry,) = aggregator.export()

    assert list(entry) == ["type", "citation-key", "a", "b", "_original"]
    assert entry["a"] == "3"
    assert emitter.events == [("duplicate_tag", {"tag": "A", "key": "k", "offset": 0})]


def test_reserved_tag_names_are_renamed() -> None:
    emitter = RecordingEmitter()
    aggregator = _aggregate(
        "@misc{k, type = {report}, Citation-Key = {x}}", EntryAggregator(emitter=emitter)
    )

    (entry,) = aggregator.export()

    assert entry["type"] == "misc"
    assert entry["citation-key"] == "k"
    assert entry["_type"] == "report"
    assert entry["_Citation-Key"] == "x"
    assert emitter.names() == ["reserved_tag", "reserved_tag"]
    assert emitter.events[0][1]["renamed"] == "_type"


def test_valueless_tag_is_none() -> None:
    (entry,) = _entries("@misc{k, flag, title = {T}}")

    assert entry["flag"] is None
    assert entry["title"] == "T"


def test_abbreviation_expansion_is_case_insensitive() -> None:
    (entry,) = _entries('@string{Jan = "January"}\n@misc{k, month = JAN}')

    assert entry["month"] == "January"


def test_string_entries_are_not_exported() -> None:
    aggregator = _aggregate('@string{acm = "ACM", ieee = {IEEE}}')

    assert aggregator.export() == []
    assert aggregator.abbreviations == {"acm": "ACM", "ieee": "IEEE"}


def test_concatenation_resolves_every_segment() -> None:
    (entry,) = _entries('@string{a = "Foo"}\n@misc{k, t = a # { Bar} # 2}')

    assert entry["t"] == "Foo Bar2"


def test_numbers_are_literal_segments() -> None:
    (entry,) = _entries('@misc{k, pages = 97 # "--" # 111}')

    assert entry["pages"] == "97--111"


def test_concatenation_following_delimited_content() -> None:
    (entry,) = _entries('@string{b = "B"}\n@misc{k, t = "A" # b # {C}}')

    assert entry["t"] == "ABC"


def test_escapes_inside_raw_concatenation_are_removed() -> None:
    (entry,) = _entries('@string{x = "X"}\n@misc{k, t = x # "say \\"hi\\""}')

    assert entry["t"] == 'Xsay "hi"'


def test_abbreviation_can_use_earlier_abbreviations() -> None:
    aggregator = _aggregate('@string{a = "x"}\n@string{b = a # "y"}\n@string{c = "1" # "2"}')

    assert aggregator.abbreviations["b"] == "xy"
    assert aggregator.abbreviations["c"] == "12"


def test_abbreviation_definition_events() -> None:
    emitter = RecordingEmitter()
    _aggregate(
        '@string{a = "1" # "2"}\n@string{a = "3"}', EntryAggregator(emitter=emitter)
    )

    assert emitter.names() == ["abbreviation_defined", "abbreviation_redefined"]


def test_redefinition_applies_to_later_entries_only() -> None:
    entries = _entries(
        '@string{v = "one"}\n@misc{a, t = v}\n@string{v = "two"}\n@misc{b, t = v}'
    )

    assert [entry["t"] for entry in entries] == ["one", "two"]


def test_forward_reference_is_unknown() -> None:
    text = '@misc{k, month = jan}\n@string{jan = "January"}'

    with pytest.raises(UnknownAbbreviationError) as excinfo:
        _aggregate(text)

    assert excinfo.value.name == "jan"
    assert excinfo.value.offset == 0
    assert str(excinfo.value) == "Unknown abbreviation 'jan' (entry at offset 0)"


def test_unknown_abbreviation_halts_aggregation() -> None:
    aggregator = EntryAggregator()

    with pytest.raises(UnknownAbbreviationError):
        _aggregate("@misc{a, t = {x}}\n@misc{b, m = nope}\n@misc{c}", aggregator)

    assert len(aggregator) == 1
    with pytest.raises(ListenerStateError):
        aggregator.export()


def test_abbreviations_do_not_leak_between_aggregators() -> None:
    _aggregate('@string{jan = "January"}')

    with pytest.raises(UnknownAbbreviationError):
        _aggregate("@misc{k, month = jan}")


def test_empty_concatenation_segment() -> None:
    with pytest.raises(AggregationError, match="Empty segment"):
        _aggregate("@misc{k, t = 1 # }")


def test_segment_must_be_a_single_delimited_group() -> None:
    with pytest.raises(AggregationError, match="Malformed segment"):
        _aggregate("@misc{k, t = 1 # {a}b{c}}")


def test_delimited_segments_with_nested_groups() -> None:
    (entry,) = _entries('@misc{k, t = 1 # {a {b} c} # "d {"} e"}')

    assert entry["t"] == '1a {b} cd {"} e'


def test_string_without_value_is_rejected() -> None:
    with pytest.raises(AggregationError, match="has no value"):
        _aggregate("@string{foo}")


def test_comment_entries_are_discarded() -> None:
    emitter = RecordingEmitter()
    aggregator = _aggregate(
        "@comment{ignored}\n@misc{k}", EntryAggregator(emitter=emitter)
    )

    assert [entry["citation-key"] for entry in aggregator.export()] == ["k"]
    assert emitter.events == [("entry_discarded", {"type": "comment", "offset": 0})]


def test_preamble_value_is_stored_under_preamble_tag() -> None:
    (entry,) = _entries('@string{a = {A}}\n@preamble{a # "b"}')

    assert entry["type"] == "preamble"
    assert entry["preamble"] == "Ab"
    assert "citation-key" not in entry


def test_export_runs_processors_on_copies() -> None:
    aggregator = _aggregate("@misc{k, t = {T}}")

    def shout(entry: dict[str, Any]) -> dict[str, Any]:
        entry["t"] += "!"
        return entry

    aggregator.add_processor(shout)
    aggregator.add_processor(lambda entry: {**entry, "extra": "yes"})

    first = aggregator.export()
    second = aggregator.export()

    assert first == second
    assert first[0]["t"] == "T!"
    assert first[0]["extra"] == "yes"
    assert [entry["t"] for entry in aggregator] == ["T!"]
    assert aggregator.processors[0] is shout


def test_add_processor_requires_a_callable() -> None:
    with pytest.raises(TypeError):
        EntryAggregator().add_processor("trim")  # type: ignore[arg-type]


def test_receive_accepts_kind_values() -> None:
    aggregator = EntryAggregator()
    aggregator.receive("@", "entry_start", {"offset": 0, "length": 1})
    aggregator.receive("misc", "type", {"offset": 1, "length": 4})
    aggregator.receive("@misc{}", "entry_end", {"offset": 0, "length": 7})

    assert aggregator.export() == [{"type": "misc", "_original": "@misc{}"}]


def test_export_fails_while_entry_is_open() -> None:
    aggregator = EntryAggregator()
    aggregator.receive("@", UnitKind.ENTRY_START, {"offset": 3, "length": 1})

    with pytest.raises(ListenerStateError, match="still open"):
        aggregator.export()


def test_units_outside_of_entries_are_rejected() -> None:
    with pytest.raises(ListenerStateError):
        EntryAggregator().receive("misc", UnitKind.TYPE, {"offset": 0, "length": 4})


def test_nested_entry_start_is_rejected() -> None:
    aggregator = EntryAggregator()
    aggregator.receive("@", UnitKind.ENTRY_START, {"offset": 0, "length": 1})

    with pytest.raises(ListenerStateError):
        aggregator.receive("@", UnitKind.ENTRY_START, {"offset": 5, "length": 1})


def test_content_without_tag_name_is_rejected() -> None:
    aggregator = EntryAggregator()
    aggregator.receive("@", UnitKind.ENTRY_START, {"offset": 0, "length": 1})
    aggregator.receive("misc", UnitKind.TYPE, {"offset": 1, "length": 4})

    with pytest.raises(ListenerStateError, match="without a tag name"):
        aggregator.receive("v", UnitKind.BRACED_CONTENT, {"offset": 6, "length": 3})


def test_split_concatenation_ignores_delimited_hashes() -> None:
    assert split_concatenation('a # "x # y" # {b # c}') == ["a", '"x # y"', "{b # c}"]


def test_split_concatenation_honours_escapes() -> None:
    assert split_concatenation(r'"a \" # b" # c') == [r'"a \" # b"', "c"]


def test_unescape_only_touches_escapable_characters() -> None:
    assert unescape(r"a \{ \\ \q \}") == r"a { \ \q }"
    assert unescape("a !{ b", "!") == "a { b"
