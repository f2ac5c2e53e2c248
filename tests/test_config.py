from __future__ import annotations

from pathlib import Path
import textwrap

import pytest

from bibunits.config import ParserConfig, ProcessorSpec, config_from_mapping, load_config
from bibunits.exceptions import ConfigError
from bibunits.processors import TagNameCaseProcessor, TrimProcessor


def _write(
    tmp_path: Path,
    filename: str,
    payload: str,
) -> Path:
    file_path = tmp_path / filename
    file_path.write_text(textwrap.dedent(payload).strip() + "\n", encoding="utf-8")
    return file_path


def test_defaults() -> None:
    config = ParserConfig()

    assert config.escape_character == "\\"
    assert config.encoding == "utf-8"
    assert config.processors == []
    assert config.build_processors() == []


def test_load_config_expands_processor_shorthand(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "bibunits.yml",
        """
        escape_character: "!"
        encoding: latin-1
        processors:
          - trim
          - name: tag-case
            options:
              case: upper
        """,
    )

    config = load_config(path)

    assert config.escape_character == "!"
    assert config.encoding == "latin-1"
    assert config.processors == [
        ProcessorSpec(name="trim"),
        ProcessorSpec(name="tag-case", options={"case": "upper"}),
    ]
    trim, case = config.build_processors()
    assert isinstance(trim, TrimProcessor)
    assert isinstance(case, TagNameCaseProcessor)
    assert case.case == "upper"


def test_empty_file_yields_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")

    assert load_config(path) == ParserConfig()


def test_unknown_processor_is_rejected() -> None:
    with pytest.raises(ConfigError, match="unknown processor 'nope'"):
        config_from_mapping({"processors": ["nope"]})


def test_escape_character_must_be_single_character() -> None:
    with pytest.raises(ConfigError, match="exactly one character"):
        config_from_mapping({"escape_character": "\\\\"})


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ConfigError):
        config_from_mapping({"escape": "!"})


def test_payload_must_be_a_mapping(tmp_path: Path) -> None:
    path = _write(tmp_path, "list.yml", "- trim")

    with pytest.raises(ConfigError, match="must be a mapping"):
        load_config(path)


def test_invalid_yaml(tmp_path: Path) -> None:
    path = _write(tmp_path, "broken.yml", "processors: [trim")

    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Failed to read configuration"):
        load_config(tmp_path / "absent.yml")


def test_invalid_processor_options_fail_when_building() -> None:
    config = config_from_mapping(
        {"processors": [{"name": "tag-case", "options": {"case": "title"}}]}
    )

    with pytest.raises(ConfigError, match="Invalid options for processor 'tag-case'"):
        config.build_processors()


def test_unexpected_processor_options_fail_when_building() -> None:
    config = config_from_mapping({"processors": [{"name": "trim", "options": {"bogus": 1}}]})

    with pytest.raises(ConfigError, match="'trim'"):
        config.build_processors()
