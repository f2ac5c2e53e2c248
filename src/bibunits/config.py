"""Configuration models used by the parser and the CLI.

ParserConfig

`escape_character` (`str`)
: Character that escapes braces, quotes and itself inside tag content. The
  escape character is removed from unit text but kept in offsets.

`encoding` (`str`)
: Text encoding used when reading files and binary streams.

`processors` (`list[ProcessorSpec]`)
: Processors applied, in order, to every exported entry. Each item names a
  registered processor and optional keyword options. A bare string is a
  shorthand for a processor without options.

Example

```yaml
escape_character: "\\"
processors:
  - trim
  - name: tag-case
    options:
      case: lower
  - names
```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
import yaml

from .aggregator import Processor
from .exceptions import ConfigError
from .processors import get_processor, list_processors


class ProcessorSpec(BaseModel):
    """Reference to a registered processor."""

    model_config = ConfigDict(extra="forbid")

    name: str
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _known_processor(cls, value: str) -> str:
        if value not in list_processors():
            known = ", ".join(list_processors())
            raise ValueError(f"unknown processor '{value}' (available: {known})")
        return value


class ParserConfig(BaseModel):
    """Settings shared by a parser and its aggregator."""

    model_config = ConfigDict(extra="forbid")

    escape_character: str = "\\"
    encoding: str = "utf-8"
    processors: list[ProcessorSpec] = Field(default_factory=list)

    @field_validator("escape_character")
    @classmethod
    def _single_character(cls, value: str) -> str:
        if len(value) != 1:
            raise ValueError("escape character must be exactly one character")
        return value

    @field_validator("processors", mode="before")
    @classmethod
    def _expand_shorthand(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"name": item} if isinstance(item, str) else item for item in value]
        return value

    def build_processors(self) -> list[Processor]:
        """Instantiate the configured processors in declaration order."""
        built: list[Processor] = []
        for spec in self.processors:
            try:
                built.append(get_processor(spec.name, **spec.options))
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"Invalid options for processor '{spec.name}': {exc}") from exc
        return built


def load_config(path: Path | str) -> ParserConfig:
    """Read and validate a YAML configuration file."""
    config_path = Path(path)
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Failed to read configuration '{config_path}': {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in '{config_path}': {exc}") from exc
    return config_from_mapping(raw, source=config_path)


def config_from_mapping(raw: Any, *, source: Path | str | None = None) -> ParserConfig:
    """Validate an already decoded configuration payload."""
    where = f" in '{source}'" if source is not None else ""
    if raw is None:
        return ParserConfig()
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration{where} must be a mapping, got {type(raw).__name__}.")
    try:
        return ParserConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration{where}: {exc}") from exc


__all__ = ["ParserConfig", "ProcessorSpec", "config_from_mapping", "load_config"]
