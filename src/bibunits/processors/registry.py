"""Name registry for the built-in entry processors."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from ..aggregator import Processor


_REGISTRY: dict[str, Callable[..., Processor]] = {}

_FactoryT = TypeVar("_FactoryT", bound=Callable[..., Processor])


def register_processor(name: str) -> Callable[[_FactoryT], _FactoryT]:
    """Register a processor factory under *name*."""

    def decorator(factory: _FactoryT) -> _FactoryT:
        _REGISTRY[name] = factory
        return factory

    return decorator


def get_processor(name: str, **options: Any) -> Processor:
    """Instantiate the processor registered under *name*."""
    try:
        factory = _REGISTRY[name]
    except KeyError:
        known = ", ".join(sorted(_REGISTRY)) or "-"
        raise KeyError(f"Unknown processor '{name}' (available: {known})") from None
    return factory(**options)


def list_processors() -> list[str]:
    """Return the registered processor names in alphabetical order."""
    return sorted(_REGISTRY)


__all__ = ["get_processor", "list_processors", "register_processor"]
