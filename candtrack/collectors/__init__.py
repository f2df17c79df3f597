"""Source collectors, looked up by the provider name used on the CLI.

Each collector module calls ``register_collector`` at import time;
``candtrack.pipeline`` imports them all so the registry is complete
before any lookup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from candtrack.errors import ConfigError

if TYPE_CHECKING:
    from candtrack.collectors.base import BaseCollector

COLLECTOR_REGISTRY: dict[str, type[BaseCollector]] = {}


def register_collector(name: str, cls: type[BaseCollector]) -> None:
    """Register *cls* as the collector for provider *name*.

    Raises:
        ValueError: If *name* is already taken by a different class.
    """
    existing = COLLECTOR_REGISTRY.get(name)
    if existing is not None and existing is not cls:
        raise ValueError(
            f"Source {name!r} already registered to {existing.__name__}"
        )
    COLLECTOR_REGISTRY[name] = cls


def registered_sources() -> list[str]:
    return sorted(COLLECTOR_REGISTRY)


def get_collector(name: str) -> type[BaseCollector]:
    """Return the collector class registered for provider *name*.

    Raises:
        ConfigError: If no collector is registered under *name*.
    """
    try:
        return COLLECTOR_REGISTRY[name]
    except KeyError:
        known = ", ".join(registered_sources()) or "none"
        raise ConfigError(
            f"Unknown source {name!r}; registered sources: {known}"
        ) from None
