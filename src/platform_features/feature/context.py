"""Typed helpers for populating and reading a feature's context."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from platform_features.feature.feature import Action, Feature
    from platform_features.feature.provider import DataProvider


def entry[T](key: str, provider: DataProvider[T]) -> Action:
    """Create a data-provider action storing the provider's value under ``key``.

    For static values use ``value_of(value).get`` as the provider.
    """

    def load(f: Feature) -> None:
        f.set(key, provider(f.client))

    load.__name__ = f"entry[{key}]"
    return load


@dataclass(frozen=True)
class ContextEntry[T]:
    """Association between a context key and the provider computing its value."""

    key: str
    value: DataProvider[T]

    def as_action(self) -> Action:
        """Convert to a data-provider action."""
        return entry(self.key, self.value)


@dataclass(frozen=True)
class ContextDefinition[S, T]:
    """How a context entry is created from a source object and read back.

    Attributes:
        create: Builds the entry from a source object (e.g. a component spec).
        extract: Reads the stored value from a feature.
    """

    create: Callable[[S], ContextEntry[T]]
    extract: Callable[[Feature], T]


def extract_entry[T](key: str, expected_type: type[T]) -> Callable[[Feature], T]:
    """Build a reader for ``key`` that checks the stored value's type."""

    def extract(f: Feature) -> T:
        return f.get(key, expected_type)

    return extract
