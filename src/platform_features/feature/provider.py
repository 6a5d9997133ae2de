"""Data providers for feature context entries.

A data provider is a callable taking the cluster client and returning a
value. Static values are wrapped with :func:`value_of`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from platform_features.integrations.kubernetes.client import KubernetesClient

type DataProvider[T] = Callable[[KubernetesClient], T]


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (bool, int, float, str, bytes, list, tuple, dict, set, frozenset)):
        return not value
    return False


class ValueOf[T]:
    """Wraps a static value so it can be used as a data provider.

    Example:
        >>> value_of("").or_else("knative-serving-cert")(client)
        'knative-serving-cert'
    """

    def __init__(self, value: T) -> None:
        self._value = value

    def get(self, _client: KubernetesClient | None = None) -> T:
        """Return the wrapped value."""
        return self._value

    def or_else(self, default: T) -> DataProvider[T]:
        """Provider returning ``default`` when the wrapped value is empty or zero."""

        def provide(_client: KubernetesClient) -> T:
            return default if _is_zero(self._value) else self._value

        return provide

    def or_get(self, fallback: DataProvider[T]) -> DataProvider[T]:
        """Provider calling ``fallback`` when the wrapped value is empty or zero."""

        def provide(client: KubernetesClient) -> T:
            return fallback(client) if _is_zero(self._value) else self._value

        return provide


def value_of[T](value: T) -> ValueOf[T]:
    """Wrap ``value`` for use as a data provider."""
    return ValueOf(value)
