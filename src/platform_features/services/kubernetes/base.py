"""Base manager for Kubernetes service managers.

Provides shared infrastructure for the resource managers used by feature
actions and the capability registry: client access, namespace resolution,
and error translation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NoReturn

import structlog

from platform_features.integrations.kubernetes.exceptions import KubernetesNotFoundError

if TYPE_CHECKING:
    from platform_features.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()


class K8sBaseManager:
    """Base class for Kubernetes service managers.

    Provides shared concerns for all managers:
    - Client reference and generic resource verbs
    - Structured logging with entity binding
    - Namespace resolution with config fallback
    - Consistent API error translation

    Subclasses set ``_entity_name`` for structured log context.

    Example:
        >>> class WorkloadManager(K8sBaseManager):
        ...     _entity_name = "workload"
    """

    _entity_name: str = ""

    def __init__(self, client: KubernetesClient) -> None:
        """Initialize the manager.

        Args:
            client: Kubernetes API client instance.
        """
        self._client = client
        self._log = logger.bind(entity=self._entity_name)

    def _resolve_namespace(self, namespace: str | None) -> str:
        """Resolve namespace, falling back to the client default."""
        return namespace or self._client.default_namespace

    def _get_or_none(
        self,
        api_version: str,
        kind: str,
        name: str,
        namespace: str | None = None,
    ) -> dict[str, Any] | None:
        """Fetch a resource, returning None when it does not exist."""
        try:
            return self._client.get_resource(api_version, kind, name, namespace)
        except KubernetesNotFoundError:
            return None
        except Exception as e:
            self._handle_api_error(e, kind, name, namespace)

    def _handle_api_error(
        self,
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> NoReturn:
        """Translate a Kubernetes API exception and re-raise.

        Raises:
            KubernetesError: Always raises an appropriate subclass.
        """
        translated = self._client.translate_api_exception(
            e,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )
        if translated is e:
            raise e
        raise translated from e
