"""Kubernetes namespace manager."""

from __future__ import annotations

from typing import Any

from platform_features.integrations.kubernetes.exceptions import KubernetesConflictError
from platform_features.services.kubernetes.base import K8sBaseManager


class NamespaceManager(K8sBaseManager):
    """Manager for Kubernetes namespaces."""

    _entity_name = "namespace"

    def get_namespace(self, name: str) -> dict[str, Any] | None:
        """Get a namespace by name, or None when it does not exist."""
        self._log.debug("getting_namespace", name=name)
        return self._get_or_none("v1", "Namespace", name)

    def create_namespace_if_not_exists(
        self,
        name: str,
        *,
        labels: dict[str, str] | None = None,
        owner_references: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Create a namespace unless it already exists.

        An existing namespace is returned untouched; its labels are not
        reconciled.

        Args:
            name: Namespace name.
            labels: Labels for a newly created namespace.
            owner_references: Owner references for a newly created namespace.

        Returns:
            The existing or newly created namespace.
        """
        existing = self.get_namespace(name)
        if existing is not None:
            self._log.debug("namespace_exists", name=name)
            return existing

        metadata: dict[str, Any] = {"name": name}
        if labels:
            metadata["labels"] = dict(labels)
        if owner_references:
            metadata["ownerReferences"] = list(owner_references)
        body = {"apiVersion": "v1", "kind": "Namespace", "metadata": metadata}

        self._log.info("creating_namespace", name=name)
        try:
            result = self._client.create_resource(body)
        except KubernetesConflictError as e:
            if not e.already_exists:
                raise
            # created concurrently
            return self._client.get_resource("v1", "Namespace", name)
        except Exception as e:
            self._handle_api_error(e, "Namespace", name, None)
        self._log.info("created_namespace", name=name)
        return result
