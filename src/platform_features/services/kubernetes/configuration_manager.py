"""Kubernetes configuration resource manager.

Manages ConfigMaps and Secrets through the Kubernetes API.
Secret values are never logged.
"""

from __future__ import annotations

import base64
from typing import Any

from platform_features.integrations.kubernetes.exceptions import KubernetesNotFoundError
from platform_features.services.kubernetes.base import K8sBaseManager


class ConfigurationManager(K8sBaseManager):
    """Manager for Kubernetes configuration resources."""

    _entity_name = "configuration"

    # =========================================================================
    # ConfigMap Operations
    # =========================================================================

    def get_config_map_data(self, name: str, namespace: str | None = None) -> dict[str, str] | None:
        """Get the data of a configmap, or None when it does not exist.

        Args:
            name: ConfigMap name.
            namespace: Target namespace.
        """
        ns = self._resolve_namespace(namespace)
        self._log.debug("getting_configmap_data", name=name, namespace=ns)
        existing = self._get_or_none("v1", "ConfigMap", name, ns)
        if existing is None:
            return None
        data: dict[str, str] = existing.get("data") or {}
        return data

    def create_or_update_config_map(
        self,
        name: str,
        namespace: str | None = None,
        *,
        data: dict[str, str],
        labels: dict[str, str] | None = None,
        owner_references: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Create a configmap, or merge data and labels into an existing one.

        Args:
            name: ConfigMap name.
            namespace: Target namespace.
            data: Key-value data.
            labels: Labels to set (merged over existing labels).
            owner_references: Owner references for the configmap.

        Returns:
            The stored configmap.
        """
        ns = self._resolve_namespace(namespace)
        existing = self._get_or_none("v1", "ConfigMap", name, ns)

        if existing is None:
            metadata: dict[str, Any] = {"name": name, "namespace": ns}
            if labels:
                metadata["labels"] = dict(labels)
            if owner_references:
                metadata["ownerReferences"] = list(owner_references)
            body = {"apiVersion": "v1", "kind": "ConfigMap", "metadata": metadata, "data": data}
            self._log.info("creating_configmap", name=name, namespace=ns)
            try:
                result = self._client.create_resource(body)
            except Exception as e:
                self._handle_api_error(e, "ConfigMap", name, ns)
            self._log.info("created_configmap", name=name, namespace=ns)
            return result

        metadata = dict(existing.get("metadata") or {})
        if labels:
            metadata["labels"] = {**(metadata.get("labels") or {}), **labels}
        if owner_references:
            metadata["ownerReferences"] = list(owner_references)
        body = {**existing, "metadata": metadata, "data": {**(existing.get("data") or {}), **data}}

        self._log.info("updating_configmap", name=name, namespace=ns)
        try:
            result = self._client.update_resource(body)
        except Exception as e:
            self._handle_api_error(e, "ConfigMap", name, ns)
        self._log.info("updated_configmap", name=name, namespace=ns)
        return result

    def delete_config_map(self, name: str, namespace: str | None = None) -> bool:
        """Delete a configmap.

        Returns:
            False if the configmap did not exist.
        """
        ns = self._resolve_namespace(namespace)
        return self._delete_if_exists("ConfigMap", name, ns)

    # =========================================================================
    # Secret Operations
    # =========================================================================

    def secret_exists(self, name: str, namespace: str | None = None) -> bool:
        """Check whether a secret exists. Its values are never read into logs."""
        ns = self._resolve_namespace(namespace)
        return self._get_or_none("v1", "Secret", name, ns) is not None

    def create_secret_if_absent(
        self,
        name: str,
        namespace: str | None = None,
        *,
        data: dict[str, bytes],
        secret_type: str = "Opaque",
        labels: dict[str, str] | None = None,
        owner_references: list[dict[str, Any]] | None = None,
    ) -> bool:
        """Create a secret unless one with the same name exists.

        Args:
            name: Secret name.
            namespace: Target namespace.
            data: Raw (unencoded) secret values.
            secret_type: Secret type, e.g. ``kubernetes.io/tls``.
            labels: Secret labels.
            owner_references: Owner references for the secret.

        Returns:
            True if the secret was created, False if it already existed.
        """
        return self.create_encoded_secret_if_absent(
            name,
            namespace,
            encoded_data={k: base64.b64encode(v).decode("ascii") for k, v in data.items()},
            secret_type=secret_type,
            labels=labels,
            owner_references=owner_references,
        )

    def create_encoded_secret_if_absent(
        self,
        name: str,
        namespace: str | None = None,
        *,
        encoded_data: dict[str, str],
        secret_type: str = "Opaque",
        labels: dict[str, str] | None = None,
        owner_references: list[dict[str, Any]] | None = None,
    ) -> bool:
        """Like :meth:`create_secret_if_absent`, with values already base64 encoded."""
        ns = self._resolve_namespace(namespace)
        if self.secret_exists(name, ns):
            self._log.debug("secret_exists", name=name, namespace=ns)
            return False

        metadata: dict[str, Any] = {"name": name, "namespace": ns}
        if labels:
            metadata["labels"] = dict(labels)
        if owner_references:
            metadata["ownerReferences"] = list(owner_references)
        body = {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": metadata,
            "type": secret_type,
            "data": dict(encoded_data),
        }

        self._log.info("creating_secret", name=name, namespace=ns, type=secret_type)
        try:
            self._client.create_resource(body)
        except Exception as e:
            self._handle_api_error(e, "Secret", name, ns)
        self._log.info("created_secret", name=name, namespace=ns)
        return True

    def _delete_if_exists(self, kind: str, name: str, namespace: str) -> bool:
        self._log.info("deleting_resource", kind=kind, name=name, namespace=namespace)
        try:
            self._client.delete_resource("v1", kind, name, namespace)
        except KubernetesNotFoundError:
            return False
        except Exception as e:
            self._handle_api_error(e, kind, name, namespace)
        return True
