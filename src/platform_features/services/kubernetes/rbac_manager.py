"""Kubernetes RBAC resource manager.

Manages cluster-scoped roles and bindings for the capability registry.
"""

from __future__ import annotations

from typing import Any

from platform_features.integrations.kubernetes.exceptions import KubernetesNotFoundError
from platform_features.services.kubernetes.base import K8sBaseManager

RBAC_API_VERSION = "rbac.authorization.k8s.io/v1"
RBAC_API_GROUP = "rbac.authorization.k8s.io"


class RBACManager(K8sBaseManager):
    """Manager for ClusterRoles and ClusterRoleBindings."""

    _entity_name = "rbac"

    # =========================================================================
    # ClusterRole Operations
    # =========================================================================

    def create_or_update_cluster_role(
        self,
        name: str,
        *,
        rules: list[dict[str, Any]],
        labels: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Create a cluster role, or replace the rules of an existing one.

        Args:
            name: ClusterRole name.
            rules: Policy rules in API form (``apiGroups``, ``resources``, ``verbs``).
            labels: ClusterRole labels.

        Returns:
            The stored cluster role.
        """
        existing = self._get_or_none(RBAC_API_VERSION, "ClusterRole", name)
        if existing is None:
            body = self._body("ClusterRole", name, labels)
            body["rules"] = rules
            self._log.info("creating_cluster_role", name=name, rules=len(rules))
            try:
                result = self._client.create_resource(body)
            except Exception as e:
                self._handle_api_error(e, "ClusterRole", name, None)
            self._log.info("created_cluster_role", name=name)
            return result

        body = {**existing, "metadata": self._merged_metadata(existing, labels), "rules": rules}
        self._log.info("updating_cluster_role", name=name, rules=len(rules))
        try:
            result = self._client.update_resource(body)
        except Exception as e:
            self._handle_api_error(e, "ClusterRole", name, None)
        self._log.info("updated_cluster_role", name=name)
        return result

    def delete_cluster_role(self, name: str) -> bool:
        """Delete a cluster role.

        Returns:
            False if the role did not exist.
        """
        return self._delete("ClusterRole", name)

    # =========================================================================
    # ClusterRoleBinding Operations
    # =========================================================================

    def create_or_update_cluster_role_binding(
        self,
        name: str,
        *,
        role_name: str,
        subjects: list[dict[str, str]],
        labels: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Create a cluster role binding, or replace the subjects of an existing one.

        The role reference of an existing binding is immutable, so only its
        subjects and labels are updated.

        Args:
            name: ClusterRoleBinding name.
            role_name: Name of the bound ClusterRole.
            subjects: Subjects in API form (``kind``, ``name``, ``namespace``).
            labels: ClusterRoleBinding labels.

        Returns:
            The stored cluster role binding.
        """
        existing = self._get_or_none(RBAC_API_VERSION, "ClusterRoleBinding", name)
        if existing is None:
            body = self._body("ClusterRoleBinding", name, labels)
            body["roleRef"] = {"apiGroup": RBAC_API_GROUP, "kind": "ClusterRole", "name": role_name}
            body["subjects"] = subjects
            self._log.info("creating_cluster_role_binding", name=name, role=role_name)
            try:
                result = self._client.create_resource(body)
            except Exception as e:
                self._handle_api_error(e, "ClusterRoleBinding", name, None)
            self._log.info("created_cluster_role_binding", name=name)
            return result

        body = {
            **existing,
            "metadata": self._merged_metadata(existing, labels),
            "subjects": subjects,
        }
        self._log.info("updating_cluster_role_binding", name=name)
        try:
            result = self._client.update_resource(body)
        except Exception as e:
            self._handle_api_error(e, "ClusterRoleBinding", name, None)
        self._log.info("updated_cluster_role_binding", name=name)
        return result

    def delete_cluster_role_binding(self, name: str) -> bool:
        """Delete a cluster role binding.

        Returns:
            False if the binding did not exist.
        """
        return self._delete("ClusterRoleBinding", name)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _body(kind: str, name: str, labels: dict[str, str] | None) -> dict[str, Any]:
        metadata: dict[str, Any] = {"name": name}
        if labels:
            metadata["labels"] = dict(labels)
        return {"apiVersion": RBAC_API_VERSION, "kind": kind, "metadata": metadata}

    @staticmethod
    def _merged_metadata(existing: dict[str, Any], labels: dict[str, str] | None) -> dict[str, Any]:
        metadata = dict(existing.get("metadata") or {})
        if labels:
            metadata["labels"] = {**(metadata.get("labels") or {}), **labels}
        return metadata

    def _delete(self, kind: str, name: str) -> bool:
        self._log.info("deleting_rbac_resource", kind=kind, name=name)
        try:
            self._client.delete_resource(RBAC_API_VERSION, kind, name)
        except KubernetesNotFoundError:
            self._log.debug("rbac_resource_absent", kind=kind, name=name)
            return False
        except Exception as e:
            self._handle_api_error(e, kind, name, None)
        self._log.info("deleted_rbac_resource", kind=kind, name=name)
        return True
