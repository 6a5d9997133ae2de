"""Unit tests for RBACManager."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from platform_features.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesNotFoundError,
)
from platform_features.services.kubernetes.rbac_manager import (
    RBAC_API_GROUP,
    RBAC_API_VERSION,
    RBACManager,
)

RULES = [{"apiGroups": ["serving.kserve.io"], "resources": ["inferenceservices"], "verbs": ["get"]}]
SUBJECTS = [{"kind": "ServiceAccount", "name": "odh-platform-manager", "namespace": "opendatahub"}]


@pytest.fixture
def rbac_manager(mock_k8s_client: MagicMock) -> RBACManager:
    """Create an RBACManager instance with mocked client."""
    return RBACManager(mock_k8s_client)


@pytest.mark.unit
@pytest.mark.kubernetes
class TestClusterRoles:
    """Tests for ClusterRole operations."""

    def test_create_cluster_role(self, rbac_manager: RBACManager, mock_k8s_client: MagicMock) -> None:
        """A missing role is created with its rules."""
        mock_k8s_client.get_resource.side_effect = KubernetesNotFoundError()

        rbac_manager.create_or_update_cluster_role("watcher", rules=RULES, labels={"a": "b"})

        body = mock_k8s_client.create_resource.call_args.args[0]
        assert body == {
            "apiVersion": RBAC_API_VERSION,
            "kind": "ClusterRole",
            "metadata": {"name": "watcher", "labels": {"a": "b"}},
            "rules": RULES,
        }

    def test_update_replaces_rules(self, rbac_manager: RBACManager, mock_k8s_client: MagicMock) -> None:
        """An existing role gets the new rules."""
        mock_k8s_client.get_resource.return_value = {
            "apiVersion": RBAC_API_VERSION,
            "kind": "ClusterRole",
            "metadata": {"name": "watcher", "resourceVersion": "3"},
            "rules": [],
        }

        rbac_manager.create_or_update_cluster_role("watcher", rules=RULES)

        body = mock_k8s_client.update_resource.call_args.args[0]
        assert body["rules"] == RULES
        assert body["metadata"]["resourceVersion"] == "3"

    def test_delete_absent_role(self, rbac_manager: RBACManager, mock_k8s_client: MagicMock) -> None:
        """Deleting a missing role is not an error."""
        mock_k8s_client.delete_resource.side_effect = KubernetesNotFoundError()

        assert rbac_manager.delete_cluster_role("watcher") is False

    def test_delete_denied(self, rbac_manager: RBACManager, mock_k8s_client: MagicMock) -> None:
        """Authorization failures propagate."""
        mock_k8s_client.delete_resource.side_effect = KubernetesAuthError(status_code=403)

        with pytest.raises(KubernetesAuthError):
            rbac_manager.delete_cluster_role("watcher")


@pytest.mark.unit
@pytest.mark.kubernetes
class TestClusterRoleBindings:
    """Tests for ClusterRoleBinding operations."""

    def test_create_binding(self, rbac_manager: RBACManager, mock_k8s_client: MagicMock) -> None:
        """A missing binding is created with role reference and subjects."""
        mock_k8s_client.get_resource.side_effect = KubernetesNotFoundError()

        rbac_manager.create_or_update_cluster_role_binding(
            "opendatahub-watcher", role_name="watcher", subjects=SUBJECTS
        )

        body = mock_k8s_client.create_resource.call_args.args[0]
        assert body["roleRef"] == {"apiGroup": RBAC_API_GROUP, "kind": "ClusterRole", "name": "watcher"}
        assert body["subjects"] == SUBJECTS

    def test_update_keeps_role_ref(self, rbac_manager: RBACManager, mock_k8s_client: MagicMock) -> None:
        """Only subjects change on an existing binding."""
        role_ref = {"apiGroup": RBAC_API_GROUP, "kind": "ClusterRole", "name": "original"}
        mock_k8s_client.get_resource.return_value = {
            "apiVersion": RBAC_API_VERSION,
            "kind": "ClusterRoleBinding",
            "metadata": {"name": "b"},
            "roleRef": role_ref,
            "subjects": [],
        }

        rbac_manager.create_or_update_cluster_role_binding("b", role_name="other", subjects=SUBJECTS)

        body = mock_k8s_client.update_resource.call_args.args[0]
        assert body["roleRef"] == role_ref
        assert body["subjects"] == SUBJECTS

    def test_delete_binding(self, rbac_manager: RBACManager, mock_k8s_client: MagicMock) -> None:
        """Deleting an existing binding reports True."""
        assert rbac_manager.delete_cluster_role_binding("b") is True
        mock_k8s_client.delete_resource.assert_called_once_with(RBAC_API_VERSION, "ClusterRoleBinding", "b")
