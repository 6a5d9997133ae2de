"""Unit tests for WorkloadManager."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from platform_features.integrations.kubernetes.exceptions import (
    KubernetesError,
    KubernetesNotFoundError,
)
from platform_features.services.kubernetes.workload_manager import WorkloadManager


def _pod(phase: str, ready: str | None = None) -> dict[str, Any]:
    status: dict[str, Any] = {"phase": phase}
    if ready is not None:
        status["conditions"] = [{"type": "Ready", "status": ready}]
    return {"status": status}


@pytest.fixture
def workload_manager(mock_k8s_client: MagicMock) -> WorkloadManager:
    """Create a WorkloadManager instance with mocked client."""
    return WorkloadManager(mock_k8s_client)


@pytest.mark.unit
@pytest.mark.kubernetes
class TestPodsReady:
    """Tests for pods_ready."""

    def test_no_pods_is_not_ready(
        self, workload_manager: WorkloadManager, mock_k8s_client: MagicMock
    ) -> None:
        """An empty namespace is not ready."""
        mock_k8s_client.list_resources.return_value = []

        assert workload_manager.pods_ready("knative-serving") is False

    @pytest.mark.parametrize(
        ("pods", "expected"),
        [
            ([_pod("Running", "True"), _pod("Succeeded")], True),
            ([_pod("Running", "True"), _pod("Running", "False")], False),
            ([_pod("Pending")], False),
            ([_pod("Running")], False),
        ],
    )
    def test_readiness(
        self,
        workload_manager: WorkloadManager,
        mock_k8s_client: MagicMock,
        pods: list[dict[str, Any]],
        expected: bool,
    ) -> None:
        """Every pod must be Running and Ready, or Succeeded."""
        mock_k8s_client.list_resources.return_value = pods

        assert workload_manager.pods_ready("ns", label_selector="app=x") is expected
        mock_k8s_client.list_resources.assert_called_once_with("v1", "Pod", "ns", label_selector="app=x")

    def test_list_error_translated(
        self, workload_manager: WorkloadManager, mock_k8s_client: MagicMock
    ) -> None:
        """Listing failures surface as KubernetesError."""
        mock_k8s_client.list_resources.side_effect = RuntimeError("timeout")

        with pytest.raises(KubernetesError, match="timeout"):
            workload_manager.list_pods("ns")


@pytest.mark.unit
@pytest.mark.kubernetes
class TestDeploymentAvailable:
    """Tests for deployment_available."""

    def test_available(self, workload_manager: WorkloadManager, mock_k8s_client: MagicMock) -> None:
        """The Available condition marks a deployment available."""
        mock_k8s_client.get_resource.return_value = {
            "status": {"conditions": [{"type": "Available", "status": "True"}]}
        }

        assert workload_manager.deployment_available("controller", "ns") is True

    def test_missing(self, workload_manager: WorkloadManager, mock_k8s_client: MagicMock) -> None:
        """A missing deployment is not available."""
        mock_k8s_client.get_resource.side_effect = KubernetesNotFoundError()

        assert workload_manager.deployment_available("controller") is False
