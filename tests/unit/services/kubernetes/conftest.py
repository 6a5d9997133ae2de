"""Shared fixtures for Kubernetes service tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from platform_features.integrations.kubernetes.client import KubernetesClient


@pytest.fixture
def mock_k8s_client() -> MagicMock:
    """Create a mock Kubernetes client.

    Error translation is the real one so managers raise real exceptions.
    """
    mock_client = MagicMock()
    mock_client.default_namespace = "default"
    mock_client.translate_api_exception = KubernetesClient.translate_api_exception
    return mock_client
