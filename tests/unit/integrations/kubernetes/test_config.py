"""Unit tests for Kubernetes configuration models."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from platform_features.integrations.kubernetes.config import (
    ClusterConfig,
    KubernetesDefaultsConfig,
    KubernetesPluginConfig,
)


@pytest.mark.unit
@pytest.mark.kubernetes
class TestClusterConfig:
    """Test ClusterConfig Pydantic model."""

    def test_default_values(self) -> None:
        """Defaults point at the user kubeconfig and the default namespace."""
        config = ClusterConfig()
        assert config.context == ""
        assert config.kubeconfig == str(Path("~/.kube/config").expanduser())
        assert config.namespace == "default"

    def test_kubeconfig_path_expansion(self) -> None:
        """Tilde in kubeconfig path is expanded."""
        config = ClusterConfig(kubeconfig="~/custom/config")
        assert "~" not in config.kubeconfig

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_timeout_must_be_positive(self, timeout: int) -> None:
        """Non-positive timeouts are rejected."""
        with pytest.raises(ValidationError, match="timeout must be positive"):
            ClusterConfig(timeout=timeout)

    def test_extra_fields_forbidden(self) -> None:
        """Unknown keys are rejected."""
        with pytest.raises(ValidationError):
            ClusterConfig(unknown="x")  # type: ignore[call-arg]


@pytest.mark.unit
@pytest.mark.kubernetes
class TestKubernetesDefaultsConfig:
    """Test KubernetesDefaultsConfig Pydantic model."""

    def test_default_values(self) -> None:
        """In-cluster credentials are preferred by default."""
        config = KubernetesDefaultsConfig()
        assert config.retry_attempts == 3
        assert config.prefer_in_cluster is True

    def test_retry_attempts_zero_allowed(self) -> None:
        """Zero retries disables retrying."""
        assert KubernetesDefaultsConfig(retry_attempts=0).retry_attempts == 0

    def test_retry_attempts_negative(self) -> None:
        """Negative retries are rejected."""
        with pytest.raises(ValidationError, match="retry_attempts must be non-negative"):
            KubernetesDefaultsConfig(retry_attempts=-1)


@pytest.mark.unit
@pytest.mark.kubernetes
class TestKubernetesPluginConfig:
    """Test KubernetesPluginConfig lookups and environment overrides."""

    def test_no_clusters(self) -> None:
        """Without clusters the context is unknown and the namespace is default."""
        config = KubernetesPluginConfig()
        assert config.get_active_context() is None
        assert config.get_active_namespace() == "default"
        assert config.has_explicit_cluster() is False

    def test_active_cluster_by_name(self) -> None:
        """A named active cluster supplies context, namespace and timeout."""
        config = KubernetesPluginConfig(
            clusters={"prod": ClusterConfig(context="prod-ctx", namespace="opendatahub", timeout=60)},
            active_cluster="prod",
        )
        assert config.get_active_context() == "prod-ctx"
        assert config.get_active_namespace() == "opendatahub"
        assert config.get_active_timeout() == 60
        assert config.has_explicit_cluster() is True

    def test_active_cluster_as_raw_context(self) -> None:
        """An active cluster not in the map is used as a raw context name."""
        config = KubernetesPluginConfig(active_cluster="kind-dev")
        assert config.get_active_context() == "kind-dev"
        assert config.get_active_timeout() == config.defaults.timeout

    def test_first_cluster_is_fallback(self) -> None:
        """The first configured cluster is used when none is active."""
        config = KubernetesPluginConfig(
            clusters={"a": ClusterConfig(context="ctx-a", namespace="ns-a")},
        )
        assert config.get_active_context() == "ctx-a"
        assert config.get_active_namespace() == "ns-a"

    def test_from_env_empty(self) -> None:
        """No variables yields the defaults."""
        config = KubernetesPluginConfig.from_env()
        assert config.clusters == {}
        assert config.active_cluster is None

    def test_from_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """PF_K8S_* variables override the base configuration."""
        monkeypatch.setenv("PF_K8S_CONTEXT", "staging")
        monkeypatch.setenv("PF_K8S_NAMESPACE", "odh")
        monkeypatch.setenv("PF_K8S_KUBECONFIG", "/tmp/kubeconfig")
        monkeypatch.setenv("PF_K8S_TIMEOUT", "42")
        monkeypatch.setenv("PF_K8S_IN_CLUSTER_FIRST", "false")

        config = KubernetesPluginConfig.from_env(
            {"clusters": {"staging": {"context": "stg"}}},
        )

        assert config.active_cluster == "staging"
        assert config.clusters["staging"].namespace == "odh"
        assert config.clusters["staging"].kubeconfig == "/tmp/kubeconfig"
        assert config.defaults.timeout == 42
        assert config.defaults.prefer_in_cluster is False
