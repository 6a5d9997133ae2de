"""Unit tests for the capability registry."""

from __future__ import annotations

import json
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from platform_features.capabilities.authz import ROLE_NAME, AuthorizationCapability
from platform_features.capabilities.registry import (
    CAPABILITIES_CONFIG_MAP,
    PLATFORM_FEATURE_NAME,
    Registry,
)
from platform_features.capabilities.types import GroupVersionKind, ProtectedResource
from platform_features.core.config.models import EngineConfig
from platform_features.feature.errors import ApplyError
from platform_features.feature.tracker import TRACKER_KIND

if TYPE_CHECKING:
    from tests.conftest import FakeCluster

NOTEBOOK = ProtectedResource(
    gvk=GroupVersionKind(group="kubeflow.org", version="v1", kind="Notebook"),
    resources="notebooks",
)
PLATFORM_DEPLOYMENT = {
    "apiVersion": "apps/v1",
    "kind": "Deployment",
    "metadata": {"name": "odh-platform-controller", "namespace": "opendatahub"},
}


@pytest.fixture
def registry(engine_config: EngineConfig, write_manifest: Callable[..., Path]) -> Registry:
    """Registry with platform manifests on disk."""
    write_manifest(f"{engine_config.platform_manifests_path}/controller.yaml", PLATFORM_DEPLOYMENT)
    return Registry(AuthorizationCapability(True, engine_config), engine_config)


def _tracker_name(config: EngineConfig) -> str:
    return f"{config.platform_namespace}-{PLATFORM_FEATURE_NAME}"


@pytest.mark.unit
class TestRegistry:
    """Tests for registry basics."""

    def test_default_authorization_unavailable(self) -> None:
        """Without an explicit capability authorization is unavailable."""
        registry = Registry()

        assert registry.authorization().is_available() is False
        assert registry.handlers == [registry.authorization()]

    def test_save_snapshot(self, registry: Registry, cluster: FakeCluster) -> None:
        """The snapshot lands in a labelled config map in the platform namespace."""
        registry.authorization().protected_resources("workbenches", NOTEBOOK)

        registry.save(cluster)

        snapshot = cluster.find("ConfigMap", CAPABILITIES_CONFIG_MAP, "opendatahub")
        assert json.loads(snapshot["data"]["authorization"]) == [
            {"gvk": {"group": "kubeflow.org", "version": "v1", "kind": "Notebook"}, "resources": "notebooks"}
        ]
        assert snapshot["metadata"]["labels"] == {
            "app.kubernetes.io/part-of": "opendatahub",
            "app.kubernetes.io/managed-by": "opendatahub-operator",
        }

    def test_save_empty_snapshot(self, registry: Registry, cluster: FakeCluster) -> None:
        """With no declarations the snapshot is an empty list."""
        registry.save(cluster)

        assert cluster.find("ConfigMap", CAPABILITIES_CONFIG_MAP, "opendatahub")["data"] == {"authorization": "[]"}

    def test_platform_handler(self, registry: Registry, cluster: FakeCluster) -> None:
        """The platform handler declares one feature in the platform namespace."""
        handler = registry.platform_handler(cluster)

        features = handler.load()

        assert [f.name for f in features] == [PLATFORM_FEATURE_NAME]
        assert features[0].target_namespace == "opendatahub"


@pytest.mark.unit
@pytest.mark.kubernetes
class TestConfigureCapabilities:
    """Tests for configure_capabilities."""

    def test_required_installs_platform(self, registry: Registry, cluster: FakeCluster) -> None:
        """A declared resource deploys the platform and the RBAC wiring."""
        registry.authorization().protected_resources("workbenches", NOTEBOOK)

        registry.configure_capabilities(cluster)

        deployment = cluster.find("Deployment", "odh-platform-controller", "opendatahub")
        assert deployment is not None
        assert deployment["metadata"]["ownerReferences"][0]["kind"] == TRACKER_KIND
        assert cluster.find("ClusterRole", ROLE_NAME) is not None

    def test_not_required_removes_platform(self, registry: Registry, cluster: FakeCluster) -> None:
        """Withdrawing every declaration tears the platform down."""
        registry.authorization().protected_resources("workbenches", NOTEBOOK)
        registry.configure_capabilities(cluster)
        registry.authorization().protected_resources("workbenches")

        registry.configure_capabilities(cluster)

        assert cluster.find(TRACKER_KIND, _tracker_name(registry.config)) is None
        assert cluster.find("Deployment", "odh-platform-controller", "opendatahub") is None
        assert cluster.find("ClusterRole", ROLE_NAME) is None

    def test_not_required_on_clean_cluster(self, registry: Registry, cluster: FakeCluster) -> None:
        """Nothing is created when no capability is needed."""
        registry.configure_capabilities(cluster)

        assert cluster.verbs("create") == []

    def test_platform_failure_stops_configuration(
        self, registry: Registry, cluster: FakeCluster, write_manifest: Callable[..., Path]
    ) -> None:
        """A failing platform apply is reported before capabilities are configured."""
        write_manifest(
            f"{registry.config.platform_manifests_path}/broken.tmpl.yaml",
            "metadata:\n  name: {{ Missing }}\n",
        )
        registry.authorization().protected_resources("workbenches", NOTEBOOK)

        with pytest.raises(ApplyError):
            registry.configure_capabilities(cluster)

        assert cluster.find("ClusterRole", ROLE_NAME) is None

    def test_removal_without_platform_manifests(
        self, engine_config: EngineConfig, cluster: FakeCluster, write_manifest: Callable[..., Path]
    ) -> None:
        """Removing the platform works after its manifests are gone from disk."""
        installer = Registry(AuthorizationCapability(True, engine_config), engine_config)
        write_manifest(f"{engine_config.platform_manifests_path}/controller.yaml", PLATFORM_DEPLOYMENT)
        installer.authorization().protected_resources("workbenches", NOTEBOOK)
        installer.configure_capabilities(cluster)
        shutil.rmtree(engine_config.platform_manifests)

        Registry(AuthorizationCapability(True, engine_config), engine_config).configure_capabilities(cluster)

        assert cluster.find(TRACKER_KIND, _tracker_name(engine_config)) is None
        assert cluster.find("Deployment", "odh-platform-controller", "opendatahub") is None
        assert cluster.find("ClusterRole", ROLE_NAME) is None
