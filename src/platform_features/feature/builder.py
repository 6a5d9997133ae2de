"""Fluent construction of features.

The builder only records configuration. Nothing touches the cluster until
:meth:`FeatureBuilder.create` resolves a client, and even then no
reconciliation happens.

Example:
    ```python
    feature = (
        define("serverless-serving-gateways")
        .target_namespace("opendatahub")
        .manifests("serverless/gateways")
        .with_data(entry("Domain", value_of(domain).get))
        .preconditions(ensure_serverless_serving_deployed)
        .managed()
        .create()
    )
    feature.apply()
    ```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Self

import structlog

from platform_features.core.config.models import EngineConfig
from platform_features.feature.errors import FeatureBuildError, FeatureError
from platform_features.feature.feature import Feature
from platform_features.feature.kustomize import KustomizeManifest
from platform_features.feature.manifest import load_manifests
from platform_features.feature.tracker import Source, SourceType
from platform_features.integrations.kubernetes.exceptions import KubernetesError

if TYPE_CHECKING:
    from platform_features.feature.feature import Action
    from platform_features.feature.manifest import Manifest
    from platform_features.feature.plugins import ResourceTransformer
    from platform_features.integrations.kubernetes.client import KubernetesClient
    from platform_features.integrations.kubernetes.config import KubernetesPluginConfig

logger = structlog.get_logger()


@dataclass
class _ManifestSource:
    paths: tuple[str, ...]
    location: Path | None = None


@dataclass
class _KustomizeSource:
    location: str
    plugins: tuple[ResourceTransformer, ...] = ()


@dataclass
class FeatureSettings:
    """Everything a builder accumulates before creating a feature."""

    name: str
    target_namespace: str = ""
    source: Source = field(default_factory=Source)
    managed: bool = False
    enabled: bool = True
    manifest_sources: list[_ManifestSource | _KustomizeSource] = field(default_factory=list)
    global_plugins: list[ResourceTransformer] = field(default_factory=list)
    data_providers: list[Action] = field(default_factory=list)
    preconditions: list[Action] = field(default_factory=list)
    resources: list[Action] = field(default_factory=list)
    postconditions: list[Action] = field(default_factory=list)
    cleanups: list[Action] = field(default_factory=list)


def define(feature_name: str) -> FeatureBuilder:
    """Start defining a feature called ``feature_name``."""
    return FeatureBuilder(feature_name)


class FeatureBuilder:
    """Accumulates a feature's configuration; calls may come in any order."""

    def __init__(self, feature_name: str) -> None:
        if not feature_name:
            raise FeatureBuildError("feature name must not be empty")
        self.settings = FeatureSettings(
            name=feature_name,
            source=Source(type=SourceType.UNKNOWN, name=feature_name),
        )
        self._client: KubernetesClient | None = None
        self._plugin_config: KubernetesPluginConfig | None = None
        self._config: EngineConfig | None = None

    @property
    def name(self) -> str:
        return self.settings.name

    def target_namespace(self, namespace: str) -> Self:
        """Namespace the feature is applied to. Required."""
        self.settings.target_namespace = namespace
        return self

    def source(self, source: Source) -> Self:
        """Record which consumer declared the feature."""
        self.settings.source = source
        return self

    def manifests(self, *paths: str, location: Path | str | None = None) -> Self:
        """Add manifest files or directories.

        Args:
            paths: Paths relative to ``location``.
            location: Root directory, defaulting to the configured manifests root.
        """
        root = Path(location) if location is not None else None
        self.settings.manifest_sources.append(_ManifestSource(paths=paths, location=root))
        return self

    def kustomize(self, location: str, *plugins: ResourceTransformer) -> Self:
        """Add an overlay directory built with kustomize, transformed by ``plugins``."""
        self.settings.manifest_sources.append(_KustomizeSource(location=location, plugins=plugins))
        return self

    def global_plugins(self, *plugins: ResourceTransformer) -> Self:
        """Transformers applied to every overlay of this feature, after its own plugins."""
        self.settings.global_plugins.extend(plugins)
        return self

    def managed(self, managed: bool = True) -> Self:
        """Mark emitted objects as managed so later applies reconcile them."""
        self.settings.managed = managed
        return self

    def enabled(self, enabled: bool = True) -> Self:
        """Disabled features make apply and cleanup no-ops."""
        self.settings.enabled = enabled
        return self

    def with_data(self, *data_providers: Action) -> Self:
        """Data providers populating the context before anything else runs."""
        self.settings.data_providers.extend(data_providers)
        return self

    def with_resources(self, *resources: Action) -> Self:
        """Actions creating resources programmatically, run before manifests."""
        self.settings.resources.extend(resources)
        return self

    def preconditions(self, *preconditions: Action) -> Self:
        """Checks that must pass before any resource is created."""
        self.settings.preconditions.extend(preconditions)
        return self

    def postconditions(self, *postconditions: Action) -> Self:
        """Checks run after manifests are applied."""
        self.settings.postconditions.extend(postconditions)
        return self

    def on_delete(self, *cleanups: Action) -> Self:
        """Cleanup hooks for side effects not removed by ownership cascade.

        Resources owned by the tracker are deleted with it; use this for
        things like reverting a patch.
        """
        self.settings.cleanups.extend(cleanups)
        return self

    def using_client(self, client: KubernetesClient) -> Self:
        """Use an existing cluster client."""
        self._client = client
        return self

    def using_config(self, plugin_config: KubernetesPluginConfig) -> Self:
        """Connect with explicit cluster settings instead of ambient credentials."""
        self._plugin_config = plugin_config
        return self

    def with_engine_config(self, config: EngineConfig) -> Self:
        self._config = config
        return self

    # =========================================================================
    # Create
    # =========================================================================

    def create(self) -> Feature:
        """Validate the configuration and assemble the feature.

        Raises:
            FeatureBuildError: If the target namespace is missing, no client
                can be created, or a manifest path cannot be loaded.
        """
        settings = self.settings
        if not settings.target_namespace:
            raise FeatureBuildError(
                f"target namespace for '{settings.name}' feature is not defined",
                feature=settings.name,
            )

        config = self._config or EngineConfig()
        client = self._resolve_client(config)
        manifest_root = Path(config.manifests_root)
        manifests = self._load_manifests(manifest_root, config)

        feature = Feature(
            settings.name,
            settings.target_namespace,
            client,
            config=config,
            managed=settings.managed,
            enabled=settings.enabled,
            source=settings.source,
            manifests=manifests,
            manifest_root=manifest_root,
            global_plugins=settings.global_plugins,
            data_providers=settings.data_providers,
            preconditions=settings.preconditions,
            resources=settings.resources,
            postconditions=settings.postconditions,
            cleanups=settings.cleanups,
        )
        logger.debug(
            "feature_created",
            feature=settings.name,
            namespace=settings.target_namespace,
            manifests=len(manifests),
        )
        return feature

    def _resolve_client(self, config: EngineConfig) -> KubernetesClient:
        if self._client is not None:
            return self._client

        from platform_features.integrations.kubernetes.client import KubernetesClient

        plugin_config = self._plugin_config or config.kubernetes
        try:
            self._client = KubernetesClient(plugin_config, prefer_in_cluster=True)
        except KubernetesError as e:
            raise FeatureBuildError(
                f"cannot create cluster client: {e}", feature=self.settings.name
            ) from e
        return self._client

    def _load_manifests(self, default_root: Path, config: EngineConfig) -> list[Manifest]:
        settings = self.settings
        manifests: list[Manifest] = []
        for source in settings.manifest_sources:
            if isinstance(source, _KustomizeSource):
                manifests.append(
                    KustomizeManifest(
                        default_root,
                        source.location,
                        plugins=[*source.plugins, *settings.global_plugins],
                        kustomize_binary=config.kustomize_binary,
                    )
                )
                continue
            root = source.location or default_root
            for path in source.paths:
                try:
                    manifests.extend(
                        load_manifests(
                            root,
                            path,
                            plugins=settings.global_plugins,
                            kustomize_binary=config.kustomize_binary,
                        )
                    )
                except FeatureError as e:
                    raise FeatureBuildError(
                        f"cannot load manifests from {path}: {e}", feature=settings.name
                    ) from e
        return manifests
