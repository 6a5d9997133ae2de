"""Orchestration of the features declared by one consumer.

A consumer (a component, or the platform itself) hands a
:class:`FeaturesHandler` one or more providers. Each provider receives
the handler's :class:`FeaturesRegistry` and adds feature builders to it.
Features are applied in declaration order and deleted in reverse.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from platform_features.core.config.models import EngineConfig
from platform_features.feature.errors import ApplyError, FeatureBuildError, FeatureCancelledError
from platform_features.feature.tracker import Source, SourceType

if TYPE_CHECKING:
    from platform_features.feature.builder import FeatureBuilder
    from platform_features.feature.feature import Feature
    from platform_features.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()

PLATFORM_SOURCE_NAME = "Platform"


class FeaturesRegistry:
    """Collects the features of one handler."""

    def __init__(self, handler: FeaturesHandler) -> None:
        self._handler = handler

    def add(self, *builders: FeatureBuilder) -> None:
        """Create features from ``builders`` and register them with the handler.

        Builders without a target namespace inherit the handler's. The
        handler's source, client and engine config are applied to every builder.

        Raises:
            FeatureBuildError: If a feature name is already registered or a
                builder cannot create its feature.
        """
        handler = self._handler
        for builder in builders:
            if builder.name in handler.feature_names:
                raise FeatureBuildError(
                    f"feature {builder.name!r} is already registered for {handler.source.name}",
                    feature=builder.name,
                )
            if not builder.settings.target_namespace:
                builder.target_namespace(handler.target_namespace)
            builder.source(handler.source).with_engine_config(handler.config)
            if handler.client is not None:
                builder.using_client(handler.client)
            feature = builder.create()
            if handler.client is None:
                handler.client = feature.client
            handler.features.append(feature)


type FeaturesProvider = Callable[[FeaturesRegistry], None]


class FeaturesHandler:
    """Applies and deletes the features of one consumer as a group.

    Providers run lazily on the first apply or delete so that handlers can
    be declared without touching the cluster.
    """

    def __init__(
        self,
        source: Source,
        target_namespace: str,
        *providers: FeaturesProvider,
        client: KubernetesClient | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.source = source
        self.target_namespace = target_namespace
        self.providers = list(providers)
        self.client = client
        self.config = config or EngineConfig()
        self.features: list[Feature] = []
        self._loaded = False
        self._log = logger.bind(source=source.name, namespace=target_namespace)

    @property
    def feature_names(self) -> list[str]:
        return [f.name for f in self.features]

    def load(self) -> list[Feature]:
        """Run the providers once and return the registered features.

        Raises:
            FeatureBuildError: If a provider or builder fails.
        """
        if self._loaded:
            return self.features
        registry = FeaturesRegistry(self)
        try:
            for provider in self.providers:
                provider(registry)
        except Exception:
            self.features = []
            raise
        self._loaded = True
        self._log.debug("features_loaded", features=self.feature_names)
        return self.features

    def apply(self, cancel: threading.Event | None = None) -> None:
        """Apply every feature in declaration order.

        A failing feature does not stop the following ones; all failures
        are reported together.

        Raises:
            ApplyError: If one or more features failed.
            FeatureCancelledError: If ``cancel`` was set; remaining features are skipped.
        """
        errors: list[Exception] = []
        for feature in self.load():
            try:
                feature.apply(cancel)
            except FeatureCancelledError:
                raise
            except Exception as e:
                self._log.error("feature_failed", feature=feature.name, error=str(e))
                errors.append(e)
        if errors:
            raise ApplyError(f"failed applying features of {self.source.name}", errors)
        self._log.info("features_applied", count=len(self.features))

    def delete(self) -> None:
        """Clean up every feature in reverse declaration order.

        Raises:
            ApplyError: If one or more features failed to clean up.
        """
        errors: list[Exception] = []
        for feature in reversed(self.load()):
            try:
                feature.cleanup()
            except Exception as e:
                self._log.error("feature_cleanup_failed", feature=feature.name, error=str(e))
                errors.append(e)
        if errors:
            raise ApplyError(f"failed deleting features of {self.source.name}", errors)
        self._log.info("features_deleted", count=len(self.features))


def component_features_handler(
    component: str,
    target_namespace: str,
    *providers: FeaturesProvider,
    client: KubernetesClient | None = None,
    config: EngineConfig | None = None,
) -> FeaturesHandler:
    """Handler for features declared by a component."""
    return FeaturesHandler(
        Source(type=SourceType.COMPONENT, name=component),
        target_namespace,
        *providers,
        client=client,
        config=config,
    )


def cluster_features_handler(
    target_namespace: str,
    *providers: FeaturesProvider,
    client: KubernetesClient | None = None,
    config: EngineConfig | None = None,
) -> FeaturesHandler:
    """Handler for platform-wide features."""
    return FeaturesHandler(
        Source(type=SourceType.PLATFORM, name=PLATFORM_SOURCE_NAME),
        target_namespace,
        *providers,
        client=client,
        config=config,
    )
