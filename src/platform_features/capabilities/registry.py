"""Registry of platform capabilities.

Components register their needs through the registry's capabilities. The
operator then calls :meth:`Registry.configure_capabilities` once, which
installs the shared platform only when at least one capability is needed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from platform_features.capabilities.authz import AuthorizationCapability
from platform_features.core.config.models import EngineConfig
from platform_features.feature.builder import define
from platform_features.feature.handler import FeaturesHandler, FeaturesRegistry, cluster_features_handler
from platform_features.services.kubernetes.configuration_manager import ConfigurationManager

if TYPE_CHECKING:
    from platform_features.capabilities.types import Handler
    from platform_features.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()

CAPABILITIES_CONFIG_MAP = "platform-capabilities"
PLATFORM_FEATURE_NAME = "deploy-odh-platform"
PART_OF_LABEL = "app.kubernetes.io/part-of"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"


class Registry:
    """Capabilities available to components, and their installation.

    Args:
        authorization: Authorization capability; created unavailable when omitted.
        config: Engine settings.
    """

    def __init__(
        self,
        authorization: AuthorizationCapability | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self._authorization = authorization or AuthorizationCapability(False, self.config)

    def authorization(self) -> AuthorizationCapability:
        return self._authorization

    @property
    def handlers(self) -> list[Handler]:
        return [self._authorization]

    def save(self, client: KubernetesClient) -> None:
        """Write the capabilities snapshot to the platform namespace."""
        ConfigurationManager(client).create_or_update_config_map(
            CAPABILITIES_CONFIG_MAP,
            self.config.platform_namespace,
            data={"authorization": self._authorization.as_json()},
            labels={PART_OF_LABEL: "opendatahub", MANAGED_BY_LABEL: "opendatahub-operator"},
        )
        logger.debug("capabilities_saved", namespace=self.config.platform_namespace)

    def platform_handler(self, client: KubernetesClient | None = None) -> FeaturesHandler:
        """Features deploying the shared platform components."""
        return cluster_features_handler(
            self.config.platform_namespace,
            self._define_platform,
            client=client,
            config=self.config,
        )

    def _define_platform(self, registry: FeaturesRegistry) -> None:
        registry.add(
            define(PLATFORM_FEATURE_NAME).manifests(
                self.config.platform_manifests_path,
                location=self.config.manifests_root,
            )
        )

    def _platform_removal_handler(self, client: KubernetesClient) -> FeaturesHandler:
        # the tracker owns every platform object, so removal does not read manifests
        return cluster_features_handler(
            self.config.platform_namespace,
            lambda registry: registry.add(define(PLATFORM_FEATURE_NAME)),
            client=client,
            config=self.config,
        )

    def configure_capabilities(self, client: KubernetesClient) -> None:
        """Install or remove the shared platform, then configure every capability.

        Raises:
            ApplyError: If the platform features fail to apply or delete.
            KubernetesError: If a capability cannot be configured or removed.
        """
        handlers = self.handlers

        if any(handler.is_required() for handler in handlers):
            logger.info("installing_platform_capabilities")
            self.platform_handler(client).apply()
        else:
            logger.info("removing_platform_capabilities")
            self._platform_removal_handler(client).delete()
            for handler in handlers:
                handler.remove(client)

        for handler in handlers:
            handler.configure(client)
