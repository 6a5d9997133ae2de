"""Authorization capability.

Consumers declare the resource types they want protected. The capability
aggregates all declarations into a single ClusterRole granting read and
watch access, bound to the platform's service account.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import structlog

from platform_features.core.config.models import EngineConfig
from platform_features.services.kubernetes.rbac_manager import RBACManager

if TYPE_CHECKING:
    from platform_features.capabilities.types import ProtectedResource
    from platform_features.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()

ROLE_NAME = "platform-protected-resources-watcher"
BINDING_NAME = "opendatahub-" + ROLE_NAME
WATCH_VERBS = ("get", "list", "watch")


class AuthorizationCapability:
    """Aggregates protected resources declared by independent consumers.

    Args:
        available: Whether the cluster can provide authorization at all.
        config: Engine settings naming the platform namespace and service account.
    """

    def __init__(self, available: bool, config: EngineConfig | None = None) -> None:
        self.available = available
        self.config = config or EngineConfig()
        self._declarations: dict[str, list[ProtectedResource]] = {}
        self._log = logger.bind(capability="authorization")

    def is_available(self) -> bool:
        return self.available

    def protected_resources(self, consumer: str, *resources: ProtectedResource) -> None:
        """Set the resources ``consumer`` needs protected, replacing earlier declarations."""
        if resources:
            self._declarations[consumer] = list(resources)
        else:
            self._declarations.pop(consumer, None)

    @property
    def consumers(self) -> list[str]:
        return list(self._declarations)

    def all_protected_resources(self) -> list[ProtectedResource]:
        """Declarations of every consumer, in registration order."""
        return [r for resources in self._declarations.values() for r in resources]

    def is_required(self) -> bool:
        """True when at least one consumer declared a protected resource."""
        return bool(self.all_protected_resources())

    def rules(self) -> list[dict[str, Any]]:
        """Single policy rule covering every declared API group and resource."""
        api_groups: list[str] = []
        resources: list[str] = []
        for resource in self.all_protected_resources():
            if resource.gvk.group not in api_groups:
                api_groups.append(resource.gvk.group)
            if resource.resources and resource.resources not in resources:
                resources.append(resource.resources)
        return [{"apiGroups": api_groups, "resources": resources, "verbs": list(WATCH_VERBS)}]

    def as_json(self) -> str:
        """JSON snapshot of the aggregated declarations, empty fields omitted."""
        return json.dumps(
            [
                r.model_dump(mode="json", by_alias=True, exclude_defaults=True)
                for r in self.all_protected_resources()
            ]
        )

    # =========================================================================
    # Handler
    # =========================================================================

    def configure(self, client: KubernetesClient) -> None:
        """Create or update the role and binding, or remove them when not required."""
        if not self.is_required():
            self.remove(client)
            return

        rbac = RBACManager(client)
        rbac.create_or_update_cluster_role(ROLE_NAME, rules=self.rules())
        rbac.create_or_update_cluster_role_binding(
            BINDING_NAME,
            role_name=ROLE_NAME,
            subjects=[
                {
                    "kind": "ServiceAccount",
                    "name": self.config.capability_service_account,
                    "namespace": self.config.platform_namespace,
                }
            ],
        )
        self._log.info("authorization_configured", consumers=self.consumers)

    def remove(self, client: KubernetesClient) -> None:
        """Delete the binding and role; absent objects are ignored."""
        rbac = RBACManager(client)
        binding_deleted = rbac.delete_cluster_role_binding(BINDING_NAME)
        role_deleted = rbac.delete_cluster_role(ROLE_NAME)
        self._log.info("authorization_removed", binding_deleted=binding_deleted, role_deleted=role_deleted)
