"""Resource actions publishing mesh settings to other components."""

from __future__ import annotations

from typing import TYPE_CHECKING

from platform_features.feature.servicemesh.data import (
    auth_from,
    auth_provider_from,
    auth_provider_namespace_from,
    control_plane_from,
)
from platform_features.services.kubernetes.configuration_manager import ConfigurationManager

if TYPE_CHECKING:
    from platform_features.feature.feature import Feature

MESH_REFS_CONFIG_MAP = "service-mesh-refs"
AUTH_REFS_CONFIG_MAP = "auth-refs"
AUTHORINO_LABEL = "security.opendatahub.io/authorization-group=default"


def mesh_refs(f: Feature) -> None:
    """Store control plane coordinates in a config map owned by the feature."""
    control_plane = control_plane_from(f)
    ConfigurationManager(f.client).create_or_update_config_map(
        MESH_REFS_CONFIG_MAP,
        f.target_namespace,
        data={
            "CONTROL_PLANE_NAME": control_plane.name,
            "MESH_NAMESPACE": control_plane.namespace,
        },
        owner_references=[f.owner_reference()],
    )


def auth_refs(f: Feature) -> None:
    """Store authorization provider settings in a config map owned by the feature."""
    auth = auth_from(f)
    ConfigurationManager(f.client).create_or_update_config_map(
        AUTH_REFS_CONFIG_MAP,
        f.target_namespace,
        data={
            "AUTH_AUDIENCE": ",".join(auth.audiences or []),
            "AUTH_PROVIDER": auth_provider_from(f),
            "AUTH_NAMESPACE": auth_provider_namespace_from(f),
            "AUTHORINO_LABEL": AUTHORINO_LABEL,
        },
        owner_references=[f.owner_reference()],
    )
