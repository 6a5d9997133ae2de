"""Service mesh features: data registry, resources and conditions."""

from platform_features.feature.servicemesh.cleanup import remove_extension_provider
from platform_features.feature.servicemesh.conditions import ensure_service_mesh_installed
from platform_features.feature.servicemesh.data import (
    ServiceMeshData,
    auth_extension_name_from,
    auth_from,
    auth_provider_from,
    auth_provider_namespace_from,
    control_plane_from,
)
from platform_features.feature.servicemesh.models import AuthSpec, ControlPlaneSpec, ServiceMeshSpec
from platform_features.feature.servicemesh.resources import auth_refs, mesh_refs

__all__ = [
    "AuthSpec",
    "ControlPlaneSpec",
    "ServiceMeshData",
    "ServiceMeshSpec",
    "auth_extension_name_from",
    "auth_from",
    "auth_provider_from",
    "auth_provider_namespace_from",
    "auth_refs",
    "control_plane_from",
    "ensure_service_mesh_installed",
    "mesh_refs",
    "remove_extension_provider",
]
