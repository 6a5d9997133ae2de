"""Cleanup actions reverting changes made to the mesh control plane."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from platform_features.feature.servicemesh.data import auth_extension_name_from, control_plane_from
from platform_features.integrations.kubernetes.exceptions import KubernetesNotFoundError

if TYPE_CHECKING:
    from platform_features.feature.feature import Feature

SMCP_API_VERSION = "maistra.io/v2"
SMCP_KIND = "ServiceMeshControlPlane"


def remove_extension_provider(f: Feature) -> None:
    """Remove the auth extension provider patched into the control plane.

    A missing control plane or provider list means there is nothing to revert.
    """
    extension_name = auth_extension_name_from(f)
    control_plane = control_plane_from(f)

    try:
        smcp = f.client.get_resource(
            SMCP_API_VERSION, SMCP_KIND, control_plane.name, control_plane.namespace
        )
    except KubernetesNotFoundError:
        return

    mesh_config: dict[str, Any] = (
        ((smcp.get("spec") or {}).get("techPreview") or {}).get("meshConfig") or {}
    )
    providers = mesh_config.get("extensionProviders")
    if not providers:
        f.log.info(
            "no_extension_providers_found",
            control_plane=control_plane.name,
            namespace=control_plane.namespace,
        )
        return

    remaining = [p for p in providers if not (isinstance(p, dict) and p.get("name") == extension_name)]
    if len(remaining) == len(providers):
        return

    mesh_config["extensionProviders"] = remaining
    f.client.update_resource(smcp)
    f.log.info("extension_provider_removed", extension=extension_name, control_plane=control_plane.name)
