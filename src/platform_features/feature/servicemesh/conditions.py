"""Preconditions for features that integrate with the service mesh."""

from __future__ import annotations

from typing import TYPE_CHECKING

from platform_features.feature.conditions import ensure_crd_is_installed, poll_until
from platform_features.feature.errors import FeatureError
from platform_features.feature.servicemesh.cleanup import SMCP_API_VERSION, SMCP_KIND
from platform_features.feature.servicemesh.data import control_plane_from
from platform_features.integrations.kubernetes.exceptions import KubernetesNotFoundError

if TYPE_CHECKING:
    from platform_features.feature.feature import Feature

SMCP_CRD = "servicemeshcontrolplanes.maistra.io"


def ensure_service_mesh_installed(f: Feature) -> None:
    """Require the mesh CRD and a ready control plane.

    Raises:
        FeatureError: If the CRD or the control plane is missing.
        KubernetesTimeoutError: If the control plane does not become ready in time.
    """
    ensure_crd_is_installed(SMCP_CRD)(f)
    control_plane = control_plane_from(f)

    def ready() -> bool:
        try:
            smcp = f.client.get_resource(
                SMCP_API_VERSION, SMCP_KIND, control_plane.name, control_plane.namespace
            )
        except KubernetesNotFoundError as e:
            raise FeatureError(
                f"service mesh control plane {control_plane.namespace}/{control_plane.name} not found",
                feature=f.name,
            ) from e
        conditions = (smcp.get("status") or {}).get("conditions") or []
        return any(c.get("type") == "Ready" and c.get("status") == "True" for c in conditions)

    poll_until(
        f,
        ready,
        description=f"control plane {control_plane.name} to be ready",
        interval=None,
        timeout=None,
    )
