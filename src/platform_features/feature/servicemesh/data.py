"""Context entries describing the service mesh setup.

:class:`ServiceMeshData` is built from the platform's mesh settings and
hands out the data-provider actions features need. Values are read back
with the ``*_from`` extractors, which only depend on the context key.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from platform_features.feature.context import ContextDefinition, ContextEntry, extract_entry
from platform_features.feature.provider import value_of
from platform_features.feature.servicemesh.models import AuthSpec, ControlPlaneSpec, ServiceMeshSpec

if TYPE_CHECKING:
    from platform_features.feature.feature import Action

CONTROL_PLANE_KEY = "ControlPlane"
AUTH_KEY = "Auth"
AUTH_PROVIDER_NAMESPACE_KEY = "AuthNamespace"
AUTH_PROVIDER_NAME_KEY = "AuthProviderName"
AUTH_EXTENSION_NAME_KEY = "AuthExtensionName"

AUTH_PROVIDER_NAME = "authorino"


class ServiceMeshData:
    """Data-provider factory for mesh features of one platform installation.

    Args:
        spec: Service mesh settings.
        applications_namespace: Namespace of the platform's applications.
    """

    def __init__(self, spec: ServiceMeshSpec, applications_namespace: str) -> None:
        self.spec = spec
        self.applications_namespace = applications_namespace

    @property
    def auth_provider_namespace(self) -> str:
        namespace = self.spec.auth.namespace.strip()
        return namespace or f"{self.applications_namespace}-auth-provider"

    @property
    def auth_extension_name(self) -> str:
        return f"{self.applications_namespace}-auth-provider"

    def control_plane(self) -> Action:
        return CONTROL_PLANE.create(self).as_action()

    def authorization(self) -> list[Action]:
        """All authorization entries: spec, namespace, provider and extension name."""
        return [
            AUTH.create(self).as_action(),
            AUTH_PROVIDER_NAMESPACE.create(self).as_action(),
            AUTH_PROVIDER.create(self).as_action(),
            AUTH_EXTENSION_NAME.create(self).as_action(),
        ]


CONTROL_PLANE: ContextDefinition[ServiceMeshData, ControlPlaneSpec] = ContextDefinition(
    create=lambda data: ContextEntry(CONTROL_PLANE_KEY, value_of(data.spec.control_plane).get),
    extract=extract_entry(CONTROL_PLANE_KEY, ControlPlaneSpec),
)

AUTH: ContextDefinition[ServiceMeshData, AuthSpec] = ContextDefinition(
    create=lambda data: ContextEntry(AUTH_KEY, value_of(data.spec.auth).get),
    extract=extract_entry(AUTH_KEY, AuthSpec),
)

AUTH_PROVIDER_NAMESPACE: ContextDefinition[ServiceMeshData, str] = ContextDefinition(
    create=lambda data: ContextEntry(
        AUTH_PROVIDER_NAMESPACE_KEY, value_of(data.auth_provider_namespace).get
    ),
    extract=extract_entry(AUTH_PROVIDER_NAMESPACE_KEY, str),
)

AUTH_PROVIDER: ContextDefinition[ServiceMeshData, str] = ContextDefinition(
    create=lambda _data: ContextEntry(AUTH_PROVIDER_NAME_KEY, value_of(AUTH_PROVIDER_NAME).get),
    extract=extract_entry(AUTH_PROVIDER_NAME_KEY, str),
)

AUTH_EXTENSION_NAME: ContextDefinition[ServiceMeshData, str] = ContextDefinition(
    create=lambda data: ContextEntry(AUTH_EXTENSION_NAME_KEY, value_of(data.auth_extension_name).get),
    extract=extract_entry(AUTH_EXTENSION_NAME_KEY, str),
)

control_plane_from = CONTROL_PLANE.extract
auth_from = AUTH.extract
auth_provider_namespace_from = AUTH_PROVIDER_NAMESPACE.extract
auth_provider_from = AUTH_PROVIDER.extract
auth_extension_name_from = AUTH_EXTENSION_NAME.extract
