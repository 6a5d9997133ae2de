"""Platform capabilities registered by components."""

from platform_features.capabilities.authz import AuthorizationCapability
from platform_features.capabilities.registry import Registry
from platform_features.capabilities.types import GroupVersionKind, Handler, ProtectedResource

__all__ = [
    "AuthorizationCapability",
    "GroupVersionKind",
    "Handler",
    "ProtectedResource",
    "Registry",
]
