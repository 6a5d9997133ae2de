"""Kubernetes integration - API client, kustomize wrapper, and configuration models."""

from platform_features.integrations.kubernetes.client import KubernetesClient
from platform_features.integrations.kubernetes.config import (
    ClusterConfig,
    KubernetesDefaultsConfig,
    KubernetesPluginConfig,
)
from platform_features.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesTimeoutError,
    KubernetesValidationError,
)
from platform_features.integrations.kubernetes.kustomize_client import (
    KustomizeBuildError,
    KustomizeClient,
    KustomizeError,
)

__all__ = [
    "ClusterConfig",
    "KubernetesAuthError",
    "KubernetesClient",
    "KubernetesConflictError",
    "KubernetesConnectionError",
    "KubernetesDefaultsConfig",
    "KubernetesError",
    "KubernetesNotFoundError",
    "KubernetesPluginConfig",
    "KubernetesTimeoutError",
    "KubernetesValidationError",
    "KustomizeBuildError",
    "KustomizeClient",
    "KustomizeError",
]
