"""Kubernetes service managers."""

from platform_features.services.kubernetes.base import K8sBaseManager
from platform_features.services.kubernetes.certificate_manager import CertificateManager
from platform_features.services.kubernetes.configuration_manager import ConfigurationManager
from platform_features.services.kubernetes.namespace_manager import NamespaceManager
from platform_features.services.kubernetes.rbac_manager import RBACManager
from platform_features.services.kubernetes.workload_manager import WorkloadManager

__all__ = [
    "CertificateManager",
    "ConfigurationManager",
    "K8sBaseManager",
    "NamespaceManager",
    "RBACManager",
    "WorkloadManager",
]
