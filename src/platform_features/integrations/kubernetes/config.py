"""Kubernetes connection configuration models."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClusterConfig(BaseModel):
    """Configuration for a single Kubernetes cluster."""

    model_config = ConfigDict(extra="forbid")

    context: str = ""
    kubeconfig: str = Field(default="~/.kube/config", validate_default=True)
    namespace: str = "default"
    timeout: int = 300

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("kubeconfig")
    @classmethod
    def validate_kubeconfig(cls, v: str) -> str:
        """Expand ~ in kubeconfig path."""
        return str(Path(v).expanduser())


class KubernetesDefaultsConfig(BaseModel):
    """Default settings for Kubernetes operations."""

    model_config = ConfigDict(extra="forbid")

    timeout: int = 300
    retry_attempts: int = 3
    prefer_in_cluster: bool = True

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Validate retry_attempts is non-negative."""
        if v < 0:
            raise ValueError("retry_attempts must be non-negative")
        return v


class KubernetesPluginConfig(BaseModel):
    """Complete Kubernetes connection configuration."""

    model_config = ConfigDict(extra="forbid")

    clusters: dict[str, ClusterConfig] = {}
    active_cluster: str | None = None
    defaults: KubernetesDefaultsConfig = KubernetesDefaultsConfig()

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> KubernetesPluginConfig:
        """Create configuration with environment variable overrides.

        Environment variables take precedence over base_config values.

        Supported environment variables:
            PF_K8S_CONTEXT: Override active Kubernetes context
            PF_K8S_NAMESPACE: Override default namespace
            PF_K8S_KUBECONFIG: Override kubeconfig path
            PF_K8S_TIMEOUT: Default timeout in seconds
            PF_K8S_IN_CLUSTER_FIRST: "false" to try kubeconfig before in-cluster credentials
        """
        config_dict = base_config.copy() if base_config else {}

        if "defaults" not in config_dict:
            config_dict["defaults"] = {}
        if "clusters" not in config_dict:
            config_dict["clusters"] = {}

        if kubeconfig := os.environ.get("PF_K8S_KUBECONFIG"):
            config_dict.setdefault("_kubeconfig_override", kubeconfig)

        if context := os.environ.get("PF_K8S_CONTEXT"):
            config_dict["active_cluster"] = context

        if namespace := os.environ.get("PF_K8S_NAMESPACE"):
            config_dict.setdefault("_namespace_override", namespace)

        if timeout := os.environ.get("PF_K8S_TIMEOUT"):
            config_dict["defaults"]["timeout"] = int(timeout)

        if in_cluster_first := os.environ.get("PF_K8S_IN_CLUSTER_FIRST"):
            config_dict["defaults"]["prefer_in_cluster"] = in_cluster_first.lower() not in (
                "0",
                "false",
                "no",
            )

        kubeconfig_override = config_dict.pop("_kubeconfig_override", None)
        namespace_override = config_dict.pop("_namespace_override", None)

        instance = cls.model_validate(config_dict)

        if kubeconfig_override:
            for cluster_cfg in instance.clusters.values():
                cluster_cfg.kubeconfig = str(Path(kubeconfig_override).expanduser())

        if namespace_override:
            for cluster_cfg in instance.clusters.values():
                cluster_cfg.namespace = namespace_override

        return instance

    def get_active_context(self) -> str | None:
        """Get the active cluster context name.

        Returns the active_cluster if set, or the context from the first
        configured cluster, or None if no clusters are configured.
        """
        if self.active_cluster:
            if cluster := self.clusters.get(self.active_cluster):
                return cluster.context
            return self.active_cluster
        if self.clusters:
            first = next(iter(self.clusters.values()))
            return first.context
        return None

    def get_active_namespace(self) -> str:
        """Get the default namespace for the active cluster."""
        if self.active_cluster and self.active_cluster in self.clusters:
            return self.clusters[self.active_cluster].namespace
        if self.clusters:
            first = next(iter(self.clusters.values()))
            return first.namespace
        return "default"

    def get_active_timeout(self) -> int:
        """Get the timeout for the active cluster."""
        if self.active_cluster and self.active_cluster in self.clusters:
            return self.clusters[self.active_cluster].timeout
        return self.defaults.timeout

    def has_explicit_cluster(self) -> bool:
        """Whether a cluster or context was configured explicitly."""
        return bool(self.active_cluster or self.clusters)
