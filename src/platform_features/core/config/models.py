"""Engine configuration models."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from platform_features.integrations.kubernetes.config import KubernetesPluginConfig

DEFAULT_MANAGED_ANNOTATION = "opendatahub.io/managed"


class EngineConfig(BaseModel):
    """Settings shared by the feature engine and the capability registry."""

    model_config = ConfigDict(extra="forbid")

    platform_namespace: str = "opendatahub"
    manifests_root: str = "/opt/manifests"
    platform_manifests_path: str = "platform/default"
    managed_annotation: str = DEFAULT_MANAGED_ANNOTATION
    poll_interval_seconds: float = 2.0
    poll_timeout_seconds: float = 300.0
    kustomize_binary: str | None = None
    capability_service_account: str = "odh-platform-manager"
    kubernetes: KubernetesPluginConfig = KubernetesPluginConfig()

    @field_validator("poll_interval_seconds", "poll_timeout_seconds")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate polling settings are positive."""
        if v <= 0:
            raise ValueError("polling settings must be positive")
        return v

    @field_validator("platform_namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        """Validate the platform namespace is not blank."""
        if not v.strip():
            raise ValueError("platform_namespace must not be empty")
        return v.strip()

    @field_validator("manifests_root")
    @classmethod
    def validate_manifests_root(cls, v: str) -> str:
        """Expand ~ in the manifests root."""
        return str(Path(v).expanduser())

    @property
    def platform_manifests(self) -> Path:
        """Location of the shared platform manifests."""
        return Path(self.manifests_root) / self.platform_manifests_path

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> EngineConfig:
        """Create configuration with environment variable overrides.

        Supported environment variables:
            PF_PLATFORM_NAMESPACE: Namespace hosting shared platform resources
            PF_MANIFESTS_ROOT: Root directory of bundled manifests
            PF_POLL_INTERVAL: Poll interval for postcondition waits, in seconds
            PF_POLL_TIMEOUT: Poll timeout for postcondition waits, in seconds
            PF_KUSTOMIZE_BINARY: Explicit path to the kustomize binary

        ``PF_K8S_*`` variables are applied to the nested Kubernetes config.
        """
        config_dict = base_config.copy() if base_config else {}

        if namespace := os.environ.get("PF_PLATFORM_NAMESPACE"):
            config_dict["platform_namespace"] = namespace
        if manifests_root := os.environ.get("PF_MANIFESTS_ROOT"):
            config_dict["manifests_root"] = manifests_root
        if interval := os.environ.get("PF_POLL_INTERVAL"):
            config_dict["poll_interval_seconds"] = float(interval)
        if timeout := os.environ.get("PF_POLL_TIMEOUT"):
            config_dict["poll_timeout_seconds"] = float(timeout)
        if binary := os.environ.get("PF_KUSTOMIZE_BINARY"):
            config_dict["kustomize_binary"] = binary

        kubernetes = config_dict.pop("kubernetes", None)
        config_dict["kubernetes"] = KubernetesPluginConfig.from_env(kubernetes)

        return cls.model_validate(config_dict)


def load_config(path: Path | None = None) -> EngineConfig:
    """Load engine configuration from a YAML file plus environment overrides.

    Args:
        path: YAML file to read. When None or missing, only defaults and
            environment variables apply.

    Raises:
        ValueError: If the file cannot be parsed or is not a mapping.
    """
    from ruamel.yaml import YAML
    from ruamel.yaml.error import YAMLError

    base: dict[str, Any] = {}
    if path is not None and path.exists():
        yaml = YAML(typ="safe")
        try:
            loaded = yaml.load(path.read_text(encoding="utf-8"))
        except YAMLError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        base = loaded

    return EngineConfig.from_env(base)
