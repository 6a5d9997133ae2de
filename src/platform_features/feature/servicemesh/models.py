"""Service mesh settings consumed by mesh-related features."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ControlPlaneSpec(BaseModel):
    """Service mesh control plane the platform integrates with."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(default="data-science-smcp", description="ServiceMeshControlPlane name")
    namespace: str = Field(default="istio-system", description="Control plane namespace")
    metrics_collection: str = Field(default="Istio", description="Istio or None")


class AuthSpec(BaseModel):
    """Authorization provider settings."""

    model_config = ConfigDict(extra="forbid")

    namespace: str = Field(default="", description="Auth provider namespace; derived when empty")
    audiences: list[str] | None = Field(default=None, description="Token audiences")


class ServiceMeshSpec(BaseModel):
    """Service mesh section of the platform initialization settings."""

    model_config = ConfigDict(extra="forbid")

    management_state: str = Field(default="Managed", description="Managed or Removed")
    control_plane: ControlPlaneSpec = Field(default_factory=ControlPlaneSpec)
    auth: AuthSpec = Field(default_factory=AuthSpec)
