"""Types shared by platform capabilities and their consumers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from platform_features.integrations.kubernetes.client import KubernetesClient


class GroupVersionKind(BaseModel):
    """API group, version and kind of a resource type."""

    model_config = ConfigDict(frozen=True)

    group: str = ""
    version: str = ""
    kind: str = ""


class ProtectedResource(BaseModel):
    """Resource type a consumer needs authorization wiring for.

    Serializes with the camelCase keys used in the capabilities snapshot.
    """

    model_config = ConfigDict(populate_by_name=True)

    gvk: GroupVersionKind = Field(default_factory=GroupVersionKind, description="Resource schema")
    workload_selector: dict[str, str] = Field(
        default_factory=dict,
        alias="workloadSelector",
        description="Labels selecting the protected workload",
    )
    resources: str = Field(default="", description="Plural resource name, e.g. 'inferenceservices'")
    host_paths: list[str] = Field(default_factory=list, alias="hostPaths")
    ports: list[str] = Field(default_factory=list)


class Handler(Protocol):
    """Installation steps of one capability."""

    def is_required(self) -> bool: ...

    def configure(self, client: KubernetesClient) -> None: ...

    def remove(self, client: KubernetesClient) -> None: ...
