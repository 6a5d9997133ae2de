"""Resource transformers applied to overlay build output."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

CLUSTER_SCOPED_KINDS = frozenset(
    {
        "APIService",
        "ClusterRole",
        "ClusterRoleBinding",
        "CustomResourceDefinition",
        "FeatureTracker",
        "MutatingWebhookConfiguration",
        "Namespace",
        "PersistentVolume",
        "PriorityClass",
        "StorageClass",
        "ValidatingWebhookConfiguration",
    }
)

_POD_TEMPLATE_KINDS = frozenset({"DaemonSet", "Deployment", "Job", "ReplicaSet", "StatefulSet"})
_BINDING_KINDS = frozenset({"ClusterRoleBinding", "RoleBinding"})


class ResourceTransformer(Protocol):
    """Mutates a list of resources in place."""

    def transform(self, resources: list[dict[str, Any]]) -> None: ...


class NamespaceTransformer:
    """Moves namespaced resources into one namespace.

    ServiceAccount subjects of role bindings follow the move so the binding
    keeps pointing at the relocated account.
    """

    def __init__(self, namespace: str) -> None:
        if not namespace:
            raise ValueError("namespace must not be empty")
        self.namespace = namespace

    def __repr__(self) -> str:
        return f"NamespaceTransformer(namespace={self.namespace!r})"

    def transform(self, resources: list[dict[str, Any]]) -> None:
        for resource in resources:
            kind = resource.get("kind", "")
            metadata = resource.setdefault("metadata", {})
            previous = metadata.get("namespace")
            if kind not in CLUSTER_SCOPED_KINDS:
                metadata["namespace"] = self.namespace
            if kind in _BINDING_KINDS:
                for subject in resource.get("subjects") or []:
                    if subject.get("kind") == "ServiceAccount" and (
                        previous is None or subject.get("namespace") in (None, previous)
                    ):
                        subject["namespace"] = self.namespace


class AddLabelsTransformer:
    """Adds labels to resources and to the pod templates of workloads.

    Selectors are left untouched since they are immutable on existing workloads.
    """

    def __init__(self, labels: Mapping[str, str]) -> None:
        self.labels = dict(labels)

    def __repr__(self) -> str:
        return f"AddLabelsTransformer(labels={self.labels!r})"

    def transform(self, resources: list[dict[str, Any]]) -> None:
        for resource in resources:
            _merge_labels(resource.setdefault("metadata", {}), self.labels)
            if resource.get("kind") in _POD_TEMPLATE_KINDS:
                template = (resource.get("spec") or {}).get("template")
                if isinstance(template, dict):
                    _merge_labels(template.setdefault("metadata", {}), self.labels)


def component_labels(component: str) -> dict[str, str]:
    """Labels identifying resources that belong to a component."""
    return {
        f"app.opendatahub.io/{component}": "true",
        "app.kubernetes.io/part-of": component,
    }


def _merge_labels(metadata: dict[str, Any], labels: Mapping[str, str]) -> None:
    current = metadata.get("labels") or {}
    current.update(labels)
    metadata["labels"] = current
