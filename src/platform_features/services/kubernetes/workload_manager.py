"""Kubernetes workload manager.

Reports readiness of pods and deployments for postcondition checks.
"""

from __future__ import annotations

from typing import Any

from platform_features.services.kubernetes.base import K8sBaseManager


class WorkloadManager(K8sBaseManager):
    """Manager for workload readiness queries."""

    _entity_name = "workload"

    def list_pods(
        self,
        namespace: str | None = None,
        *,
        label_selector: str | None = None,
    ) -> list[dict[str, Any]]:
        """List pods in a namespace.

        Args:
            namespace: Target namespace (uses default if None).
            label_selector: Filter by label selector (e.g., 'app=nginx').
        """
        ns = self._resolve_namespace(namespace)
        self._log.debug("listing_pods", namespace=ns)
        try:
            pods = self._client.list_resources("v1", "Pod", ns, label_selector=label_selector)
        except Exception as e:
            self._handle_api_error(e, "Pod", None, ns)
        self._log.debug("listed_pods", count=len(pods))
        return pods

    def pods_ready(self, namespace: str | None = None, *, label_selector: str | None = None) -> bool:
        """Check that at least one pod exists and every pod is Running and Ready.

        Succeeded pods (completed jobs) count as ready.
        """
        pods = self.list_pods(namespace, label_selector=label_selector)
        if not pods:
            return False
        return all(_pod_ready(pod) for pod in pods)

    def deployment_available(self, name: str, namespace: str | None = None) -> bool:
        """Check whether a deployment reports the Available condition."""
        ns = self._resolve_namespace(namespace)
        deployment = self._get_or_none("apps/v1", "Deployment", name, ns)
        if deployment is None:
            return False
        conditions = (deployment.get("status") or {}).get("conditions") or []
        return any(c.get("type") == "Available" and c.get("status") == "True" for c in conditions)


def _pod_ready(pod: dict[str, Any]) -> bool:
    status = pod.get("status") or {}
    phase = status.get("phase")
    if phase == "Succeeded":
        return True
    if phase != "Running":
        return False
    conditions = status.get("conditions") or []
    return any(c.get("type") == "Ready" and c.get("status") == "True" for c in conditions)
