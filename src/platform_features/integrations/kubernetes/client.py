"""Kubernetes API client wrapper.

Wraps the official kubernetes Python client with credential loading,
a lazily created dynamic client, generic verbs over schema-less resource
dictionaries, retry logic, and consistent error translation.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from urllib3.exceptions import HTTPError as TransportError

from platform_features.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesValidationError,
)

if TYPE_CHECKING:
    from kubernetes.dynamic import DynamicClient

    from platform_features.integrations.kubernetes.config import KubernetesPluginConfig

logger = structlog.get_logger()

MERGE_PATCH_CONTENT_TYPE = "application/merge-patch+json"
DEFAULT_PROPAGATION_POLICY = "Background"


class KubernetesClient:
    """Kubernetes API client used by the feature engine.

    Wraps the official kubernetes Python client with:
    - In-cluster or kubeconfig credential loading, in a configurable order
    - A discovery-backed dynamic client created on first use
    - Generic get/list/create/update/patch/delete over plain resource dicts
    - Automatic retry with tenacity for connection errors
    - Consistent error translation to custom exceptions

    Example:
        ```python
        config = KubernetesPluginConfig.from_env()
        with KubernetesClient(config) as client:
            cm = client.get_resource("v1", "ConfigMap", "service-mesh-refs", "opendatahub")
        ```
    """

    def __init__(
        self,
        plugin_config: KubernetesPluginConfig,
        *,
        prefer_in_cluster: bool | None = None,
    ) -> None:
        """Initialize Kubernetes client from connection config.

        Args:
            plugin_config: Complete connection configuration.
            prefer_in_cluster: Try in-cluster credentials before kubeconfig.
                Defaults to ``plugin_config.defaults.prefer_in_cluster``; ignored
                when a cluster or context is configured explicitly.
        """
        self._config = plugin_config
        self._retries = plugin_config.defaults.retry_attempts
        self._current_context: str | None = None
        if prefer_in_cluster is None:
            prefer_in_cluster = plugin_config.defaults.prefer_in_cluster
        self._prefer_in_cluster = prefer_in_cluster and not plugin_config.has_explicit_cluster()

        self._dynamic: DynamicClient | None = None

        self._load_config()

        logger.info(
            "Kubernetes client initialized",
            context=self._current_context,
            default_namespace=plugin_config.get_active_namespace(),
        )

    def _load_config(self) -> None:
        """Load credentials from in-cluster service account or kubeconfig."""
        from kubernetes.config import ConfigException

        loaders = [self._load_kubeconfig, self._load_incluster]
        if self._prefer_in_cluster:
            loaders.reverse()

        errors: list[Exception] = []
        for loader in loaders:
            try:
                loader()
                break
            except ConfigException as e:
                errors.append(e)
        else:
            raise KubernetesConnectionError(
                message="Cannot load Kubernetes configuration. "
                "Ensure kubeconfig exists or running inside a cluster.",
                original_error=errors[-1],
            )

        self._invalidate_api_cache()

    def _load_kubeconfig(self) -> None:
        from kubernetes import config

        active_context = self._config.get_active_context()
        kubeconfig_path = None
        if self._config.active_cluster and self._config.active_cluster in self._config.clusters:
            kubeconfig_path = self._config.clusters[self._config.active_cluster].kubeconfig

        config.load_kube_config(config_file=kubeconfig_path, context=active_context)
        self._current_context = active_context
        logger.debug("loaded_kubeconfig", context=active_context, kubeconfig=kubeconfig_path)

    def _load_incluster(self) -> None:
        from kubernetes import config

        config.load_incluster_config()
        self._current_context = "in-cluster"
        logger.debug("loaded_incluster_config")

    def _invalidate_api_cache(self) -> None:
        """Drop the cached dynamic client."""
        self._dynamic = None

    @property
    def dynamic(self) -> DynamicClient:
        """Get a discovery-backed DynamicClient for arbitrary kinds."""
        if self._dynamic is None:
            from kubernetes.client import ApiClient
            from kubernetes.dynamic import DynamicClient

            self._dynamic = DynamicClient(ApiClient())
        return self._dynamic

    # =========================================================================
    # Generic Resource Verbs
    # =========================================================================

    def _resource_api(self, api_version: str, kind: str) -> Any:
        try:
            return self.dynamic.resources.get(api_version=api_version, kind=kind)
        except Exception as e:
            raise self.translate_api_exception(e, resource_type=kind) from e

    @staticmethod
    def _namespace_kwargs(api: Any, namespace: str | None) -> dict[str, Any]:
        if namespace and getattr(api, "namespaced", True):
            return {"namespace": namespace}
        return {}

    @staticmethod
    def _as_dict(instance: Any) -> dict[str, Any]:
        if hasattr(instance, "to_dict"):
            result: dict[str, Any] = instance.to_dict()
            return result
        return dict(instance)

    def _request(
        self,
        api_version: str,
        kind: str,
        name: str | None,
        namespace: str | None,
        call: Callable[[Any, dict[str, Any]], Any],
    ) -> Any:
        """Resolve the resource API for ``kind`` and run ``call`` against it.

        ``call`` receives the resource API and the namespace keyword
        arguments. Connection failures are retried; every other error is
        translated and raised immediately.
        """

        def attempt() -> Any:
            api = self._resource_api(api_version, kind)
            try:
                return call(api, self._namespace_kwargs(api, namespace))
            except Exception as e:
                raise self.translate_api_exception(e, kind, name, namespace) from e

        return self.make_retry_decorator()(attempt)()

    def get_resource(
        self,
        api_version: str,
        kind: str,
        name: str,
        namespace: str | None = None,
    ) -> dict[str, Any]:
        """Fetch a single resource.

        Raises:
            KubernetesNotFoundError: If the resource (or its kind) does not exist.
        """
        result = self._request(
            api_version, kind, name, namespace, lambda api, ns: api.get(name=name, **ns)
        )
        return self._as_dict(result)

    def list_resources(
        self,
        api_version: str,
        kind: str,
        namespace: str | None = None,
        *,
        label_selector: str | None = None,
    ) -> list[dict[str, Any]]:
        """List resources of a kind, within one namespace or across all of them."""
        selector = {"label_selector": label_selector} if label_selector else {}
        result = self._as_dict(
            self._request(
                api_version, kind, None, namespace, lambda api, ns: api.get(**ns, **selector)
            )
        )
        items: list[dict[str, Any]] = result.get("items") or []
        return items

    def create_resource(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create a resource from its full body."""
        kind, name, namespace = _identity(body)
        result = self._request(
            body.get("apiVersion", ""), kind, name, namespace, lambda api, ns: api.create(body=body, **ns)
        )
        return self._as_dict(result)

    def update_resource(self, body: dict[str, Any]) -> dict[str, Any]:
        """Replace a resource.

        The body should carry ``metadata.resourceVersion`` so that a concurrent
        modification surfaces as a :class:`KubernetesConflictError`.
        """
        kind, name, namespace = _identity(body)
        result = self._request(
            body.get("apiVersion", ""), kind, name, namespace, lambda api, ns: api.replace(body=body, **ns)
        )
        return self._as_dict(result)

    def update_resource_status(self, body: dict[str, Any]) -> dict[str, Any]:
        """Replace the status subresource of a resource."""
        kind, name, namespace = _identity(body)
        result = self._request(
            body.get("apiVersion", ""),
            kind,
            name,
            namespace,
            lambda api, ns: api.status.replace(body=body, **ns),
        )
        return self._as_dict(result)

    def patch_resource(self, body: dict[str, Any]) -> dict[str, Any]:
        """Apply *body* as a JSON merge patch to the existing resource.

        Raises:
            KubernetesNotFoundError: If the target does not exist; patches never create.
        """
        kind, name, namespace = _identity(body)
        result = self._request(
            body.get("apiVersion", ""),
            kind,
            name,
            namespace,
            lambda api, ns: api.patch(
                body=body, name=name, content_type=MERGE_PATCH_CONTENT_TYPE, **ns
            ),
        )
        return self._as_dict(result)

    def delete_resource(
        self,
        api_version: str,
        kind: str,
        name: str,
        namespace: str | None = None,
        *,
        propagation_policy: str = DEFAULT_PROPAGATION_POLICY,
    ) -> None:
        """Delete a resource, letting the garbage collector cascade to owned objects."""
        self._request(
            api_version,
            kind,
            name,
            namespace,
            lambda api, ns: api.delete(name=name, body={"propagationPolicy": propagation_policy}, **ns),
        )

    # =========================================================================
    # Error Translation
    # =========================================================================

    @staticmethod
    def translate_api_exception(
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> KubernetesError:
        """Translate a kubernetes ApiException to a custom exception.

        Args:
            e: The original ApiException.
            resource_type: Kind of resource being operated on.
            resource_name: Name of the resource.
            namespace: Namespace of the resource.

        Returns:
            An appropriate KubernetesError subclass.
        """
        from kubernetes.client import ApiException
        from kubernetes.dynamic.exceptions import ResourceNotFoundError

        if isinstance(e, KubernetesError):
            return e

        if isinstance(e, ResourceNotFoundError):
            return KubernetesNotFoundError(
                message=f"No API resource registered for kind {resource_type}: {e}",
            )

        if isinstance(e, (TransportError, ConnectionError)):
            return KubernetesConnectionError(
                message=f"Cannot reach the Kubernetes API server: {e}",
                original_error=e,
            )

        if not isinstance(e, ApiException):
            return KubernetesError(
                message=str(e),
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        status = e.status

        if status in (401, 403):
            return KubernetesAuthError(
                message=e.reason or "Authentication/authorization failed",
                status_code=status,
                reason=e.reason,
            )

        if status == 404:
            return KubernetesNotFoundError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status == 409:
            return KubernetesConflictError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
                already_exists=_status_reason(e) == "AlreadyExists",
            )

        if status in (400, 422):
            return KubernetesValidationError(
                message=e.reason or "Validation failed",
                status_code=status,
            )

        return KubernetesError(
            message=e.reason or f"Kubernetes API error: {status}",
            status_code=status,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )

    # =========================================================================
    # Retry Decorator
    # =========================================================================

    def make_retry_decorator(self) -> Any:
        """Create a retry decorator for transient connection errors.

        Returns:
            A tenacity retry decorator configured with exponential backoff.
        """
        return retry(
            retry=retry_if_exception_type(KubernetesConnectionError),
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def default_namespace(self) -> str:
        """Get the default namespace from config."""
        return self._config.get_active_namespace()

    @property
    def timeout(self) -> int:
        """Get the configured timeout."""
        return self._config.get_active_timeout()

    def get_current_context(self) -> str:
        """Get the current context name, or 'in-cluster' inside a pod."""
        return self._current_context or "unknown"

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Close the client and release resources."""
        self._invalidate_api_cache()
        logger.debug("Kubernetes client closed")

    def __enter__(self) -> KubernetesClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def _identity(body: dict[str, Any]) -> tuple[str, str, str | None]:
    metadata = body.get("metadata") or {}
    return body.get("kind", ""), metadata.get("name", ""), metadata.get("namespace")


def _status_reason(e: Any) -> str | None:
    """Extract the machine-readable ``reason`` from an ApiException body."""
    body = getattr(e, "body", None)
    if not body:
        return None
    try:
        payload = json.loads(body)
    except (TypeError, ValueError):
        return None
    if isinstance(payload, dict):
        reason = payload.get("reason")
        return reason if isinstance(reason, str) else None
    return None
