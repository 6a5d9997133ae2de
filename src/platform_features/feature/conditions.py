"""Built-in actions usable as preconditions, postconditions, or resource actions.

Waiting actions poll with tenacity at the engine's configured interval
and give up at its timeout. They also stop when the feature's run is
cancelled.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog
from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from platform_features.feature.errors import FeatureCancelledError, FeatureError
from platform_features.feature.feature import owned_by
from platform_features.feature.meta import apply_meta_options
from platform_features.integrations.kubernetes.exceptions import (
    KubernetesConflictError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesTimeoutError,
)
from platform_features.services.kubernetes.namespace_manager import NamespaceManager
from platform_features.services.kubernetes.workload_manager import WorkloadManager

if TYPE_CHECKING:
    from platform_features.feature.feature import Action, Feature

logger = structlog.get_logger()

CRD_API_VERSION = "apiextensions.k8s.io/v1"
SUBSCRIPTION_API_VERSION = "operators.coreos.com/v1alpha1"


def poll_until(
    f: Feature,
    check: Callable[[], bool],
    *,
    description: str,
    interval: float | None,
    timeout: float | None,
) -> None:
    """Call ``check`` until it returns True.

    Raises:
        KubernetesTimeoutError: If ``check`` is still False after ``timeout``.
        FeatureCancelledError: If the feature's run is cancelled while waiting.
    """
    interval = interval if interval is not None else f.config.poll_interval_seconds
    timeout = timeout if timeout is not None else f.config.poll_timeout_seconds

    @retry(
        retry=retry_if_result(lambda ready: not ready),
        stop=stop_after_delay(timeout) | (lambda _state: f.cancelled),
        wait=wait_fixed(interval),
    )
    def wait() -> bool:
        return check()

    f.log.info("waiting", condition=description, timeout=timeout)
    try:
        wait()
    except RetryError as e:
        if f.cancelled:
            raise FeatureCancelledError(f"cancelled while waiting for {description}", feature=f.name) from e
        raise KubernetesTimeoutError(f"timed out waiting for {description}", timeout_seconds=timeout) from e
    f.log.info("wait_completed", condition=description)


def create_namespace_if_not_exists(namespace: str, **labels: str) -> Action:
    """Action creating ``namespace`` unless it exists. The namespace is not owned."""

    def create_namespace(f: Feature) -> None:
        NamespaceManager(f.client).create_namespace_if_not_exists(namespace, labels=labels or None)

    return create_namespace


def ensure_crd_is_installed(name: str) -> Action:
    """Precondition failing when the CustomResourceDefinition ``name`` is absent."""

    def ensure_crd(f: Feature) -> None:
        try:
            f.client.get_resource(CRD_API_VERSION, "CustomResourceDefinition", name)
        except KubernetesNotFoundError as e:
            raise FeatureError(f"CRD {name} is not installed", feature=f.name) from e

    return ensure_crd


def ensure_operator_is_installed(subscription: str) -> Action:
    """Precondition failing when no OLM Subscription named ``subscription`` exists in any namespace."""

    def ensure_operator(f: Feature) -> None:
        try:
            subscriptions = f.client.list_resources(SUBSCRIPTION_API_VERSION, "Subscription")
        except KubernetesNotFoundError:
            # OLM not installed
            subscriptions = []
        if not any((s.get("metadata") or {}).get("name") == subscription for s in subscriptions):
            raise FeatureError(
                f"failed to find the pre-requisite operator subscription \"{subscription}\"", feature=f.name
            )

    return ensure_operator


def wait_for_pods_to_be_ready(
    namespace: str,
    *,
    label_selector: str | None = None,
    interval: float | None = None,
    timeout: float | None = None,
) -> Action:
    """Postcondition waiting until every pod in ``namespace`` is ready."""

    def wait_for_pods(f: Feature) -> None:
        workloads = WorkloadManager(f.client)
        poll_until(
            f,
            lambda: workloads.pods_ready(namespace, label_selector=label_selector),
            description=f"pods in {namespace} to be ready",
            interval=interval,
            timeout=timeout,
        )

    return wait_for_pods


def wait_for_resource_to_be_created(
    api_version: str,
    kind: str,
    namespace: str | None = None,
    *,
    interval: float | None = None,
    timeout: float | None = None,
) -> Action:
    """Postcondition waiting until at least one ``kind`` object exists."""

    def wait_for_resource(f: Feature) -> None:
        def exists() -> bool:
            try:
                return bool(f.client.list_resources(api_version, kind, namespace))
            except KubernetesNotFoundError:
                # kind not served yet
                return False

        poll_until(
            f,
            exists,
            description=f"{kind} to be created" + (f" in {namespace}" if namespace else ""),
            interval=interval,
            timeout=timeout,
        )

    return wait_for_resource


def create_with_retry(
    resource: dict[str, Any],
    *,
    interval: float | None = None,
    timeout: float | None = None,
) -> Action:
    """Resource action creating ``resource`` owned by the feature, retrying failures.

    Meant for objects whose creation fails until something else becomes
    available, such as a validating webhook. An object that already
    exists counts as created.
    """

    def create(f: Feature) -> None:
        body = apply_meta_options(copy.deepcopy(resource), owned_by(f))
        wait = interval if interval is not None else f.config.poll_interval_seconds
        deadline = timeout if timeout is not None else f.config.poll_timeout_seconds

        @retry(
            retry=retry_if_exception_type(KubernetesError),
            stop=stop_after_delay(deadline) | (lambda _state: f.cancelled),
            wait=wait_fixed(wait),
            reraise=True,
        )
        def attempt() -> None:
            try:
                f.client.create_resource(body)
            except KubernetesConflictError as e:
                if not e.already_exists:
                    raise

        attempt()
        f.log.info(
            "resource_created_with_retry",
            kind=body.get("kind"),
            name=(body.get("metadata") or {}).get("name"),
        )

    return create
