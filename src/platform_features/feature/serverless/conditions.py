"""Preconditions for features building on KNative Serving."""

from __future__ import annotations

from typing import TYPE_CHECKING

from platform_features.feature.conditions import (
    ensure_crd_is_installed,
    ensure_operator_is_installed,
    wait_for_pods_to_be_ready,
    wait_for_resource_to_be_created,
)
from platform_features.feature.errors import FeatureError
from platform_features.integrations.kubernetes.exceptions import KubernetesNotFoundError

if TYPE_CHECKING:
    from platform_features.feature.feature import Feature

KNATIVE_SERVING_NAMESPACE = "knative-serving"
KNATIVE_SERVING_API_VERSION = "operator.knative.dev/v1beta1"
KNATIVE_SERVING_KIND = "KnativeServing"
KNATIVE_SERVING_CRD = "knativeservings.operator.knative.dev"
SERVERLESS_OPERATOR_SUBSCRIPTION = "serverless-operator"


def ensure_serverless_operator_installed(f: Feature) -> None:
    """Require the serverless operator subscription and the KnativeServing CRD."""
    ensure_operator_is_installed(SERVERLESS_OPERATOR_SUBSCRIPTION)(f)
    ensure_crd_is_installed(KNATIVE_SERVING_CRD)(f)


def ensure_serverless_absent(f: Feature) -> None:
    """Fail when a KnativeServing this feature does not own exists in any namespace.

    Raises:
        FeatureError: If more than one KnativeServing exists, or the only one
            is not owned by the feature's tracker.
    """
    try:
        existing = f.client.list_resources(KNATIVE_SERVING_API_VERSION, KNATIVE_SERVING_KIND)
    except KubernetesNotFoundError:
        return
    if not existing:
        return
    if len(existing) > 1:
        raise FeatureError(
            f"multiple {KNATIVE_SERVING_KIND} resources found, which is an unsupported state",
            feature=f.name,
        )

    serving = existing[0]
    metadata = serving.get("metadata") or {}
    owner_uid = f.owner_reference()["uid"]
    if any(ref.get("uid") == owner_uid for ref in metadata.get("ownerReferences") or []):
        return
    raise FeatureError(
        f"existing {KNATIVE_SERVING_KIND} resource {metadata.get('namespace')}/{metadata.get('name')} "
        "was found; set serving management state to Unmanaged or remove it",
        feature=f.name,
    )


def ensure_serverless_serving_deployed(f: Feature) -> None:
    """Wait for a KnativeServing to exist and its pods to be ready."""
    wait_for_resource_to_be_created(
        KNATIVE_SERVING_API_VERSION, KNATIVE_SERVING_KIND, KNATIVE_SERVING_NAMESPACE
    )(f)
    wait_for_pods_to_be_ready(KNATIVE_SERVING_NAMESPACE)(f)
