"""Context entries describing the KNative Serving setup."""

from __future__ import annotations

from typing import TYPE_CHECKING

from platform_features.feature.context import ContextDefinition, ContextEntry, extract_entry
from platform_features.feature.provider import value_of
from platform_features.feature.serverless.models import ServingSpec

if TYPE_CHECKING:
    from platform_features.feature.feature import Action
    from platform_features.integrations.kubernetes.client import KubernetesClient

SERVING_KEY = "Serving"
CERTIFICATE_NAME_KEY = "KnativeCertificateSecret"
INGRESS_DOMAIN_KEY = "KnativeIngressDomain"

DEFAULT_CERTIFICATE_NAME = "knative-serving-cert"


def knative_domain(client: KubernetesClient) -> str:
    """Wildcard domain derived from the cluster ingress configuration.

    Raises:
        KubernetesNotFoundError: If the cluster ingress config is missing.
        ValueError: If the ingress config has no domain.
    """
    ingress = client.get_resource("config.openshift.io/v1", "Ingress", "cluster")
    domain = (ingress.get("spec") or {}).get("domain")
    if not domain:
        raise ValueError("spec.domain not found in cluster ingress config")
    return "*." + domain


class ServerlessData:
    """Data-provider factory for serverless features.

    Args:
        serving: KNative Serving settings.
    """

    def __init__(self, serving: ServingSpec) -> None:
        self.serving = serving

    def all(self) -> list[Action]:
        return [
            SERVING.create(self).as_action(),
            CERTIFICATE_NAME.create(self).as_action(),
            INGRESS_DOMAIN.create(self).as_action(),
        ]


SERVING: ContextDefinition[ServerlessData, ServingSpec] = ContextDefinition(
    create=lambda data: ContextEntry(SERVING_KEY, value_of(data.serving).get),
    extract=extract_entry(SERVING_KEY, ServingSpec),
)

CERTIFICATE_NAME: ContextDefinition[ServerlessData, str] = ContextDefinition(
    create=lambda data: ContextEntry(
        CERTIFICATE_NAME_KEY,
        value_of(data.serving.ingress_gateway.certificate.secret_name).or_else(DEFAULT_CERTIFICATE_NAME),
    ),
    extract=extract_entry(CERTIFICATE_NAME_KEY, str),
)

INGRESS_DOMAIN: ContextDefinition[ServerlessData, str] = ContextDefinition(
    create=lambda data: ContextEntry(
        INGRESS_DOMAIN_KEY,
        value_of(data.serving.ingress_gateway.domain).or_get(knative_domain),
    ),
    extract=extract_entry(INGRESS_DOMAIN_KEY, str),
)

serving_from = SERVING.extract
certificate_name_from = CERTIFICATE_NAME.extract
ingress_domain_from = INGRESS_DOMAIN.extract
