"""Serverless (KNative Serving) features."""

from platform_features.feature.serverless.conditions import (
    KNATIVE_SERVING_NAMESPACE,
    ensure_serverless_absent,
    ensure_serverless_operator_installed,
    ensure_serverless_serving_deployed,
)
from platform_features.feature.serverless.data import (
    ServerlessData,
    certificate_name_from,
    ingress_domain_from,
    knative_domain,
    serving_from,
)
from platform_features.feature.serverless.models import (
    CertificateSpec,
    CertificateType,
    IngressGatewaySpec,
    ServingSpec,
)
from platform_features.feature.serverless.resources import serving_certificate_resource

__all__ = [
    "KNATIVE_SERVING_NAMESPACE",
    "CertificateSpec",
    "CertificateType",
    "IngressGatewaySpec",
    "ServerlessData",
    "ServingSpec",
    "certificate_name_from",
    "ensure_serverless_absent",
    "ensure_serverless_operator_installed",
    "ensure_serverless_serving_deployed",
    "ingress_domain_from",
    "knative_domain",
    "serving_certificate_resource",
    "serving_from",
]
