"""Serverless serving settings consumed by KNative-related features."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class CertificateType(StrEnum):
    """How the ingress gateway certificate is obtained."""

    SELF_SIGNED = "SelfSigned"
    PROVIDED = "Provided"
    OPENSHIFT_DEFAULT_INGRESS = "OpenshiftDefaultIngress"


class CertificateSpec(BaseModel):
    """TLS certificate used by the serving ingress gateway."""

    model_config = ConfigDict(extra="forbid")

    secret_name: str = Field(default="", description="Secret holding the certificate")
    type: CertificateType = Field(
        default=CertificateType.OPENSHIFT_DEFAULT_INGRESS,
        description="Certificate source",
    )


class IngressGatewaySpec(BaseModel):
    """Ingress gateway exposing serving workloads."""

    model_config = ConfigDict(extra="forbid")

    domain: str = Field(default="", description="Wildcard domain; derived from the cluster when empty")
    certificate: CertificateSpec = Field(default_factory=CertificateSpec)


class ServingSpec(BaseModel):
    """KNative Serving installation managed by the platform."""

    model_config = ConfigDict(extra="forbid")

    management_state: str = Field(default="Managed", description="Managed or Removed")
    name: str = Field(default="knative-serving", description="KnativeServing name")
    ingress_gateway: IngressGatewaySpec = Field(default_factory=IngressGatewaySpec)
