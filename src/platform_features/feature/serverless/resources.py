"""Resource actions preparing the serving ingress gateway."""

from __future__ import annotations

from typing import TYPE_CHECKING

from platform_features.feature.serverless.data import (
    certificate_name_from,
    ingress_domain_from,
    serving_from,
)
from platform_features.feature.serverless.models import CertificateType
from platform_features.feature.servicemesh.data import control_plane_from
from platform_features.services.kubernetes.certificate_manager import CertificateManager

if TYPE_CHECKING:
    from platform_features.feature.feature import Feature


def serving_certificate_resource(f: Feature) -> None:
    """Provide the gateway certificate secret in the control plane namespace.

    Needs the serverless and control plane context entries.
    """
    serving = serving_from(f)
    secret_name = certificate_name_from(f)
    namespace = control_plane_from(f).namespace
    certificates = CertificateManager(f.client)

    match serving.ingress_gateway.certificate.type:
        case CertificateType.SELF_SIGNED:
            certificates.create_self_signed_certificate(
                secret_name,
                ingress_domain_from(f),
                namespace,
                owner_references=[f.owner_reference()],
            )
        case CertificateType.PROVIDED:
            f.log.debug("using_provided_certificate", secret=secret_name)
        case _:
            certificates.propagate_default_ingress_certificate(
                secret_name,
                namespace,
                owner_references=[f.owner_reference()],
            )
