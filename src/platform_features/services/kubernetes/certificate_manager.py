"""TLS certificate secrets for ingress gateways."""

from __future__ import annotations

import datetime
from typing import Any

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from platform_features.services.kubernetes.base import K8sBaseManager
from platform_features.services.kubernetes.configuration_manager import ConfigurationManager

TLS_SECRET_TYPE = "kubernetes.io/tls"
INGRESS_OPERATOR_NAMESPACE = "openshift-ingress-operator"
INGRESS_NAMESPACE = "openshift-ingress"
DEFAULT_INGRESS_CONTROLLER = "default"
DEFAULT_ROUTER_CERT_SECRET = "router-certs-default"
CERTIFICATE_VALIDITY_DAYS = 365


def generate_self_signed_certificate(domain: str) -> tuple[str, str]:
    """Generate a self-signed certificate for ``domain``.

    Wildcard domains (``*.apps.example.com``) are used as-is for the
    subject alternative name; the common name drops the wildcard label.

    Returns:
        Tuple of (certificate_pem, private_key_pem).
    """
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
    )

    common_name = domain.removeprefix("*.")
    subject = issuer = x509.Name(
        [
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Open Data Hub"),
        ]
    )

    now = datetime.datetime.now(datetime.UTC)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=CERTIFICATE_VALIDITY_DAYS))
        .add_extension(x509.SubjectAlternativeName([x509.DNSName(domain)]), critical=False)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(private_key, hashes.SHA256())
    )

    cert_pem = cert.public_bytes(serialization.Encoding.PEM).decode("utf-8")
    key_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")

    return cert_pem, key_pem


class CertificateManager(K8sBaseManager):
    """Creates TLS secrets for serving gateways."""

    _entity_name = "certificate"

    def create_self_signed_certificate(
        self,
        name: str,
        domain: str,
        namespace: str,
        *,
        owner_references: list[dict[str, Any]] | None = None,
    ) -> bool:
        """Store a freshly generated self-signed certificate as a TLS secret.

        An existing secret is kept, so the certificate is generated only once.

        Returns:
            True if the secret was created.
        """
        configuration = ConfigurationManager(self._client)
        if configuration.secret_exists(name, namespace):
            self._log.debug("certificate_secret_exists", name=name, namespace=namespace)
            return False

        self._log.info("generating_self_signed_certificate", name=name, domain=domain)
        cert_pem, key_pem = generate_self_signed_certificate(domain)
        return configuration.create_secret_if_absent(
            name,
            namespace,
            data={"tls.crt": cert_pem.encode(), "tls.key": key_pem.encode()},
            secret_type=TLS_SECRET_TYPE,
            owner_references=owner_references,
        )

    def propagate_default_ingress_certificate(
        self,
        name: str,
        namespace: str,
        *,
        owner_references: list[dict[str, Any]] | None = None,
    ) -> bool:
        """Copy the cluster's default ingress certificate into ``namespace/name``.

        Raises:
            KubernetesNotFoundError: If the default ingress certificate cannot be found.

        Returns:
            True if the secret was created.
        """
        controller = self._get_or_none(
            "operator.openshift.io/v1",
            "IngressController",
            DEFAULT_INGRESS_CONTROLLER,
            INGRESS_OPERATOR_NAMESPACE,
        )
        source_name = DEFAULT_ROUTER_CERT_SECRET
        if controller is not None:
            default_cert = (controller.get("spec") or {}).get("defaultCertificate") or {}
            source_name = default_cert.get("name") or DEFAULT_ROUTER_CERT_SECRET

        try:
            source = self._client.get_resource("v1", "Secret", source_name, INGRESS_NAMESPACE)
        except Exception as e:
            self._handle_api_error(e, "Secret", source_name, INGRESS_NAMESPACE)

        self._log.info(
            "propagating_default_ingress_certificate",
            source=source_name,
            name=name,
            namespace=namespace,
        )
        configuration = ConfigurationManager(self._client)
        return configuration.create_encoded_secret_if_absent(
            name,
            namespace,
            encoded_data=source.get("data") or {},
            secret_type=source.get("type") or TLS_SECRET_TYPE,
            owner_references=owner_references,
        )
