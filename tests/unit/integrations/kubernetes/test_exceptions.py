"""Unit tests for Kubernetes exceptions."""

from __future__ import annotations

import pytest

from platform_features.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesTimeoutError,
    KubernetesValidationError,
)
from platform_features.integrations.kubernetes.kustomize_client import (
    KustomizeBinaryNotFoundError,
    KustomizeBuildError,
)


@pytest.mark.unit
@pytest.mark.kubernetes
class TestKubernetesError:
    """Test KubernetesError base exception."""

    def test_str_message_only(self) -> None:
        """Only the message is rendered when nothing else is known."""
        assert str(KubernetesError("Test error")) == "Test error"

    def test_str_with_location(self) -> None:
        """Status code and resource location are appended."""
        error = KubernetesError(
            "failed",
            status_code=500,
            resource_type="ConfigMap",
            resource_name="auth-refs",
            namespace="opendatahub",
        )
        assert str(error) == "failed (status: 500) [ConfigMap/auth-refs in opendatahub]"

    @pytest.mark.parametrize(
        "error_class",
        [
            KubernetesAuthError,
            KubernetesConflictError,
            KubernetesConnectionError,
            KubernetesNotFoundError,
            KubernetesTimeoutError,
            KubernetesValidationError,
            KustomizeBuildError,
            KustomizeBinaryNotFoundError,
        ],
    )
    def test_hierarchy(self, error_class: type[KubernetesError]) -> None:
        """Every cluster error can be caught as KubernetesError."""
        assert issubclass(error_class, KubernetesError)


@pytest.mark.unit
@pytest.mark.kubernetes
class TestSpecificErrors:
    """Test message construction of the specific errors."""

    def test_not_found_message(self) -> None:
        """Resource details produce a descriptive message."""
        error = KubernetesNotFoundError(
            resource_type="FeatureTracker", resource_name="opendatahub-mesh"
        )
        assert error.message == "FeatureTracker 'opendatahub-mesh' not found"
        assert error.status_code == 404

    def test_not_found_namespaced_message(self) -> None:
        """The namespace is part of the message when known."""
        error = KubernetesNotFoundError(resource_type="Secret", resource_name="s", namespace="ns")
        assert error.message == "Secret 's' not found in namespace 'ns'"

    def test_conflict_already_exists(self) -> None:
        """AlreadyExists conflicts say so."""
        error = KubernetesConflictError(
            resource_type="ConfigMap", resource_name="refs", already_exists=True
        )
        assert error.already_exists is True
        assert error.message == "ConfigMap 'refs' already exists"

    def test_conflict_concurrent_modification(self) -> None:
        """Stale resourceVersion conflicts say so."""
        error = KubernetesConflictError(resource_type="ConfigMap", resource_name="refs")
        assert error.already_exists is False
        assert "modified concurrently" in error.message

    def test_timeout_message(self) -> None:
        """The timeout is appended to the message."""
        error = KubernetesTimeoutError("timed out waiting for pods", timeout_seconds=5)
        assert error.message == "timed out waiting for pods (after 5s)"

    def test_connection_error_keeps_original(self) -> None:
        """The underlying error is kept for diagnosis."""
        original = OSError("refused")
        error = KubernetesConnectionError(original_error=original)
        assert error.original_error is original

    def test_validation_errors_default(self) -> None:
        """Validation details default to an empty mapping."""
        assert KubernetesValidationError().validation_errors == {}

    def test_auth_reason(self) -> None:
        """The API reason is kept."""
        error = KubernetesAuthError(status_code=403, reason="Forbidden")
        assert error.reason == "Forbidden"
        assert error.status_code == 403
