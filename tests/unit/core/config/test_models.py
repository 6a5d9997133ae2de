"""Unit tests for engine configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from platform_features.core.config import EngineConfig, load_config
from platform_features.core.config.models import DEFAULT_MANAGED_ANNOTATION


@pytest.mark.unit
class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_defaults(self) -> None:
        """Defaults match the operator's conventions."""
        config = EngineConfig()
        assert config.platform_namespace == "opendatahub"
        assert config.managed_annotation == DEFAULT_MANAGED_ANNOTATION
        assert config.capability_service_account == "odh-platform-manager"
        assert config.platform_manifests == Path("/opt/manifests/platform/default")

    @pytest.mark.parametrize("field", ["poll_interval_seconds", "poll_timeout_seconds"])
    def test_polling_must_be_positive(self, field: str) -> None:
        """Zero polling settings are rejected."""
        with pytest.raises(ValidationError, match="polling settings must be positive"):
            EngineConfig(**{field: 0})

    def test_blank_namespace_rejected(self) -> None:
        """A blank platform namespace is rejected."""
        with pytest.raises(ValidationError, match="platform_namespace must not be empty"):
            EngineConfig(platform_namespace="  ")

    def test_extra_fields_forbidden(self) -> None:
        """Unknown settings are rejected."""
        with pytest.raises(ValidationError):
            EngineConfig(unknown=True)  # type: ignore[call-arg]

    def test_from_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """PF_* variables override file values."""
        monkeypatch.setenv("PF_PLATFORM_NAMESPACE", "odh-platform")
        monkeypatch.setenv("PF_MANIFESTS_ROOT", "/srv/manifests")
        monkeypatch.setenv("PF_POLL_INTERVAL", "0.5")
        monkeypatch.setenv("PF_POLL_TIMEOUT", "30")
        monkeypatch.setenv("PF_KUSTOMIZE_BINARY", "/usr/bin/kustomize")
        monkeypatch.setenv("PF_K8S_CONTEXT", "prod")

        config = EngineConfig.from_env({"platform_namespace": "from-file"})

        assert config.platform_namespace == "odh-platform"
        assert config.manifests_root == "/srv/manifests"
        assert config.poll_interval_seconds == 0.5
        assert config.poll_timeout_seconds == 30.0
        assert config.kustomize_binary == "/usr/bin/kustomize"
        assert config.kubernetes.active_cluster == "prod"


@pytest.mark.unit
class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        """A missing file yields the defaults."""
        assert load_config(tmp_path / "absent.yaml") == EngineConfig()

    def test_none_uses_defaults(self) -> None:
        """No path yields the defaults."""
        assert load_config() == EngineConfig()

    def test_reads_yaml(self, tmp_path: Path) -> None:
        """Values and the nested kubernetes section are read from YAML."""
        path = tmp_path / "engine.yaml"
        path.write_text(
            "platform_namespace: custom\n"
            "poll_timeout_seconds: 10\n"
            "kubernetes:\n"
            "  active_cluster: dev\n"
        )

        config = load_config(path)

        assert config.platform_namespace == "custom"
        assert config.poll_timeout_seconds == 10.0
        assert config.kubernetes.active_cluster == "dev"

    def test_empty_file(self, tmp_path: Path) -> None:
        """An empty file yields the defaults."""
        path = tmp_path / "engine.yaml"
        path.write_text("")
        assert load_config(path) == EngineConfig()

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Unparseable YAML raises ValueError."""
        path = tmp_path / "engine.yaml"
        path.write_text("platform_namespace: [unclosed\n")
        with pytest.raises(ValueError, match="Failed to parse config file"):
            load_config(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        """A top-level list raises ValueError."""
        path = tmp_path / "engine.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="must contain a mapping"):
            load_config(path)
