"""Kustomize CLI wrapper for rendering overlay directories.

Overlay manifests are built by shelling out to the kustomize binary; the
rendered multi-document YAML is then handed back to the manifest processor.
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

import structlog

from platform_features.integrations.kubernetes.exceptions import KubernetesError

logger = structlog.get_logger()

KUSTOMIZATION_FILENAMES = ("kustomization.yaml", "kustomization.yml", "Kustomization")
BUILD_TIMEOUT_SECONDS = 60


class KustomizeError(KubernetesError):
    """Base exception for Kustomize operations."""

    def __init__(
        self,
        message: str,
        kustomization_path: str | None = None,
        stderr: str | None = None,
    ) -> None:
        super().__init__(message=message)
        self.kustomization_path = kustomization_path
        self.stderr = stderr


class KustomizeBinaryNotFoundError(KustomizeError):
    """Raised when kustomize binary is not found in PATH."""

    def __init__(self) -> None:
        super().__init__(
            message=(
                "kustomize binary not found in PATH. "
                "Install from: https://kubectl.docs.kubernetes.io/installation/kustomize/"
            ),
        )


class KustomizeBuildError(KustomizeError):
    """Raised when kustomize build fails."""


@dataclass
class KustomizeBuildResult:
    """Result of a kustomize build operation."""

    rendered_yaml: str
    kustomization_path: str
    success: bool
    error: str | None = None


class KustomizeClient:
    """Client for the kustomize CLI."""

    def __init__(self, binary_path: str | None = None) -> None:
        """Initialize Kustomize client.

        Args:
            binary_path: Optional explicit path to kustomize binary.
                If None, searches PATH.

        Raises:
            KustomizeBinaryNotFoundError: If binary not found.
        """
        self._binary = self._find_binary(binary_path)
        self._log = logger.bind(binary=self._binary)
        self._log.debug("kustomize_client_initialized")

    @staticmethod
    def _find_binary(binary_path: str | None) -> str:
        if binary_path:
            path = Path(binary_path)
            if not path.exists():
                raise KustomizeBinaryNotFoundError()
            return str(path.resolve())

        found = shutil.which("kustomize")
        if not found:
            raise KustomizeBinaryNotFoundError()

        return found

    def build(self, kustomization_dir: Path) -> KustomizeBuildResult:
        """Run ``kustomize build`` on an overlay directory.

        Args:
            kustomization_dir: Directory containing a kustomization file.

        Returns:
            Build result with rendered YAML or error details.
        """
        if not kustomization_dir.is_dir():
            return KustomizeBuildResult(
                rendered_yaml="",
                kustomization_path=str(kustomization_dir),
                success=False,
                error=f"Directory not found: {kustomization_dir}",
            )

        if not has_kustomization_file(kustomization_dir):
            return KustomizeBuildResult(
                rendered_yaml="",
                kustomization_path=str(kustomization_dir),
                success=False,
                error=f"No kustomization file found in {kustomization_dir}",
            )

        try:
            self._log.debug("running_kustomize_build", path=str(kustomization_dir))
            result = subprocess.run(
                [self._binary, "build", str(kustomization_dir)],
                capture_output=True,
                text=True,
                check=True,
                timeout=BUILD_TIMEOUT_SECONDS,
            )
        except subprocess.CalledProcessError as e:
            self._log.error(
                "kustomize_build_failed",
                path=str(kustomization_dir),
                stderr=e.stderr,
                returncode=e.returncode,
            )
            return KustomizeBuildResult(
                rendered_yaml="",
                kustomization_path=str(kustomization_dir),
                success=False,
                error=e.stderr.strip() if e.stderr else f"Build failed with code {e.returncode}",
            )
        except subprocess.TimeoutExpired:
            self._log.error("kustomize_build_timeout", path=str(kustomization_dir))
            return KustomizeBuildResult(
                rendered_yaml="",
                kustomization_path=str(kustomization_dir),
                success=False,
                error=f"Build timed out after {BUILD_TIMEOUT_SECONDS} seconds",
            )

        self._log.info("kustomize_build_success", path=str(kustomization_dir))
        return KustomizeBuildResult(
            rendered_yaml=result.stdout,
            kustomization_path=str(kustomization_dir),
            success=True,
        )

    def render(self, kustomization_dir: Path) -> str:
        """Build an overlay and return the rendered YAML.

        Raises:
            KustomizeBuildError: If the build does not succeed.
        """
        result = self.build(kustomization_dir)
        if not result.success:
            raise KustomizeBuildError(
                message=f"kustomize build failed for {kustomization_dir}: {result.error}",
                kustomization_path=result.kustomization_path,
                stderr=result.error,
            )
        return result.rendered_yaml


def has_kustomization_file(directory: Path) -> bool:
    """Check if a directory contains a kustomization file."""
    return any((directory / name).exists() for name in KUSTOMIZATION_FILENAMES)
