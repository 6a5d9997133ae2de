"""Overlay manifests built with kustomize."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from platform_features.core.config.models import DEFAULT_MANAGED_ANNOTATION
from platform_features.feature.errors import ManifestProcessingError
from platform_features.feature.manifest import ManifestKind, mark_as_managed, parse_resources
from platform_features.integrations.kubernetes.kustomize_client import (
    KustomizeClient,
    KustomizeError,
)

if TYPE_CHECKING:
    from platform_features.feature.plugins import ResourceTransformer

logger = structlog.get_logger()


class KustomizeManifest:
    """A directory built with ``kustomize build`` and then transformed.

    Plugins run in declaration order and the first failing plugin aborts
    processing of the whole overlay. The feature's context is not used.
    """

    def __init__(
        self,
        root: Path,
        path: str,
        *,
        plugins: Sequence[ResourceTransformer] = (),
        kustomize_binary: str | None = None,
        kustomize: KustomizeClient | None = None,
    ) -> None:
        self.root = root
        self.path = path
        self.plugins = list(plugins)
        self._kustomize_binary = kustomize_binary
        self._kustomize = kustomize

    def __repr__(self) -> str:
        return f"KustomizeManifest(path={self.path!r}, plugins={self.plugins!r})"

    @property
    def name(self) -> str:
        return Path(self.path).name

    @property
    def kind(self) -> ManifestKind:
        return ManifestKind.OVERLAY

    @property
    def patch(self) -> bool:
        return False

    @property
    def full_path(self) -> Path:
        return self.root / self.path

    def process(self, data: Mapping[str, Any]) -> list[dict[str, Any]]:
        """Build the overlay and run every plugin over the result.

        Raises:
            ManifestProcessingError: If the build or a plugin fails.
        """
        try:
            if self._kustomize is None:
                self._kustomize = KustomizeClient(self._kustomize_binary)
            rendered = self._kustomize.render(self.full_path)
        except KustomizeError as e:
            raise ManifestProcessingError(f"error during kustomize build: {e}", path=self.path) from e

        resources = parse_resources(rendered, source=self.path)
        for plugin in self.plugins:
            try:
                plugin.transform(resources)
            except Exception as e:
                raise ManifestProcessingError(
                    f"transformer {plugin!r} failed: {e}", path=self.path
                ) from e

        logger.debug("kustomize_manifest_processed", path=self.path, count=len(resources))
        return resources

    def mark_as_managed(
        self,
        objects: Sequence[dict[str, Any]],
        annotation: str = DEFAULT_MANAGED_ANNOTATION,
    ) -> None:
        """Annotate every built object as managed."""
        mark_as_managed(objects, annotation)
