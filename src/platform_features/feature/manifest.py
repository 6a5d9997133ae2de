"""Manifest loading and processing.

A manifest turns a file (or an overlay directory) plus the feature's
context into a list of plain resource dictionaries. Filename conventions
decide how a file is processed:

- ``.tmpl.`` in the file name renders it as a Jinja2 template first
- ``.patch`` in the file name makes its objects merge patches
- a directory holding a kustomization file is built as an overlay
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import structlog
from jinja2 import Environment, StrictUndefined, TemplateError, UndefinedError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from platform_features.core.config.models import DEFAULT_MANAGED_ANNOTATION
from platform_features.feature.errors import ManifestProcessingError
from platform_features.integrations.kubernetes.kustomize_client import has_kustomization_file

if TYPE_CHECKING:
    from platform_features.feature.plugins import ResourceTransformer

logger = structlog.get_logger()

YAML_SEPARATOR = re.compile(r"^---[ \t]*$", re.MULTILINE)

_template_env = Environment(
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)


class ManifestKind(StrEnum):
    """How a manifest produces its resources."""

    RAW = "raw"
    TEMPLATED = "templated"
    OVERLAY = "overlay"


def is_template(path: str | Path) -> bool:
    """Check whether a file name marks a template."""
    return ".tmpl." in Path(path).name


def is_patch(path: str | Path) -> bool:
    """Check whether a file name marks a merge patch."""
    return ".patch" in Path(path).name


class Manifest(Protocol):
    """Common contract of all manifest kinds."""

    @property
    def name(self) -> str: ...

    @property
    def kind(self) -> ManifestKind: ...

    @property
    def patch(self) -> bool: ...

    def process(self, data: Mapping[str, Any]) -> list[dict[str, Any]]: ...

    def mark_as_managed(
        self,
        objects: Sequence[dict[str, Any]],
        annotation: str = DEFAULT_MANAGED_ANNOTATION,
    ) -> None: ...


class FileManifest:
    """A single raw or templated manifest file.

    Attributes:
        root: Directory the manifest paths are resolved against.
        path: Path of the file relative to ``root``.
    """

    def __init__(self, root: Path, path: str) -> None:
        self.root = root
        self.path = path

    def __repr__(self) -> str:
        return f"FileManifest(path={self.path!r}, kind={self.kind.value!r}, patch={self.patch})"

    @property
    def name(self) -> str:
        return Path(self.path).name

    @property
    def full_path(self) -> Path:
        return self.root / self.path

    @property
    def kind(self) -> ManifestKind:
        return ManifestKind.TEMPLATED if is_template(self.path) else ManifestKind.RAW

    @property
    def patch(self) -> bool:
        return is_patch(self.path)

    def process(self, data: Mapping[str, Any]) -> list[dict[str, Any]]:
        """Read, optionally render, and parse the file.

        Raises:
            ManifestProcessingError: If the file cannot be read, a template
                references a key missing from ``data``, or the YAML is invalid.
        """
        try:
            content = self.full_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ManifestProcessingError(f"failed to read manifest: {e}", path=self.path) from e

        if self.kind is ManifestKind.TEMPLATED:
            content = render_template(content, data, source=self.path)

        return parse_resources(content, source=self.path)

    def mark_as_managed(
        self,
        objects: Sequence[dict[str, Any]],
        annotation: str = DEFAULT_MANAGED_ANNOTATION,
    ) -> None:
        """Annotate objects as managed, unless this manifest is a patch."""
        if not self.patch:
            mark_as_managed(objects, annotation)


def render_template(content: str, data: Mapping[str, Any], *, source: str) -> str:
    """Render ``content`` with strict undefined handling.

    Raises:
        ManifestProcessingError: On syntax errors or references to missing keys.
    """
    try:
        template = _template_env.from_string(content)
    except TemplateError as e:
        raise ManifestProcessingError(f"failed to parse template: {e}", path=source) from e
    try:
        return template.render(**data)
    except UndefinedError as e:
        raise ManifestProcessingError(
            f"failed to execute template: missing key: {e.message}", path=source
        ) from e
    except TemplateError as e:
        raise ManifestProcessingError(f"failed to execute template: {e}", path=source) from e


def parse_resources(content: str, *, source: str = "<string>") -> list[dict[str, Any]]:
    """Split multi-document YAML on ``---`` lines and parse each document.

    Blank and comment-only documents are skipped.

    Raises:
        ManifestProcessingError: If a document is not valid YAML or not a mapping.
    """
    yaml = YAML(typ="safe")
    objects: list[dict[str, Any]] = []
    for segment in YAML_SEPARATOR.split(content):
        if not segment.strip():
            continue
        try:
            doc = yaml.load(segment)
        except YAMLError as e:
            raise ManifestProcessingError(f"invalid YAML: {e}", path=source) from e
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise ManifestProcessingError(
                f"expected a mapping, got {type(doc).__name__}", path=source
            )
        objects.append(doc)
    return objects


def mark_as_managed(
    objects: Sequence[dict[str, Any]],
    annotation: str = DEFAULT_MANAGED_ANNOTATION,
) -> None:
    """Set the managed annotation to ``"true"`` on every object."""
    for obj in objects:
        metadata = obj.setdefault("metadata", {})
        annotations = metadata.get("annotations") or {}
        annotations[annotation] = "true"
        metadata["annotations"] = annotations


def load_manifests(
    root: Path,
    path: str,
    *,
    plugins: Sequence[ResourceTransformer] = (),
    kustomize_binary: str | None = None,
) -> list[Manifest]:
    """Collect manifests below ``root / path``.

    A file yields one manifest. A directory holding a kustomization file
    yields one overlay manifest carrying ``plugins``; any other directory
    is walked in sorted order. Hidden files are ignored.

    Raises:
        ManifestProcessingError: If the path does not exist.
    """
    from platform_features.feature.kustomize import KustomizeManifest

    start = root / path
    if not start.exists():
        raise ManifestProcessingError("manifest path does not exist", path=str(start))

    manifests: list[Manifest] = []

    def walk(current: Path) -> None:
        if current.is_file():
            manifests.append(FileManifest(root, str(current.relative_to(root))))
            return
        if has_kustomization_file(current):
            manifests.append(
                KustomizeManifest(
                    root,
                    str(current.relative_to(root)),
                    plugins=plugins,
                    kustomize_binary=kustomize_binary,
                )
            )
            return
        for child in sorted(current.iterdir()):
            if child.name.startswith("."):
                continue
            walk(child)

    walk(start)
    logger.debug("loaded_manifests", path=str(start), count=len(manifests))
    return manifests
