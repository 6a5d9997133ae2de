"""Applying processed resources to the cluster.

Non-patch objects are created when absent and updated only when the
object already stored in the cluster carries the managed annotation with
value ``"true"``. Anything else is left alone so users can take over an
object by removing the annotation. Patch objects are sent as JSON merge
patches and never create anything.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from platform_features.core.config.models import DEFAULT_MANAGED_ANNOTATION
from platform_features.feature.meta import MetaOption, apply_meta_options
from platform_features.integrations.kubernetes.exceptions import (
    KubernetesConflictError,
    KubernetesNotFoundError,
)

if TYPE_CHECKING:
    from platform_features.feature.manifest import Manifest
    from platform_features.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()

type Applier = Callable[[Sequence[dict[str, Any]]], None]


def is_managed(obj: dict[str, Any] | None, annotation: str = DEFAULT_MANAGED_ANNOTATION) -> bool:
    """Check whether an object carries the managed annotation set to ``"true"``."""
    if not obj:
        return False
    annotations = (obj.get("metadata") or {}).get("annotations") or {}
    return annotations.get(annotation) == "true"


def apply_resources(
    client: KubernetesClient,
    objects: Sequence[dict[str, Any]],
    *options: MetaOption,
    managed_annotation: str = DEFAULT_MANAGED_ANNOTATION,
) -> None:
    """Create absent objects and update existing objects marked as managed.

    Raises:
        KubernetesError: On any API failure other than a lost create race.
            A concurrent modification surfaces as ``KubernetesConflictError``.
    """
    for obj in objects:
        apply_meta_options(obj, *options)
        api_version = obj.get("apiVersion", "")
        kind = obj.get("kind", "")
        metadata = obj.get("metadata") or {}
        name = metadata.get("name", "")
        namespace = metadata.get("namespace")
        log = logger.bind(kind=kind, name=name, namespace=namespace)

        try:
            existing = client.get_resource(api_version, kind, name, namespace)
        except KubernetesNotFoundError:
            existing = None

        if existing is None:
            try:
                client.create_resource(obj)
            except KubernetesConflictError as e:
                if not e.already_exists:
                    raise
                log.debug("resource_created_concurrently")
                continue
            log.info("resource_created")
            continue

        if not is_managed(existing, managed_annotation):
            log.debug("resource_not_managed_skipped")
            continue

        client.update_resource(_prepare_update(obj, existing, managed_annotation))
        log.info("resource_updated")


def _prepare_update(
    desired: dict[str, Any],
    existing: dict[str, Any],
    managed_annotation: str,
) -> dict[str, Any]:
    """Carry the stored resourceVersion and managed marker onto the desired body."""
    body = dict(desired)
    metadata = dict(body.get("metadata") or {})
    existing_metadata = existing.get("metadata") or {}

    if resource_version := existing_metadata.get("resourceVersion"):
        metadata["resourceVersion"] = resource_version

    annotations = dict(metadata.get("annotations") or {})
    annotations.setdefault(managed_annotation, "true")
    metadata["annotations"] = annotations

    refs = list(metadata.get("ownerReferences") or [])
    known = {ref.get("uid") for ref in refs}
    refs.extend(
        ref for ref in existing_metadata.get("ownerReferences") or [] if ref.get("uid") not in known
    )
    if refs:
        metadata["ownerReferences"] = refs

    body["metadata"] = metadata
    return body


def patch_resources(client: KubernetesClient, patches: Sequence[dict[str, Any]]) -> None:
    """Merge-patch each object onto its existing counterpart.

    Raises:
        KubernetesNotFoundError: If a patch target does not exist.
    """
    for patch in patches:
        metadata = patch.get("metadata") or {}
        client.patch_resource(patch)
        logger.info(
            "resource_patched",
            kind=patch.get("kind"),
            name=metadata.get("name"),
            namespace=metadata.get("namespace"),
        )


def create_applier(
    client: KubernetesClient,
    manifest: Manifest,
    *options: MetaOption,
    managed_annotation: str = DEFAULT_MANAGED_ANNOTATION,
) -> Applier:
    """Pick the apply strategy for a manifest's objects.

    Patch manifests ignore ``options``: a patch never takes ownership.
    """
    if manifest.patch:
        return lambda objects: patch_resources(client, objects)
    return lambda objects: apply_resources(
        client, objects, *options, managed_annotation=managed_annotation
    )
