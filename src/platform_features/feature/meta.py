"""Metadata options applied to resources before they are sent to the cluster."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

type MetaOption = Callable[[dict[str, Any]], None]


def apply_meta_options(obj: dict[str, Any], *options: MetaOption) -> dict[str, Any]:
    """Apply each option to ``obj`` in order and return it."""
    for option in options:
        option(obj)
    return obj


def with_owner_reference(*owner_references: Mapping[str, Any]) -> MetaOption:
    """Append owner references, skipping any whose ``uid`` is already present."""

    def apply(obj: dict[str, Any]) -> None:
        metadata = obj.setdefault("metadata", {})
        refs = list(metadata.get("ownerReferences") or [])
        known = {ref.get("uid") for ref in refs}
        for ref in owner_references:
            if ref.get("uid") not in known:
                refs.append(dict(ref))
                known.add(ref.get("uid"))
        metadata["ownerReferences"] = refs

    return apply


def with_labels(labels: Mapping[str, str]) -> MetaOption:
    """Merge ``labels`` into the object's labels."""

    def apply(obj: dict[str, Any]) -> None:
        metadata = obj.setdefault("metadata", {})
        metadata["labels"] = {**(metadata.get("labels") or {}), **labels}

    return apply


def with_annotations(annotations: Mapping[str, str]) -> MetaOption:
    """Merge ``annotations`` into the object's annotations."""

    def apply(obj: dict[str, Any]) -> None:
        metadata = obj.setdefault("metadata", {})
        metadata["annotations"] = {**(metadata.get("annotations") or {}), **annotations}

    return apply
