"""Shared pytest fixtures for platform_features tests."""

from __future__ import annotations

import copy
import itertools
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from platform_features.core.config.models import EngineConfig
from platform_features.feature.plugins import CLUSTER_SCOPED_KINDS
from platform_features.integrations.kubernetes.client import KubernetesClient
from platform_features.integrations.kubernetes.exceptions import (
    KubernetesConflictError,
    KubernetesNotFoundError,
)

type Key = tuple[str, str, str, str]


def _merge_patch(target: Any, patch: Any) -> Any:
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)
    result = dict(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = _merge_patch(result.get(key), value)
    return result


def _matches_selector(obj: dict[str, Any], label_selector: str | None) -> bool:
    if not label_selector:
        return True
    labels = (obj.get("metadata") or {}).get("labels") or {}
    for term in label_selector.split(","):
        key, _, value = term.partition("=")
        if labels.get(key.strip()) != value.strip():
            return False
    return True


class FakeCluster:
    """In-memory stand-in for KubernetesClient's generic verbs.

    Stores plain dicts keyed by apiVersion, kind, namespace and name. Models
    the API behaviors the engine depends on: uid and resourceVersion
    assignment, optimistic concurrency on update, JSON merge patch, and
    garbage collection of objects whose owner is deleted.
    """

    translate_api_exception = staticmethod(KubernetesClient.translate_api_exception)

    def __init__(self) -> None:
        self.objects: dict[Key, dict[str, Any]] = {}
        self.calls: list[tuple[str, str, str]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.default_namespace = "default"
        self._uids = itertools.count(1)
        self._versions = itertools.count(1)

    # Helpers

    @staticmethod
    def _key(api_version: str, kind: str, name: str, namespace: str | None) -> Key:
        ns = "" if kind in CLUSTER_SCOPED_KINDS else (namespace or "")
        return (api_version, kind, ns, name)

    @classmethod
    def _body_key(cls, body: dict[str, Any]) -> Key:
        metadata = body.get("metadata") or {}
        return cls._key(
            body.get("apiVersion", ""),
            body.get("kind", ""),
            metadata.get("name", ""),
            metadata.get("namespace"),
        )

    def _record(self, verb: str, kind: str, name: str) -> None:
        self.calls.append((verb, kind, name))
        failure = self.failures.get((verb, kind))
        if failure is not None:
            raise failure

    def fail(self, verb: str, kind: str, error: Exception) -> None:
        """Make every ``verb`` call on ``kind`` raise ``error``."""
        self.failures[(verb, kind)] = error

    def _next_version(self) -> str:
        return str(next(self._versions))

    def add(self, body: dict[str, Any]) -> dict[str, Any]:
        """Seed an object without recording a call."""
        return self._store_new(body)

    def _store_new(self, body: dict[str, Any]) -> dict[str, Any]:
        obj = copy.deepcopy(body)
        metadata = obj.setdefault("metadata", {})
        if obj.get("kind") in CLUSTER_SCOPED_KINDS:
            metadata.pop("namespace", None)
        metadata.setdefault("uid", f"uid-{next(self._uids)}")
        metadata["resourceVersion"] = self._next_version()
        self.objects[self._body_key(obj)] = obj
        return copy.deepcopy(obj)

    def find(self, kind: str, name: str, namespace: str | None = None) -> dict[str, Any] | None:
        """Look an object up by kind and name, ignoring apiVersion."""
        for (_, k, ns, n), obj in self.objects.items():
            if k == kind and n == name and (kind in CLUSTER_SCOPED_KINDS or ns == (namespace or "")):
                return obj
        return None

    def verbs(self, verb: str) -> list[tuple[str, str]]:
        return [(kind, name) for v, kind, name in self.calls if v == verb]

    # Generic verbs

    def get_resource(
        self,
        api_version: str,
        kind: str,
        name: str,
        namespace: str | None = None,
    ) -> dict[str, Any]:
        self._record("get", kind, name)
        obj = self.objects.get(self._key(api_version, kind, name, namespace))
        if obj is None:
            raise KubernetesNotFoundError(resource_type=kind, resource_name=name, namespace=namespace)
        return copy.deepcopy(obj)

    def list_resources(
        self,
        api_version: str,
        kind: str,
        namespace: str | None = None,
        *,
        label_selector: str | None = None,
    ) -> list[dict[str, Any]]:
        self._record("list", kind, "")
        return [
            copy.deepcopy(obj)
            for (av, k, ns, _), obj in self.objects.items()
            if av == api_version
            and k == kind
            and (not namespace or kind in CLUSTER_SCOPED_KINDS or ns == namespace)
            and _matches_selector(obj, label_selector)
        ]

    def create_resource(self, body: dict[str, Any]) -> dict[str, Any]:
        key = self._body_key(body)
        self._record("create", key[1], key[3])
        if key in self.objects:
            raise KubernetesConflictError(
                resource_type=key[1], resource_name=key[3], namespace=key[2] or None, already_exists=True
            )
        return self._store_new(body)

    def _check_update(self, body: dict[str, Any]) -> tuple[Key, dict[str, Any]]:
        key = self._body_key(body)
        stored = self.objects.get(key)
        if stored is None:
            raise KubernetesNotFoundError(resource_type=key[1], resource_name=key[3], namespace=key[2] or None)
        expected = (body.get("metadata") or {}).get("resourceVersion")
        if expected and expected != stored["metadata"]["resourceVersion"]:
            raise KubernetesConflictError(
                resource_type=key[1], resource_name=key[3], namespace=key[2] or None
            )
        return key, stored

    def update_resource(self, body: dict[str, Any]) -> dict[str, Any]:
        key = self._body_key(body)
        self._record("update", key[1], key[3])
        key, stored = self._check_update(body)
        obj = copy.deepcopy(body)
        metadata = obj.setdefault("metadata", {})
        metadata["uid"] = stored["metadata"]["uid"]
        metadata["resourceVersion"] = self._next_version()
        if "status" in stored:
            obj["status"] = copy.deepcopy(stored["status"])
        self.objects[key] = obj
        return copy.deepcopy(obj)

    def update_resource_status(self, body: dict[str, Any]) -> dict[str, Any]:
        key = self._body_key(body)
        self._record("update_status", key[1], key[3])
        key, stored = self._check_update(body)
        stored["status"] = copy.deepcopy(body.get("status"))
        stored["metadata"]["resourceVersion"] = self._next_version()
        return copy.deepcopy(stored)

    def patch_resource(self, body: dict[str, Any]) -> dict[str, Any]:
        key = self._body_key(body)
        self._record("patch", key[1], key[3])
        stored = self.objects.get(key)
        if stored is None:
            raise KubernetesNotFoundError(resource_type=key[1], resource_name=key[3], namespace=key[2] or None)
        patched = _merge_patch(stored, body)
        patched["metadata"]["uid"] = stored["metadata"]["uid"]
        patched["metadata"]["resourceVersion"] = self._next_version()
        self.objects[key] = patched
        return copy.deepcopy(patched)

    def delete_resource(
        self,
        api_version: str,
        kind: str,
        name: str,
        namespace: str | None = None,
        *,
        propagation_policy: str = "Background",
    ) -> None:
        self._record("delete", kind, name)
        key = self._key(api_version, kind, name, namespace)
        obj = self.objects.pop(key, None)
        if obj is None:
            raise KubernetesNotFoundError(resource_type=kind, resource_name=name, namespace=namespace)
        self._collect_garbage(obj["metadata"]["uid"])

    def _collect_garbage(self, owner_uid: str) -> None:
        owned = [
            key
            for key, obj in self.objects.items()
            if any(
                ref.get("uid") == owner_uid
                for ref in (obj.get("metadata") or {}).get("ownerReferences") or []
            )
        ]
        for key in owned:
            obj = self.objects.pop(key, None)
            if obj is not None:
                self._collect_garbage(obj["metadata"]["uid"])


@pytest.fixture
def cluster() -> FakeCluster:
    """Empty in-memory cluster."""
    return FakeCluster()


@pytest.fixture
def manifests_root(tmp_path: Path) -> Path:
    """Directory manifests are resolved against."""
    root = tmp_path / "manifests"
    root.mkdir()
    return root


@pytest.fixture
def engine_config(manifests_root: Path) -> EngineConfig:
    """Engine settings with fast polling and a temporary manifests root."""
    return EngineConfig(
        manifests_root=str(manifests_root),
        poll_interval_seconds=0.01,
        poll_timeout_seconds=0.2,
    )


@pytest.fixture
def write_manifest(manifests_root: Path) -> Callable[..., Path]:
    """Write one or more documents (or raw text) below the manifests root."""

    def write(relative: str, *documents: dict[str, Any] | str) -> Path:
        path = manifests_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        parts = [d if isinstance(d, str) else yaml.safe_dump(d, sort_keys=False) for d in documents]
        path.write_text("---\n".join(parts), encoding="utf-8")
        return path

    return write


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset environment variables for each test."""
    for key in list(os.environ.keys()):
        if key.startswith("PF_"):
            monkeypatch.delenv(key, raising=False)
