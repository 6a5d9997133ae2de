"""The Feature: a named, idempotently applicable unit of cluster configuration.

A feature combines manifests with programmatic actions. Applying it runs,
in order: data providers, preconditions, resource actions, manifests and
postconditions. Data providers, preconditions and postconditions report
every failure of their phase at once; resource actions and manifests stop
at the first failure. Any failure aborts the run and is recorded on the
feature's tracker with the phase as reason.

Features are created with :func:`platform_features.feature.builder.define`.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from platform_features.core.config.models import EngineConfig
from platform_features.feature.applier import create_applier
from platform_features.feature.errors import (
    ContextKeyError,
    FeatureCancelledError,
    Phase,
    PhaseError,
)
from platform_features.feature.manifest import load_manifests
from platform_features.feature.meta import MetaOption, with_owner_reference
from platform_features.feature.tracker import FeatureTracker, Source
from platform_features.integrations.kubernetes.exceptions import KubernetesError

if TYPE_CHECKING:
    from platform_features.feature.manifest import Manifest
    from platform_features.feature.plugins import ResourceTransformer
    from platform_features.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()

type Action = Callable[[Feature], None]

TARGET_NAMESPACE_KEY = "TargetNamespace"


class Feature:
    """Runtime unit holding a feature's configuration and per-run context.

    Attributes:
        name: Unique name within a features handler.
        target_namespace: Namespace the feature is applied to.
        managed: Whether emitted objects get the managed annotation.
        enabled: Disabled features make ``apply`` and ``cleanup`` no-ops.
        client: Cluster client used by the feature and its actions.
        config: Engine settings (annotation key, manifest root, polling).
        tracker: Handle on the feature's FeatureTracker record.
    """

    def __init__(
        self,
        name: str,
        target_namespace: str,
        client: KubernetesClient,
        *,
        config: EngineConfig | None = None,
        managed: bool = False,
        enabled: bool = True,
        source: Source | None = None,
        manifests: Sequence[Manifest] = (),
        manifest_root: Path | None = None,
        global_plugins: Sequence[ResourceTransformer] = (),
        data_providers: Sequence[Action] = (),
        preconditions: Sequence[Action] = (),
        resources: Sequence[Action] = (),
        postconditions: Sequence[Action] = (),
        cleanups: Sequence[Action] = (),
    ) -> None:
        self.name = name
        self.target_namespace = target_namespace
        self.client = client
        self.config = config or EngineConfig()
        self.managed = managed
        self.enabled = enabled
        self.manifests = list(manifests)
        self.manifest_root = manifest_root or Path(self.config.manifests_root)
        self.global_plugins = list(global_plugins)
        self.data_providers = list(data_providers)
        self.preconditions = list(preconditions)
        self.resources = list(resources)
        self.postconditions = list(postconditions)
        self.cleanups = list(cleanups)
        self.tracker = FeatureTracker(client, name, target_namespace, source)

        self._context: dict[str, Any] = {}
        self._cancel: threading.Event | None = None
        self.log = logger.bind(feature=name)

    def __repr__(self) -> str:
        return (
            f"Feature(name={self.name!r}, target_namespace={self.target_namespace!r}, "
            f"managed={self.managed}, enabled={self.enabled})"
        )

    # =========================================================================
    # Context
    # =========================================================================

    @property
    def context(self) -> dict[str, Any]:
        """Copy of the values loaded by data providers in the current run."""
        return dict(self._context)

    def set(self, key: str, value: Any) -> None:
        """Store a value in the context.

        Raises:
            ContextKeyError: If ``key`` was already set in this run.
        """
        if key in self._context:
            raise ContextKeyError(f"context key {key!r} is already set", key=key, feature=self.name)
        self._context[key] = value

    def get[T](self, key: str, expected_type: type[T] | None = None) -> Any:
        """Read a value from the context.

        Args:
            key: Context key.
            expected_type: When given, the stored value must be an instance of it.

        Raises:
            ContextKeyError: If the key is missing or the value has the wrong type.
        """
        if key not in self._context:
            raise ContextKeyError(f"key {key} not found", key=key, feature=self.name)
        value = self._context[key]
        if expected_type is not None and not isinstance(value, expected_type):
            raise ContextKeyError(
                f"invalid type {type(value).__name__} for key {key}, "
                f"expected {expected_type.__name__}",
                key=key,
                feature=self.name,
            )
        return value

    def template_data(self) -> dict[str, Any]:
        """Values available to templated manifests."""
        return {TARGET_NAMESPACE_KEY: self.target_namespace, **self._context}

    # =========================================================================
    # Cancellation
    # =========================================================================

    @property
    def cancelled(self) -> bool:
        """Whether the cancellation signal of the current run is set."""
        return self._cancel is not None and self._cancel.is_set()

    def _check_cancelled(self) -> None:
        if self.cancelled:
            raise FeatureCancelledError("run cancelled", feature=self.name)

    # =========================================================================
    # Apply / Cleanup
    # =========================================================================

    def apply(self, cancel: threading.Event | None = None) -> None:
        """Apply the feature to the cluster.

        Creates the tracker if needed, marks it Progressing, runs the
        pipeline and records the outcome on the tracker. On cancellation
        the tracker is left Progressing.

        Args:
            cancel: Optional signal checked between actions.

        Raises:
            PhaseError: If a phase fails.
            FeatureCancelledError: If ``cancel`` was set during the run.
            KubernetesError: If the tracker cannot be created or updated.
        """
        if not self.enabled:
            self.log.debug("feature_disabled_skipping_apply")
            return

        self._context = {}
        self._cancel = cancel
        try:
            self.tracker.ensure()
            self.tracker.mark_progressing()
            self.log.info("applying_feature")

            try:
                self._apply_phases()
            except FeatureCancelledError:
                self.log.warning("feature_apply_cancelled")
                raise
            except PhaseError as e:
                self.log.error("feature_apply_failed", phase=e.phase.value, error=str(e))
                self._report(e, e.phase.value)
                raise

            self._report(None, None)
            self.log.info("feature_applied")
        finally:
            self._cancel = None

    def _report(self, error: PhaseError | None, reason: str | None) -> None:
        try:
            self.tracker.report(error, reason)
        except KubernetesError as report_error:
            if error is None:
                raise
            error.add_note(f"failed to report status on {self.tracker.name}: {report_error}")

    def _apply_phases(self) -> None:
        self._run_phase(Phase.LOAD_TEMPLATE_DATA, self.data_providers, aggregate=True)
        self._run_phase(Phase.PRECONDITIONS, self.preconditions, aggregate=True)
        self._run_phase(Phase.RESOURCE_CREATION, self.resources, aggregate=False)

        owner = owned_by(self)
        for manifest in self.manifests:
            self._check_cancelled()
            try:
                self._apply_manifest(manifest, owner)
            except Exception as e:
                raise PhaseError(Phase.APPLY_MANIFESTS, [e], feature=self.name) from e

        self._run_phase(Phase.POSTCONDITIONS, self.postconditions, aggregate=True)

    def _run_phase(self, phase: Phase, actions: Sequence[Action], *, aggregate: bool) -> None:
        errors: list[Exception] = []
        for action in actions:
            self._check_cancelled()
            try:
                action(self)
            except FeatureCancelledError:
                raise
            except Exception as e:
                self.log.debug("action_failed", phase=phase.value, action=_action_name(action), error=str(e))
                if not aggregate:
                    raise PhaseError(phase, [e], feature=self.name) from e
                errors.append(e)
        if errors:
            raise PhaseError(phase, errors, feature=self.name) from errors[0]

    def _apply_manifest(self, manifest: Manifest, *options: MetaOption) -> None:
        objects = manifest.process(self.template_data())
        if self.managed:
            manifest.mark_as_managed(objects, self.config.managed_annotation)
        apply = create_applier(
            self.client,
            manifest,
            *options,
            managed_annotation=self.config.managed_annotation,
        )
        apply(objects)
        self.log.debug("manifest_applied", manifest=manifest.name, objects=len(objects))

    def apply_manifest(self, path: str) -> None:
        """Apply manifests found at ``path`` immediately.

        Intended for resource actions; the tracker must already exist.

        Raises:
            ManifestProcessingError: If a manifest cannot be processed.
            KubernetesError: If applying an object fails.
        """
        manifests = load_manifests(
            self.manifest_root,
            path,
            plugins=self.global_plugins,
            kustomize_binary=self.config.kustomize_binary,
        )
        owner = owned_by(self)
        for manifest in manifests:
            self._apply_manifest(manifest, owner)

    def cleanup(self) -> None:
        """Run cleanup actions, then delete the tracker.

        Data providers run first so cleanup actions can read the context.
        The tracker is deleted last, and only when every cleanup action
        succeeded, so an interrupted cleanup can be retried.

        Raises:
            PhaseError: If data loading or any cleanup action fails.
        """
        if not self.enabled:
            self.log.debug("feature_disabled_skipping_cleanup")
            return

        self._context = {}
        self._run_phase(Phase.LOAD_TEMPLATE_DATA, self.data_providers, aggregate=True)
        self._run_phase(Phase.CLEANUP, self.cleanups, aggregate=True)
        self.tracker.delete()
        self.log.info("feature_cleaned_up")

    # =========================================================================
    # Ownership
    # =========================================================================

    def owner_reference(self) -> dict[str, Any]:
        """Owner reference to this feature's tracker."""
        return self.tracker.to_owner_reference()


def owned_by(feature: Feature) -> MetaOption:
    """Meta option making an object owned by ``feature``'s tracker."""
    return with_owner_reference(feature.owner_reference())


def _action_name(action: Action) -> str:
    return getattr(action, "__name__", repr(action))
