"""FeatureTracker: cluster-side ownership anchor and status record of a feature.

Every resource a feature creates is owner-referenced to its tracker, so
deleting the tracker lets the cluster garbage collector remove them.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ConfigDict, Field
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from platform_features.integrations.kubernetes.exceptions import (
    KubernetesConflictError,
    KubernetesNotFoundError,
)

if TYPE_CHECKING:
    from platform_features.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()

TRACKER_API_VERSION = "features.opendatahub.io/v1"
TRACKER_KIND = "FeatureTracker"
STATUS_UPDATE_ATTEMPTS = 5

_RFC1123_INVALID = re.compile(r"[^a-z0-9.-]+")


class SourceType(StrEnum):
    """Kind of consumer that declared a feature."""

    COMPONENT = "Component"
    PLATFORM = "Platform"
    UNKNOWN = "Unknown"


class TrackerPhase(StrEnum):
    """Lifecycle phase of a feature run."""

    NOT_STARTED = "NotStarted"
    PROGRESSING = "Progressing"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class ConditionType(StrEnum):
    PROGRESSING = "Progressing"
    AVAILABLE = "Available"
    DEGRADED = "Degraded"


FEATURE_CREATED_REASON = "FeatureCreated"


class Source(BaseModel):
    """Which consumer declared the feature."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: SourceType = SourceType.UNKNOWN
    name: str = ""


class Condition(BaseModel):
    """A single status condition."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: str
    status: str
    reason: str = ""
    message: str = ""
    last_transition_time: str = Field(default="", alias="lastTransitionTime")


class TrackerStatus(BaseModel):
    """Status subresource of a FeatureTracker."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    phase: TrackerPhase = TrackerPhase.NOT_STARTED
    conditions: list[Condition] = Field(default_factory=list)

    def set_condition(self, type_: str, status: bool, reason: str, message: str) -> None:
        """Add or replace the condition of ``type_``.

        The transition time changes only when the status flips.
        """
        value = "True" if status else "False"
        now = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        for i, existing in enumerate(self.conditions):
            if existing.type == type_:
                changed = existing.status != value
                self.conditions[i] = Condition(
                    type=type_,
                    status=value,
                    reason=reason,
                    message=message,
                    last_transition_time=now if changed else existing.last_transition_time,
                )
                return
        self.conditions.append(
            Condition(type=type_, status=value, reason=reason, message=message, last_transition_time=now)
        )

    def get_condition(self, type_: str) -> Condition | None:
        return next((c for c in self.conditions if c.type == type_), None)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


def rfc1123_name(value: str) -> str:
    """Lowercase ``value`` and replace characters not allowed in resource names."""
    name = _RFC1123_INVALID.sub("-", value.lower()).strip("-.")
    return name[:253]


def tracker_name(target_namespace: str, feature_name: str) -> str:
    """Name of the tracker for a feature applied in ``target_namespace``."""
    return f"{target_namespace}-{rfc1123_name(feature_name)}"


class FeatureTracker:
    """Handle on the cluster-scoped FeatureTracker record of one feature.

    The record is materialized lazily by :meth:`ensure`; until then the
    tracker has no ``uid`` and cannot be used as an owner.
    """

    def __init__(
        self,
        client: KubernetesClient,
        feature_name: str,
        target_namespace: str,
        source: Source | None = None,
    ) -> None:
        self._client = client
        self.feature_name = feature_name
        self.target_namespace = target_namespace
        self.source = source or Source(name=feature_name)
        self.name = tracker_name(target_namespace, feature_name)
        self._obj: dict[str, Any] | None = None
        self._log = logger.bind(tracker=self.name)

    @property
    def uid(self) -> str | None:
        if self._obj is None:
            return None
        uid: str | None = (self._obj.get("metadata") or {}).get("uid")
        return uid

    @property
    def status(self) -> TrackerStatus:
        """Last known status; ``NotStarted`` before the record exists."""
        raw = (self._obj or {}).get("status") or {}
        return TrackerStatus.model_validate(raw)

    def body(self) -> dict[str, Any]:
        """Desired body of the tracker record."""
        return {
            "apiVersion": TRACKER_API_VERSION,
            "kind": TRACKER_KIND,
            "metadata": {"name": self.name},
            "spec": {
                "source": self.source.model_dump(mode="json"),
                "appNamespace": self.target_namespace,
            },
        }

    def get(self) -> dict[str, Any] | None:
        """Read the record from the cluster, or None when it does not exist."""
        try:
            self._obj = self._client.get_resource(TRACKER_API_VERSION, TRACKER_KIND, self.name)
        except KubernetesNotFoundError:
            self._obj = None
        return self._obj

    def ensure(self) -> dict[str, Any]:
        """Fetch the record, creating it when absent."""
        existing = self.get()
        if existing is not None:
            return existing
        try:
            self._obj = self._client.create_resource(self.body())
            self._log.info("tracker_created")
        except KubernetesConflictError as e:
            if not e.already_exists:
                raise
            self._obj = self._client.get_resource(TRACKER_API_VERSION, TRACKER_KIND, self.name)
        return self._obj

    def to_owner_reference(self) -> dict[str, Any]:
        """Owner reference pointing at this tracker.

        Raises:
            RuntimeError: If the record has not been created yet.
        """
        if not self.uid:
            raise RuntimeError(f"FeatureTracker {self.name} has not been created yet")
        return {
            "apiVersion": TRACKER_API_VERSION,
            "kind": TRACKER_KIND,
            "name": self.name,
            "uid": self.uid,
        }

    @retry(
        retry=retry_if_exception_type(KubernetesConflictError),
        stop=stop_after_attempt(STATUS_UPDATE_ATTEMPTS),
        wait=wait_exponential(multiplier=0.1, max=2),
        reraise=True,
    )
    def update_status(self, mutate: Callable[[TrackerStatus], None]) -> TrackerStatus:
        """Re-read the record, apply ``mutate`` to its status and write it back.

        Conflicting concurrent writes are retried with a fresh read.
        """
        saved = self._client.get_resource(TRACKER_API_VERSION, TRACKER_KIND, self.name)
        status = TrackerStatus.model_validate(saved.get("status") or {})
        mutate(status)
        saved["status"] = status.to_dict()
        self._obj = self._client.update_resource_status(saved)
        return status

    def mark_progressing(self) -> TrackerStatus:
        def mutate(status: TrackerStatus) -> None:
            status.phase = TrackerPhase.PROGRESSING
            status.set_condition(
                ConditionType.PROGRESSING,
                True,
                FEATURE_CREATED_REASON,
                f"Applying feature [{self.feature_name}]",
            )

        return self.update_status(mutate)

    def report(self, error: BaseException | None, reason: str | None = None) -> TrackerStatus:
        """Record the outcome of a run.

        Args:
            error: The run's failure, or None on success.
            reason: Condition reason for a failure, typically the failed phase.
        """

        def mutate(status: TrackerStatus) -> None:
            if error is None:
                status.phase = TrackerPhase.SUCCEEDED
                message = f"Feature [{self.feature_name}] applied successfully"
                status.set_condition(ConditionType.AVAILABLE, True, FEATURE_CREATED_REASON, message)
                status.set_condition(ConditionType.PROGRESSING, False, FEATURE_CREATED_REASON, message)
                status.set_condition(ConditionType.DEGRADED, False, FEATURE_CREATED_REASON, message)
                return
            status.phase = TrackerPhase.FAILED
            failure_reason = reason or "Failed"
            status.set_condition(ConditionType.DEGRADED, True, failure_reason, str(error))
            status.set_condition(ConditionType.AVAILABLE, False, failure_reason, str(error))
            status.set_condition(ConditionType.PROGRESSING, False, failure_reason, str(error))

        status = self.update_status(mutate)
        self._log.info("tracker_status_reported", phase=status.phase.value)
        return status

    def delete(self) -> bool:
        """Delete the record, letting owned resources cascade.

        Returns:
            False if the record did not exist.
        """
        try:
            self._client.delete_resource(TRACKER_API_VERSION, TRACKER_KIND, self.name)
        except KubernetesNotFoundError:
            self._log.debug("tracker_already_deleted")
            self._obj = None
            return False
        self._obj = None
        self._log.info("tracker_deleted")
        return True
