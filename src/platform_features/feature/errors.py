"""Exceptions raised by the feature engine."""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum


class Phase(StrEnum):
    """Pipeline phases of a feature run.

    Values double as the condition reason recorded on the tracker when a
    run fails in that phase.
    """

    LOAD_TEMPLATE_DATA = "LoadTemplateData"
    PRECONDITIONS = "PreConditions"
    RESOURCE_CREATION = "ResourceCreation"
    APPLY_MANIFESTS = "ApplyManifests"
    POSTCONDITIONS = "PostConditions"
    CLEANUP = "Cleanup"


class FeatureError(Exception):
    """Base exception for feature engine errors."""

    def __init__(self, message: str, *, feature: str | None = None) -> None:
        self.message = message
        self.feature = feature
        super().__init__(message)

    def __str__(self) -> str:
        if self.feature:
            return f"[{self.feature}] {self.message}"
        return self.message


class FeatureBuildError(FeatureError):
    """Raised when a feature cannot be assembled from its builder."""


class ContextKeyError(FeatureError):
    """Raised on a missing key, a wrong-typed read, or a second write to a context key."""

    def __init__(self, message: str, *, key: str, feature: str | None = None) -> None:
        self.key = key
        super().__init__(message, feature=feature)


class ManifestProcessingError(FeatureError):
    """Raised when a manifest cannot be read, rendered, or parsed."""

    def __init__(self, message: str, *, path: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


class PhaseError(FeatureError):
    """All failures of one pipeline phase, tagged with that phase."""

    def __init__(
        self,
        phase: Phase,
        errors: Sequence[BaseException],
        *,
        feature: str | None = None,
    ) -> None:
        self.phase = phase
        self.errors = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{phase.value} failed: {details}", feature=feature)


class FeatureCancelledError(FeatureError):
    """Raised when a run is abandoned because its cancellation signal was set."""


class ApplyError(FeatureError):
    """Failures of several features applied or deleted by one handler."""

    def __init__(self, message: str, errors: Sequence[BaseException]) -> None:
        self.errors = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{message}: {details}" if details else message)
