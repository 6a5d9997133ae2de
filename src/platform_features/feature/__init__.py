"""Feature engine: define, apply and remove units of cluster configuration."""

from platform_features.feature.builder import FeatureBuilder, define
from platform_features.feature.context import ContextDefinition, ContextEntry, entry, extract_entry
from platform_features.feature.errors import (
    ApplyError,
    ContextKeyError,
    FeatureBuildError,
    FeatureCancelledError,
    FeatureError,
    ManifestProcessingError,
    Phase,
    PhaseError,
)
from platform_features.feature.feature import Action, Feature, owned_by
from platform_features.feature.handler import (
    FeaturesHandler,
    FeaturesProvider,
    FeaturesRegistry,
    cluster_features_handler,
    component_features_handler,
)
from platform_features.feature.provider import DataProvider, value_of
from platform_features.feature.tracker import FeatureTracker, Source, SourceType, TrackerPhase

__all__ = [
    "Action",
    "ApplyError",
    "ContextDefinition",
    "ContextEntry",
    "ContextKeyError",
    "DataProvider",
    "Feature",
    "FeatureBuildError",
    "FeatureBuilder",
    "FeatureCancelledError",
    "FeatureError",
    "FeatureTracker",
    "FeaturesHandler",
    "FeaturesProvider",
    "FeaturesRegistry",
    "ManifestProcessingError",
    "Phase",
    "PhaseError",
    "Source",
    "SourceType",
    "TrackerPhase",
    "cluster_features_handler",
    "component_features_handler",
    "define",
    "entry",
    "extract_entry",
    "owned_by",
    "value_of",
]
