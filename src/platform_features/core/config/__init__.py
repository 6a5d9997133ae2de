"""Configuration management with Pydantic validation."""

from platform_features.core.config.models import EngineConfig, load_config

__all__ = [
    "EngineConfig",
    "load_config",
]
