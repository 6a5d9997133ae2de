"""Logging configuration for platform_features."""

from platform_features.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
