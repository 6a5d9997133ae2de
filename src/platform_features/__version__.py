"""Version information for platform_features."""

__version__ = "0.1.0"
