"""Core engine infrastructure."""
