"""
Configuration management for GitCircles.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for storage location and GitHub access.
"""

from gitcircles.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
