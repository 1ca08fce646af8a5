"""
Configuration module - environment-driven application settings.
"""

from .settings import get_settings, Settings

__all__ = ["get_settings", "Settings"]
