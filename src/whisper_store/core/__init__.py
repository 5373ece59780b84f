"""Core configuration for whisper-store."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
