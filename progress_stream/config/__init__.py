"""Configuration primitives for the streaming-update client."""

from .settings import StreamSettings, get_settings

__all__ = ["StreamSettings", "get_settings"]
