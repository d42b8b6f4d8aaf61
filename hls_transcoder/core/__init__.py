"""Core module for configuration and utilities."""

from hls_transcoder.core.config import settings

__all__ = [
    "settings",
]
