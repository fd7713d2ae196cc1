"""
Configuration for the scatter engine.
"""

from .config import Settings, settings

__all__ = ["Settings", "settings"]
