"""Core modules for the live query client."""
from .config import Settings, settings

__all__ = [
    "Settings",
    "settings",
]
