"""Configuration package for the fee portal."""
from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
