"""Configuration module for the evidence triage service."""

from .settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
