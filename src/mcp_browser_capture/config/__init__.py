"""Configuration management for browser automation."""

from .environment import get_env_config

__all__ = [
    "get_env_config",
]
