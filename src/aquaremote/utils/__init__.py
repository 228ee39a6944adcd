"""Utility package for general-purpose helpers.

Provides environment configuration helpers. Serializers live in
``aquaremote.utils.serializers`` and are imported directly.
"""

from .env import get_config_dir, get_env_bool, get_env_float, get_env_int, get_env_str

__all__ = [
    "get_config_dir",
    "get_env_bool",
    "get_env_float",
    "get_env_int",
    "get_env_str",
]
