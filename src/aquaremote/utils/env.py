"""Environment variable utilities.

Every reader treats an unset or blank variable as absent and falls back to
the supplied default; unparseable values are logged and ignored.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def get_config_dir() -> Path:
    """Return ``AQUA_REMOTE_CONFIG_DIR`` or ``~/.aqua-remote``, creating it if needed."""
    override = _read("AQUA_REMOTE_CONFIG_DIR")
    config_dir = Path(override) if override else Path.home() / ".aqua-remote"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def _read(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _parse(name: str, default: T, convert: Callable[[str], T]) -> T:
    raw = _read(name)
    if raw is None:
        return default
    try:
        return convert(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}; using default {default!r}")
        return default


def _to_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    return bool(int(raw))


def get_env_str(name: str, default: str) -> str:
    """Get a string setting."""
    raw = _read(name)
    return default if raw is None else raw


def get_env_bool(name: str, default: bool) -> bool:
    """Get a boolean setting (``1/true/yes/on`` or ``0/false/no/off``)."""
    return _parse(name, default, _to_bool)


def get_env_float(name: str, default: float) -> float:
    """Get a float setting such as an interval in seconds."""
    return _parse(name, default, float)


def get_env_int(name: str, default: int) -> int:
    """Get an integer setting such as a countdown or port."""
    return _parse(name, default, int)
