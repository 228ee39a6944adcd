"""Operator settings storage.

Persists the device address the operator last selected so the core can
re-target it on the next start. Stored in <config_dir>/settings.json.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


class DeviceSettings:
    """Manages persisted operator settings."""

    def __init__(self, config_dir: Path):
        """Initialize settings manager.

        Args:
            config_dir: The configuration directory (e.g., ~/.aqua-remote)
        """
        self._config_dir = Path(config_dir)
        self._settings_file = self._config_dir / "settings.json"
        self._settings: Dict[str, Any] = {}
        self._load_settings()

    def _load_settings(self) -> None:
        """Load settings from file."""
        if not self._settings_file.exists():
            logger.info("No settings file found, using defaults")
            self._settings = {}
            return

        try:
            loaded = json.loads(self._settings_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.error(f"Failed to load settings: {exc}")
            self._settings = {}
            return
        if not isinstance(loaded, dict):
            logger.error(f"Ignoring settings file {self._settings_file}: not a JSON object")
            loaded = {}
        self._settings = loaded
        logger.info(f"Loaded settings from {self._settings_file}")

    def _save_settings(self) -> None:
        """Save settings to file."""
        self._config_dir.mkdir(parents=True, exist_ok=True)

        tmp_file = self._settings_file.with_suffix(".tmp")
        tmp_file.write_text(
            json.dumps(self._settings, indent=2, sort_keys=True),
            encoding="utf-8",
        )
        tmp_file.replace(self._settings_file)
        logger.debug(f"Saved settings to {self._settings_file}")

    def get_device_address(self) -> str | None:
        """Return the persisted device address, or None if never set."""
        address = self._settings.get("device_address")
        return address if isinstance(address, str) and address else None

    def set_device_address(self, address: str) -> None:
        """Persist the device address."""
        self._settings["device_address"] = address
        self._save_settings()
        logger.info(f"Set device address to {address}")
