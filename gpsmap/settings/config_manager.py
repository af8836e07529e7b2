"""Configuration file manager for gpsmap.

Handles reading and writing the JSON configuration file using platformdirs
for cross-platform config directory management.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

from gpsmap.logging import GPSMAP_LOGGER


class ConfigManager:
    """Manages configuration file storage and retrieval."""

    def __init__(self):
        """Initialize the config manager with the standard config directory."""
        self.config_dir = Path(platformdirs.user_config_dir("gpsmap", appauthor=False))
        self.config_file = self.config_dir / "config.json"

    def ensure_config_directory(self) -> None:
        """Create config directory with proper permissions if it doesn't exist."""
        if not self.config_dir.exists():
            self.config_dir.mkdir(parents=True, mode=0o700)
        else:
            os.chmod(self.config_dir, 0o700)

    def load_config(self) -> Dict[str, Any]:
        """Load configuration from JSON file.

        Returns:
            Dict containing configuration, or empty dict if file doesn't exist.
        """
        if not self.config_file.exists():
            return {}

        try:
            with open(self.config_file, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            # Start from defaults rather than refusing to run
            GPSMAP_LOGGER.error(f"Error loading config file {self.config_file}: {e}")
            return {}

        valid, error = self.validate_config(data)
        if not valid:
            GPSMAP_LOGGER.error(f"Ignoring config file {self.config_file}: {error}")
            return {}
        return data

    def save_config(self, config: Dict[str, Any]) -> None:
        """Save configuration to JSON file with proper permissions.

        Args:
            config: Dictionary of configuration values to save.
        """
        self.ensure_config_directory()

        # Write to temp file first, then atomic rename
        temp_file = self.config_file.with_suffix(".json.tmp")
        try:
            with open(temp_file, "w") as f:
                json.dump(config, f, indent=2)
            os.chmod(temp_file, 0o600)
            temp_file.rename(self.config_file)
        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise IOError(f"Failed to save config: {e}") from e

    def update_config(self, **values: Any) -> Dict[str, Any]:
        """Merge ``values`` into the stored configuration and save it.

        Returns:
            The configuration as written.
        """
        config = self.load_config()
        config.update(values)
        self.save_config(config)
        return config

    def get_config_path(self) -> Path:
        return self.config_file

    def config_exists(self) -> bool:
        return self.config_file.exists()

    def validate_config(self, config: Any) -> tuple[bool, Optional[str]]:
        """Validate configuration structure.

        Args:
            config: Configuration value loaded from disk.

        Returns:
            Tuple of (is_valid, error_message).
        """
        if not isinstance(config, dict):
            return False, "Configuration must be a dictionary"
        return True, None
