"""Configuration management for Hanki."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def default_config_dir() -> Path:
    """~/.hanki unless HANKI_HOME points somewhere else."""
    env_dir = os.environ.get("HANKI_HOME")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".hanki"


class ConfigManager:
    """Manages application configuration with persistent storage."""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config_file = self.config_dir / "config.json"
        self._config = self._load_config()

    def _defaults(self) -> Dict[str, Any]:
        return {
            "db_path": str(self.config_dir / "hanki.sqlite"),
            "leech_threshold": 8,
            "rollover_hour": 4,
        }

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file, falling back to defaults."""
        config = self._defaults()
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r') as f:
                    stored = json.load(f)
                if isinstance(stored, dict):
                    config.update(stored)
                else:
                    logger.warning("Ignoring config file %s: not a JSON object", self.config_file)
            except (json.JSONDecodeError, IOError) as e:
                logger.warning("Could not read config %s: %s", self.config_file, e)
        return config

    def _save_config(self) -> None:
        """Save configuration to file."""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w') as f:
                json.dump(self._config, f, indent=2)
        except IOError as e:
            logger.warning("Could not save config: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value and save."""
        self._config[key] = value
        self._save_config()

    def get_db_path(self) -> str:
        return str(self.get("db_path"))

    def get_leech_threshold(self) -> int:
        return int(self.get("leech_threshold", 8))

    def get_rollover_hour(self) -> int:
        return int(self.get("rollover_hour", 4))
