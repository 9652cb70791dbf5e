"""Configuration management for pulse."""

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger

from pulse.core import constants

# Numeric keys: (minimum, whether the minimum itself is allowed)
NUMERIC_BOUNDS = {
    "watcher.debounce_delay": (0.0, True),
    "watcher.heartbeat_base": (0.0, False),
    "watcher.heartbeat_jitter": (0.0, True),
    "watcher.heartbeat_min_interval": (1.0, True),
    "probes.http_timeout": (0.0, False),
    "probes.tcp_timeout": (0.0, False),
    "path_observer.poll_interval": (0.0, False),
}


@dataclass(frozen=True)
class WatcherSettings:
    """Scheduling knobs for the connectivity watcher."""

    debounce_delay: float = constants.DEBOUNCE_DELAY
    heartbeat_base: float = constants.HEARTBEAT_BASE
    heartbeat_jitter: float = constants.HEARTBEAT_JITTER
    heartbeat_min_interval: float = constants.HEARTBEAT_MIN_INTERVAL


class Config:
    """Manages pulse configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default path.
        """
        self.config_path = config_path or self._get_default_config_path()
        self.config_data: Dict[str, Any] = {}
        self._load_config()

    @staticmethod
    def _get_default_config_path() -> Path:
        """Get default configuration path (platform-specific, see constants.CONFIG_DIR)."""
        return Path(constants.CONFIG_DIR) / "config.json"

    def _load_config(self) -> None:
        """Load configuration from file, layered over defaults."""
        self.config_data = self._get_default_config()
        if not self.config_path.exists():
            return

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Error loading config: {e}. Using default configuration.")
            return

        if isinstance(data, dict):
            self._merge(self.config_data, data)
        else:
            logger.error("Config file does not contain an object. Using default configuration.")

    @staticmethod
    def _get_default_config() -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "log_level": constants.LOG_LEVEL.lower(),
            "watcher": {
                "debounce_delay": constants.DEBOUNCE_DELAY,
                "heartbeat_base": constants.HEARTBEAT_BASE,
                "heartbeat_jitter": constants.HEARTBEAT_JITTER,
                "heartbeat_min_interval": constants.HEARTBEAT_MIN_INTERVAL,
            },
            "probes": {
                "http_timeout": constants.HTTP_PROBE_TIMEOUT,
                "tcp_timeout": constants.TCP_PROBE_TIMEOUT,
            },
            "path_observer": {
                "poll_interval": constants.PATH_POLL_INTERVAL,
            },
            "notifications": {
                "enabled": True,
                "sounds": {
                    "online": "Glass",
                    "wifi_no_internet": "Funk",
                    "offline": "Funk",
                },
            },
        }

    @staticmethod
    def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                Config._merge(base[key], value)
            else:
                base[key] = value

    def save(self) -> None:
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(self.config_data, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key (supports dot notation, e.g., 'watcher.debounce_delay')
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self.config_data
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split(".")
        data = self.config_data
        for k in keys[:-1]:
            if not isinstance(data.get(k), dict):
                data[k] = {}
            data = data[k]
        data[keys[-1]] = value

    @staticmethod
    def validate(key: str, value: Any) -> None:
        """Check a value for a numeric key.

        Raises:
            ValueError: If the key is numeric and the value is not a number in range
        """
        if key not in NUMERIC_BOUNDS:
            return
        minimum, inclusive = NUMERIC_BOUNDS[key]

        if isinstance(value, bool):
            raise ValueError(f"{key} must be a number, got {value!r}")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"{key} must be a number, got {value!r}") from None
        if not math.isfinite(number):
            raise ValueError(f"{key} must be a finite number, got {value!r}")

        if number < minimum or (number == minimum and not inclusive):
            bound = ">=" if inclusive else ">"
            raise ValueError(f"{key} must be {bound} {minimum:g}, got {value!r}")

    def get_number(self, key: str, default: float) -> float:
        """Get a validated numeric value (raises ValueError when invalid)."""
        value = self.get(key, default)
        self.validate(key, value)
        return float(value)

    def watcher_settings(self) -> WatcherSettings:
        """Build watcher scheduling settings from the current configuration.

        Raises:
            ValueError: If a watcher value is not a number in range
        """
        return WatcherSettings(
            debounce_delay=self.get_number("watcher.debounce_delay", constants.DEBOUNCE_DELAY),
            heartbeat_base=self.get_number("watcher.heartbeat_base", constants.HEARTBEAT_BASE),
            heartbeat_jitter=self.get_number("watcher.heartbeat_jitter", constants.HEARTBEAT_JITTER),
            heartbeat_min_interval=self.get_number(
                "watcher.heartbeat_min_interval", constants.HEARTBEAT_MIN_INTERVAL
            ),
        )

    def import_config(self, config_file: Path, file_format: str = "json") -> bool:
        """Import configuration from file.

        Args:
            config_file: Path to configuration file
            file_format: File format ('json' or 'yaml')

        Returns:
            True if successful, False otherwise
        """
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                if file_format.lower() == "yaml":
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)

            # Merge with existing config
            if isinstance(data, dict):
                self._merge(self.config_data, data)
                self.save()
                return True
            logger.error(f"Error importing config: {config_file} does not contain an object")
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Error importing config: {e}")
        return False

    def export_config(self, output_file: Path, file_format: str = "json") -> bool:
        """Export configuration to file.

        Args:
            output_file: Path to output file
            file_format: File format ('json' or 'yaml')

        Returns:
            True if successful, False otherwise
        """
        try:
            with open(output_file, "w", encoding="utf-8") as f:
                if file_format.lower() == "yaml":
                    yaml.dump(self.config_data, f, default_flow_style=False)
                else:
                    json.dump(self.config_data, f, indent=2)
            return True
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error exporting config: {e}")
        return False
