import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from hitgff.core.errors import HitGFFError
from hitgff.core.evalue import EValue

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "log_level": "INFO",
    "format": "tabular",
    "cluster_on": "subject",
    "cutoff": None,
    "alignment_error": 3,
    "e_value": 1e-5,
    "threads": 1,
    "id_prefix": "",
    "source": None,
    "feature_type": None,
    "progress": False,
}

VALID_FORMATS: List[str] = ["tabular", "xml", "tree"]
VALID_AXES: List[str] = ["query", "subject"]
VALID_LOG_LEVELS: List[str] = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ConfigurationError(HitGFFError):
    """Custom exception for configuration errors."""
    pass


class Config:
    """
    Manages configuration settings for the application.

    Settings start from DEFAULT_CONFIG, are updated from an optional YAML
    file and finally from explicit overrides (typically CLI options). Only
    overrides whose value is not None are applied.
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None, **overrides: Any):
        self._settings: Dict[str, Any] = DEFAULT_CONFIG.copy()
        self.load(config_file, **overrides)

    def load(self, config_file: Optional[Union[str, Path]] = None, **overrides: Any):
        """
        Loads configuration from a file and overrides, then validates it.

        Raises:
            ConfigurationError: If the file is missing or malformed, a key is
                                unknown, or a value is out of range
        """
        # 1. Load from config file if specified
        if config_file:
            if not os.path.exists(config_file):
                raise ConfigurationError(f"Config file not found: {config_file}")
            try:
                with open(config_file, 'r') as f:
                    file_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Error parsing config file {config_file}: {e}") from e

            if file_config:
                if not isinstance(file_config, dict):
                    raise ConfigurationError(f"Config file {config_file} must contain a mapping")
                self._update(file_config)

        # 2. Override with explicitly provided values
        self._update({key: value for key, value in overrides.items() if value is not None})

        # 3. Validate
        self._validate()

    def _update(self, values: Dict[str, Any]):
        unknown = [key for key in values if key not in DEFAULT_CONFIG]
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        self._settings.update(values)

    def _validate(self):
        settings = self._settings

        if str(settings["format"]).lower() not in VALID_FORMATS:
            raise ConfigurationError(f"format must be one of {VALID_FORMATS}, got {settings['format']!r}")
        if str(settings["cluster_on"]).lower() not in VALID_AXES:
            raise ConfigurationError(f"cluster_on must be one of {VALID_AXES}, got {settings['cluster_on']!r}")
        if str(settings["log_level"]).upper() not in VALID_LOG_LEVELS:
            raise ConfigurationError(f"log_level must be one of {VALID_LOG_LEVELS}, got {settings['log_level']!r}")

        if not isinstance(settings["threads"], int) or settings["threads"] < 1:
            raise ConfigurationError(f"threads must be a positive integer, got {settings['threads']!r}")
        if not isinstance(settings["alignment_error"], int) or settings["alignment_error"] < 0:
            raise ConfigurationError(
                f"alignment_error must be a non-negative integer, got {settings['alignment_error']!r}")

        cutoff = settings["cutoff"]
        if cutoff is not None and (not isinstance(cutoff, (int, float)) or cutoff <= 0):
            raise ConfigurationError(f"cutoff must be a positive number, got {cutoff!r}")

        if settings["e_value"] is not None:
            try:
                EValue(settings["e_value"])
            except ValueError as e:
                raise ConfigurationError(f"e_value is not a valid e-value: {settings['e_value']!r}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieves a configuration value."""
        return self._settings.get(key, default)

    def get_all(self) -> Dict[str, Any]:
        """Retrieves all configuration settings."""
        return self._settings.copy()
