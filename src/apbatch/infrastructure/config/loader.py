"""Configuration loading and validation."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from apbatch.domain.exceptions import ConfigurationError
from apbatch.infrastructure.config.schema import AppSettings
from apbatch.shared.logging import get_logger
from apbatch.shared.types import PathLike

logger = get_logger(__name__)

ENV_PREFIX = "APBATCH_"
_BOOL_TRUE = ("true", "1", "yes")


class ConfigLoader:
    """Loads settings from a YAML file, environment variables and overrides.

    Precedence, lowest first: YAML file, ``APBATCH_*`` environment
    variables, runtime overrides (from the CLI).
    """

    def __init__(self, config_path: Optional[PathLike] = None):
        """
        Initialize config loader.

        Args:
            config_path: Optional path to YAML settings file
        """
        self.config_path = Path(config_path) if config_path else Path("apbatch.yaml")
        self._logger = get_logger(__name__)

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> AppSettings:
        """
        Load settings.

        Args:
            overrides: Runtime values; ``None`` entries are ignored

        Returns:
            AppSettings instance

        Raises:
            ConfigurationError: If the file cannot be parsed or values are invalid
        """
        config_dict: Dict[str, Any] = {}

        if self.config_path.exists():
            self._logger.info(f"Loading settings from {self.config_path}")
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    yaml_config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Cannot read settings file {self.config_path}: {e}") from e
            if not isinstance(yaml_config, dict):
                raise ConfigurationError(f"Settings file {self.config_path} must contain a mapping")
            config_dict.update(yaml_config)
        else:
            self._logger.debug(f"Settings file not found: {self.config_path}")

        config_dict.update(self._load_from_env())

        if overrides:
            for k, v in overrides.items():
                if v is None:
                    continue
                config_dict[k] = v

        unknown = sorted(set(config_dict) - set(AppSettings.model_fields))
        if unknown:
            raise ConfigurationError(f"Unknown setting(s): {', '.join(unknown)}")

        try:
            return AppSettings(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e

    def _load_from_env(self) -> Dict[str, Any]:
        """Load settings from ``APBATCH_*`` environment variables."""
        env_config: Dict[str, Any] = {}

        if ap_dir := os.getenv(f"{ENV_PREFIX}AP_DIRECTORY"):
            env_config["ap_directory"] = Path(ap_dir)

        if executable := os.getenv(f"{ENV_PREFIX}EXECUTABLE"):
            env_config["executable"] = Path(executable)

        if config_dir := os.getenv(f"{ENV_PREFIX}CONFIG_DIRECTORY"):
            env_config["config_directory"] = Path(config_dir)

        if temp_dir := os.getenv(f"{ENV_PREFIX}TEMP_DIRECTORY"):
            env_config["temp_directory"] = Path(temp_dir)

        if launcher := os.getenv(f"{ENV_PREFIX}LAUNCHER"):
            env_config["launcher"] = launcher.lower()

        if shim := os.getenv(f"{ENV_PREFIX}SHIM"):
            env_config["shim"] = shim

        if template := os.getenv(f"{ENV_PREFIX}DEFAULT_TEMPLATE"):
            env_config["default_template"] = template

        if strict := os.getenv(f"{ENV_PREFIX}STRICT_OVERRIDES"):
            env_config["strict_overrides"] = strict.lower() in _BOOL_TRUE

        if preemptive := os.getenv(f"{ENV_PREFIX}PREEMPTIVE_CANCEL"):
            env_config["preemptive_cancel"] = preemptive.lower() in _BOOL_TRUE

        if buffer_lines := os.getenv(f"{ENV_PREFIX}OUTPUT_BUFFER_LINES"):
            try:
                env_config["output_buffer_lines"] = int(buffer_lines)
            except ValueError:
                self._logger.warning(f"Invalid {ENV_PREFIX}OUTPUT_BUFFER_LINES value: {buffer_lines}")

        if log_level := os.getenv(f"{ENV_PREFIX}LOG_LEVEL"):
            env_config["log_level"] = log_level

        if log_file := os.getenv(f"{ENV_PREFIX}LOG_FILE"):
            env_config["log_file"] = Path(log_file)

        return env_config
