"""Configuration loader with YAML parsing and environment variable substitution."""

import yaml
import os
import re
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..exceptions import ConfigError
from .models import ExporterConfig
from .registry import build_targets
from .settings import Settings


class ConfigLoader:
    """Load and validate exporter configuration."""

    @staticmethod
    def load_from_file(config_path: str) -> ExporterConfig:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            ExporterConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigError: If YAML parsing or validation fails
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            try:
                raw_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Cannot parse {config_path}: {e}") from e

        raw_config = ConfigLoader._substitute_env_vars(raw_config)

        try:
            return ExporterConfig(**raw_config)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    @staticmethod
    def load(
        config_path: Optional[str] = None,
        sockets: Optional[str] = None,
        port: Optional[int] = None,
        log_level: Optional[str] = None,
        logger: Optional[logging.Logger] = None
    ) -> ExporterConfig:
        """
        Build the effective configuration.

        Precedence, highest first: explicit arguments, environment variables
        (OPENVPN_SOCKETS, OPENVPN_EXPORTER_PORT, LOG_LEVEL), the YAML file.
        The socket mapping is parsed into targets, which are merged over any
        ``targets`` listed in the file (same label: mapping wins).

        Raises:
            ConfigError: If the socket mapping or any value is invalid
        """
        if config_path:
            config = ConfigLoader.load_from_file(config_path)
        else:
            config = ExporterConfig()

        overrides: Dict[str, Dict[str, Any]] = {"collector": {}, "server": {}, "logging": {}}

        sockets = sockets if sockets is not None else Settings.get("OPENVPN_SOCKETS")
        if sockets is not None:
            overrides["collector"]["sockets"] = sockets

        env_port = Settings.get("OPENVPN_EXPORTER_PORT")
        if port is not None:
            overrides["server"]["port"] = port
        elif env_port:
            overrides["server"]["port"] = env_port

        log_level = log_level or Settings.get("LOG_LEVEL")
        if log_level:
            overrides["logging"]["level"] = log_level

        raw = config.model_dump()
        for section, values in overrides.items():
            raw[section].update(values)

        by_label = {target["label"]: target for target in raw["targets"]}
        for target in build_targets(raw["collector"]["sockets"], logger):
            by_label[target.label] = target.model_dump()
        raw["targets"] = [by_label[label] for label in sorted(by_label)]

        try:
            return ExporterConfig(**raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """
        Recursively substitute ${ENV_VAR} placeholders with environment values.

        Args:
            obj: Object to process (str, dict, list, or primitive)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, str):
            pattern = r'\$\{(\w+)\}'
            return re.sub(pattern, lambda m: os.getenv(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
