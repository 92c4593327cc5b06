"""
Configuration System - loads logfanout settings

Sources, lowest precedence first: built-in defaults, a YAML file, environment
variables, explicit overrides. `${VAR}` references in string values are
substituted from the environment.
"""

import codecs
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import humanfriendly
import yaml

from logfanout import settings
from logfanout.constants import FAULT_MAPPING


class FanoutConfig:
    """
    Example configuration file (logfanout.yml):
        logfanout:
          log_directory: /var/log/${APP_NAME}
          file_extension: log
          encoding: utf-8
          max_file_size: 10MB     # or max_file_size_bytes: 10485760
          console: true
          local: true
          telemetry: false
          cache_root: ~/.logfanout/cache
          flush_delay_ms: 1000
    """

    DEFAULT_CONFIG = {
        "log_directory": str(settings.DEFAULT_LOG_DIRECTORY),
        "file_extension": settings.DEFAULT_FILE_EXTENSION,
        "encoding": settings.DEFAULT_ENCODING,
        "max_file_size_bytes": settings.DEFAULT_MAX_FILE_SIZE_BYTES,
        "console": True,
        "local": True,
        "telemetry": True,
        "cache_root": str(settings.SDK_CACHE_ROOT),
        "flush_delay_ms": settings.DEFAULT_FLUSH_DELAY_MS,
    }

    ENV_MAPPINGS = {
        "LOGFANOUT_LOG_DIR": "log_directory",
        "LOGFANOUT_LOG_EXTENSION": "file_extension",
        "LOGFANOUT_LOG_ENCODING": "encoding",
        "LOGFANOUT_CACHE_ROOT": "cache_root",
    }

    BOOLEAN_ENV_MAPPINGS = {
        "LOGFANOUT_CONSOLE": "console",
        "LOGFANOUT_LOCAL": "local",
        "LOGFANOUT_TELEMETRY": "telemetry",
    }

    @classmethod
    def load(cls, config_path: Optional[str] = None, **overrides) -> Dict[str, Any]:
        """
        Load configuration from all sources.

        Precedence: overrides > environment > file > defaults

        Example:
            config = FanoutConfig.load("logfanout.yml", console=False)
        """
        config = cls.DEFAULT_CONFIG.copy()

        if config_path and Path(config_path).exists():
            file_config = cls._load_from_file(config_path)
            if file_config and isinstance(file_config.get("logfanout"), dict):
                config.update(file_config["logfanout"])

        config = cls._apply_env_overrides(config)
        config.update({key: value for key, value in overrides.items() if value is not None})
        config = cls._substitute_env_vars(config)
        return cls._normalize(config)

    @classmethod
    def _load_from_file(cls, config_path: str) -> Optional[Dict[str, Any]]:
        try:
            with open(config_path, encoding="utf-8") as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            sys.stderr.write(FAULT_MAPPING["config_file_parse_issue"].format(file_path=config_path) + f"\n{e}\n")
            return None
        except OSError:
            sys.stderr.write(FAULT_MAPPING["config_file_open_issue"].format(file_path=config_path) + "\n")
            return None

    @staticmethod
    def _parse_bool(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("true", "yes", "1", "on")

    @classmethod
    def _apply_env_overrides(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Environment variables:
            LOGFANOUT_LOG_DIR, LOGFANOUT_LOG_EXTENSION, LOGFANOUT_LOG_ENCODING,
            LOGFANOUT_MAX_FILE_SIZE (bytes or sizes like "5MB"),
            LOGFANOUT_CONSOLE, LOGFANOUT_LOCAL, LOGFANOUT_TELEMETRY (true/false),
            LOGFANOUT_CACHE_ROOT, LOGFANOUT_FLUSH_DELAY_MS
        """
        for env_var, config_key in cls.ENV_MAPPINGS.items():
            if env_var in os.environ:
                config[config_key] = os.environ[env_var]

        for env_var, config_key in cls.BOOLEAN_ENV_MAPPINGS.items():
            if env_var in os.environ:
                config[config_key] = cls._parse_bool(os.environ[env_var])

        if "LOGFANOUT_MAX_FILE_SIZE" in os.environ:
            config["max_file_size"] = os.environ["LOGFANOUT_MAX_FILE_SIZE"]

        if "LOGFANOUT_FLUSH_DELAY_MS" in os.environ:
            try:
                config["flush_delay_ms"] = int(os.environ["LOGFANOUT_FLUSH_DELAY_MS"])
            except ValueError:
                pass

        return config

    @classmethod
    def _substitute_env_vars(cls, config: Any) -> Any:
        """
        Recursively substitute ${VAR_NAME} references.

        Example:
            log_directory: /var/log/${ENVIRONMENT}
            With ENVIRONMENT=production, becomes /var/log/production
        """
        if isinstance(config, str):

            def replace_env(match):
                return os.environ.get(match.group(1), match.group(0))

            return re.sub(r"\$\{([^}]+)\}", replace_env, config)
        elif isinstance(config, dict):
            return {k: cls._substitute_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [cls._substitute_env_vars(item) for item in config]
        return config

    @classmethod
    def _normalize(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        # human readable size wins over the byte count when both are given
        max_file_size = config.pop("max_file_size", None)
        if max_file_size is not None:
            try:
                config["max_file_size_bytes"] = humanfriendly.parse_size(str(max_file_size), binary=True)
            except humanfriendly.InvalidSize as e:
                sys.stderr.write(f"Warning: ignoring max_file_size: {e}\n")
        for key in ("console", "local", "telemetry"):
            config[key] = cls._parse_bool(config[key])
        return config

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> tuple:
        """
        Validate configuration.

        Returns:
            Tuple of (is_valid, error_message)

        Example:
            is_valid, error = FanoutConfig.validate(config)
        """
        try:
            max_size = int(config.get("max_file_size_bytes", 0))
        except (TypeError, ValueError):
            return False, f"Invalid max_file_size_bytes '{config.get('max_file_size_bytes')}'. Must be an integer"
        if max_size <= 0:
            return False, "max_file_size_bytes must be greater than 0"

        try:
            codecs.lookup(str(config.get("encoding", "")))
        except LookupError:
            return False, f"Invalid encoding '{config.get('encoding')}'"

        if not str(config.get("file_extension", "")).lstrip("."):
            return False, "file_extension must not be empty"

        if not str(config.get("log_directory", "")).strip():
            return False, "log_directory must not be empty"

        try:
            if int(config.get("flush_delay_ms", 0)) < 0:
                return False, "flush_delay_ms must not be negative"
        except (TypeError, ValueError):
            return False, f"Invalid flush_delay_ms '{config.get('flush_delay_ms')}'. Must be an integer"

        return True, ""
