#!/usr/bin/env python3
"""Layered configuration for ClassWeaver.

Values live under a single ``classweaver`` section and come from six
sources, later ones winning:

1. compiled defaults (``core.constants.DEFAULT_CONFIG``)
2. system file, ``/etc/classweaver/config.yaml`` when present
3. user file, given with ``--config``
4. ``CLASSWEAVER_*`` environment variables
5. command-line options
6. runtime ``set()`` calls

A None value never overrides a lower source, so an option the user did
not give leaves the file or default value in place.

Example:
    >>> config = ConfigManager(config_file="classweaver.yaml")
    >>> config.get("classweaver.filter_pattern")
    >>> config.set("classweaver.fail_fast", False, ConfigSource.CLI_ARGS)
"""

import copy
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from classweaver.core.constants import DEFAULT_CONFIG, ConfigKey, ErrorCode
from classweaver.core.errors import ClassWeaverError
from classweaver.core.validators import validate_config

ENV_PREFIX = "CLASSWEAVER_"
SYSTEM_CONFIG_FILE = "/etc/classweaver/config.yaml"


class ConfigSource(Enum):
    """Configuration source precedence levels."""

    COMPILED_DEFAULTS = 1  # Lowest precedence
    SYSTEM_CONFIG = 2
    USER_CONFIG = 3
    ENVIRONMENT = 4
    CLI_ARGS = 5
    RUNTIME = 6  # Highest precedence


class ConfigError(ClassWeaverError):
    """A configuration file is missing or malformed."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        super().__init__(message, error_code)


class ConfigManager:
    """Thread-safe layered configuration.

    Each source holds its own dictionary; ``get_all`` merges them in
    precedence order on every call.
    """

    DEFAULT_CONFIG = {ConfigKey.SECTION: DEFAULT_CONFIG}

    # Expected value types; None values and absent keys are not checked
    CONFIG_SCHEMA = {
        ConfigKey.SECTION: {
            ConfigKey.TRANSFORMER: str,
            ConfigKey.FILTER_PATTERN: str,
            ConfigKey.FAIL_FAST: bool,
            ConfigKey.SCOPE: str,
            ConfigKey.OUTPUT_DIRECTORY: str,
            ConfigKey.TEST_OUTPUT_DIRECTORY: str,
            ConfigKey.CLASSPATH: list,
            ConfigKey.TEST_CLASSPATH: list,
            ConfigKey.STAGING: {
                ConfigKey.STAGING_POLICY: str,
                ConfigKey.STAGING_CLEAN_AFTER: bool,
            },
            ConfigKey.LOGGING: {
                ConfigKey.LOG_LEVEL: (str, int),
                ConfigKey.LOG_FILE: str,
            },
        }
    }

    # Environment names that contain underscores of their own
    _ENV_KEYS = {
        "filter_pattern",
        "fail_fast",
        "output_directory",
        "test_output_directory",
        "test_classpath",
        "clean_after",
    }

    # Environment values kept verbatim, never coerced to numbers or booleans
    _STRING_KEYS = {
        "transformer",
        "filter_pattern",
        "output_directory",
        "test_output_directory",
        "file",
    }

    def __init__(
        self,
        config_file: Optional[str] = None,
        load_environment: bool = True,
        system_config: Optional[str] = SYSTEM_CONFIG_FILE,
    ):
        """Initialize configuration manager.

        Args:
            config_file: User configuration file; it must exist
            load_environment: Read CLASSWEAVER_* environment variables
            system_config: System-wide file, loaded only if it exists

        Raises:
            ConfigError: If a file cannot be read or parsed
        """
        self._config: Dict[ConfigSource, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._files: List[str] = []

        self._config[ConfigSource.COMPILED_DEFAULTS] = copy.deepcopy(self.DEFAULT_CONFIG)

        if system_config and Path(system_config).is_file():
            self.load_file(system_config, ConfigSource.SYSTEM_CONFIG)

        if config_file:
            self.load_file(config_file)

        if load_environment:
            self._load_environment()

    @property
    def files(self) -> List[str]:
        """Resolved paths of the files loaded so far."""
        return list(self._files)

    def load_file(self, file_path: str, source: ConfigSource = ConfigSource.USER_CONFIG) -> None:
        """Load a YAML file into one source level.

        A file without a top-level ``classweaver`` key is taken to be the
        section itself.

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        path = Path(file_path).expanduser().resolve()

        if not path.exists():
            raise ConfigError(f"Config file not found: {file_path}", ErrorCode.NOT_FOUND)

        try:
            with open(path, "r") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parse error in {file_path}: {e}", ErrorCode.INVALID_INPUT)
        except OSError as e:
            raise ConfigError(f"Error loading config {file_path}: {e}", ErrorCode.IO_ERROR)

        if not isinstance(config_data, dict):
            raise ConfigError(f"Invalid config format in {file_path}", ErrorCode.INVALID_INPUT)

        if ConfigKey.SECTION not in config_data:
            config_data = {ConfigKey.SECTION: config_data}

        with self._lock:
            self._config[source] = config_data
            self._files.append(str(path))

    def load_dict(self, config_data: Dict[str, Any], source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Replace one source level with a copy of ``config_data``."""
        with self._lock:
            self._config[source] = copy.deepcopy(config_data)

    def _load_environment(self) -> None:
        """Read ``CLASSWEAVER_KEY`` and ``CLASSWEAVER_GROUP_KEY`` variables.

        Example: CLASSWEAVER_FILTER_PATTERN=Entity, CLASSWEAVER_LOGGING_LEVEL=DEBUG.
        Classpath values are split on the platform path separator.
        """
        env_config: Dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            parts = self._split_env_name(key[len(ENV_PREFIX):].lower())

            current = env_config
            for part in parts[:-1]:
                current = current.setdefault(part, {})

            leaf = parts[-1]
            if leaf in (ConfigKey.CLASSPATH, ConfigKey.TEST_CLASSPATH):
                current[leaf] = [p for p in value.split(os.pathsep) if p]
            elif leaf in self._STRING_KEYS:
                current[leaf] = value
            else:
                current[leaf] = self._parse_env_value(value)

        if env_config:
            with self._lock:
                self._config[ConfigSource.ENVIRONMENT] = {ConfigKey.SECTION: env_config}

    def _split_env_name(self, name: str) -> List[str]:
        if name in self._ENV_KEYS or "_" not in name:
            return [name]
        group, rest = name.split("_", 1)
        return [group, rest]

    def _parse_env_value(self, value: str) -> Any:
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        for convert in (int, float):
            try:
                return convert(value)
            except ValueError:
                pass

        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-separated key, e.g. ``classweaver.staging.policy``.

        Returns:
            Value from the highest source that sets it, or ``default``
        """
        with self._lock:
            for source in sorted(self._config.keys(), key=lambda s: s.value, reverse=True):
                value = self._get_nested(self._config[source], key)
                if value is not None:
                    return value

            return default

    def _get_nested(self, config: Dict[str, Any], key: str) -> Optional[Any]:
        current: Any = config
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
        return current

    def set(self, key: str, value: Any, source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Set a value by dot-separated key in one source level."""
        with self._lock:
            current = self._config.setdefault(source, {})
            parts = key.split(".")
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = value

    def get_all(self) -> Dict[str, Any]:
        """Merge every source, lowest precedence first."""
        with self._lock:
            merged: Dict[str, Any] = {}
            for source in sorted(self._config.keys(), key=lambda s: s.value):
                merged = self._deep_merge(merged, self._config[source])
            return merged

    def section(self) -> Dict[str, Any]:
        """Get the merged ``classweaver`` section."""
        return self.get_all().get(ConfigKey.SECTION, {})

    def validate(self) -> Dict[str, Any]:
        """Check the merged section and return it.

        Value types are checked against ``CONFIG_SCHEMA`` first, then the
        values themselves.

        Raises:
            ConfigError: If a value has the wrong type
            ValidationError: If a value is invalid
        """
        self.validate_schema(self.CONFIG_SCHEMA)
        section = self.section()
        validate_config(section)
        return section

    def validate_schema(self, schema: Dict[str, Any]) -> bool:
        """Validate the merged configuration against a type schema.

        Args:
            schema: Nested dictionary mapping keys to a type, a tuple of
                types, or another schema dictionary

        Returns:
            True if valid

        Raises:
            ConfigError: If a value has the wrong type
        """
        return self._validate_dict(self.get_all(), schema, "")

    def _validate_dict(self, config: Dict[str, Any], schema: Dict[str, Any], prefix: str) -> bool:
        for key, expected_type in schema.items():
            value = config.get(key)
            if value is None:
                continue

            path = f"{prefix}{key}"
            if isinstance(expected_type, dict):
                if not isinstance(value, dict):
                    raise ConfigError(f"Expected dict for {path}, got {type(value).__name__}")
                self._validate_dict(value, expected_type, f"{path}.")
            elif not isinstance(value, expected_type):
                names = expected_type if isinstance(expected_type, tuple) else (expected_type,)
                raise ConfigError(
                    f"Expected {' or '.join(t.__name__ for t in names)} for {path}, "
                    f"got {type(value).__name__}"
                )

        return True

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            elif value is not None or key not in result:
                result[key] = value

        return result

    def clear(self, source: Optional[ConfigSource] = None) -> None:
        """Drop one source level, or every level except the defaults."""
        with self._lock:
            if source is ConfigSource.COMPILED_DEFAULTS:
                return
            if source is not None:
                self._config.pop(source, None)
                return
            for s in [s for s in self._config if s is not ConfigSource.COMPILED_DEFAULTS]:
                del self._config[s]


_global_config: Optional[ConfigManager] = None


def get_config_manager(config_file: Optional[str] = None) -> ConfigManager:
    """Return the global configuration manager, creating it if needed."""
    global _global_config
    if _global_config is None:
        _global_config = ConfigManager(config_file)
    return _global_config


def set_global_config(config: Optional[ConfigManager]) -> None:
    """Install ``config`` as the global manager, or reset it with None."""
    global _global_config
    _global_config = config
