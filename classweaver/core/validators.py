"""
ClassWeaver Core: Input Validators.

This module provides validation functions for configuration, paths,
filter patterns and transformer names. Every validator raises
ValidationError on failure, so configuration mistakes surface before
any class is processed.
"""
import re
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Pattern

from classweaver.core.constants import ConfigKey, ErrorCode, Limits, Scope, StagingPolicy
from classweaver.core.errors import ClassWeaverError


class ValidationError(ClassWeaverError):
    """Base exception for validation errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message, error_code)


_TRANSFORMER_NAME = re.compile(r"^[A-Za-z_][\w\-]*(?:[.:][A-Za-z_]\w*)*$")


def validate_config(config: Dict[str, Any]) -> bool:
    """Validate the merged ``classweaver`` configuration section.

    Args:
        config: Configuration dictionary

    Returns:
        True if valid

    Raises:
        ValidationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ValidationError("Configuration must be a dictionary")

    transformer = config.get(ConfigKey.TRANSFORMER)
    if transformer is not None:
        validate_transformer_name(transformer)

    pattern = config.get(ConfigKey.FILTER_PATTERN)
    if pattern is not None:
        validate_regex(pattern)

    fail_fast = config.get(ConfigKey.FAIL_FAST)
    if fail_fast is not None and not isinstance(fail_fast, bool):
        raise ValidationError(f"fail_fast must be boolean: {fail_fast}")

    scope = config.get(ConfigKey.SCOPE)
    if scope is not None:
        valid = [s.value for s in Scope]
        if scope not in valid:
            raise ValidationError(f"Invalid scope: {scope}. Must be one of: {valid}")

    for key in (ConfigKey.OUTPUT_DIRECTORY, ConfigKey.TEST_OUTPUT_DIRECTORY):
        if config.get(key) is not None:
            validate_path(config[key])

    for key in (ConfigKey.CLASSPATH, ConfigKey.TEST_CLASSPATH):
        if config.get(key) is not None:
            try:
                validate_classpath(config[key])
            except ValidationError as e:
                raise ValidationError(f"Invalid {key}: {e}")

    if ConfigKey.STAGING in config:
        validate_staging_config(config[ConfigKey.STAGING])

    return True


def validate_staging_config(staging: Dict[str, Any]) -> bool:
    """Validate the ``staging`` sub-section."""
    if not isinstance(staging, dict):
        raise ValidationError("Staging configuration must be a dictionary")

    policy = staging.get(ConfigKey.STAGING_POLICY)
    if policy is not None:
        valid = [p.value for p in StagingPolicy]
        if policy not in valid:
            raise ValidationError(f"Invalid staging policy: {policy}. Must be one of: {valid}")

    clean_after = staging.get(ConfigKey.STAGING_CLEAN_AFTER)
    if clean_after is not None and not isinstance(clean_after, bool):
        raise ValidationError(f"staging.clean_after must be boolean: {clean_after}")

    return True


def validate_path(path: str) -> bool:
    """Validate that a path string is usable.

    Args:
        path: Path to validate

    Returns:
        True if valid

    Raises:
        ValidationError: If path is invalid
    """
    if not path:
        raise ValidationError("Path cannot be empty")

    if not isinstance(path, (str, Path)):
        raise ValidationError(f"Path must be string, got {type(path)}")

    path = str(path)

    if len(path) > Limits.MAX_PATH_LENGTH:
        raise ValidationError(f"Path exceeds maximum length ({Limits.MAX_PATH_LENGTH})")

    if "\0" in path:
        raise ValidationError("Path contains null bytes")

    if any(ord(c) < 32 for c in path):
        raise ValidationError("Path contains control characters")

    return True


def validate_classpath(elements: List[str]) -> bool:
    """Validate a list of classpath elements.

    Elements are only checked for shape here; missing elements are
    reported when the classpath is opened.
    """
    if not isinstance(elements, (list, tuple)):
        raise ValidationError("Classpath must be a list")

    for i, element in enumerate(elements):
        try:
            validate_path(element)
        except ValidationError as e:
            raise ValidationError(f"element {i}: {e}")

    return True


def validate_regex(pattern: str) -> Pattern[str]:
    """Compile a filter regex.

    Args:
        pattern: Regular expression

    Returns:
        Compiled pattern

    Raises:
        ValidationError: If the pattern is not a valid regex
    """
    if not isinstance(pattern, str):
        raise ValidationError(f"Pattern must be string, got {type(pattern)}")

    if len(pattern) > Limits.MAX_PATTERN_LENGTH:
        raise ValidationError(f"Pattern exceeds maximum length ({Limits.MAX_PATTERN_LENGTH})")

    try:
        return re.compile(pattern)
    except re.error as e:
        raise ValidationError(f"Invalid regex pattern '{pattern}': {e}")


def validate_transformer_name(name: str) -> bool:
    """Validate a transformer name.

    Accepts registered short names (``identity``), dotted import paths
    (``pkg.mod.Cls``) and colon paths (``pkg.mod:Cls``).
    """
    if not name:
        raise ValidationError("Missing transformer class name!")

    if not isinstance(name, str):
        raise ValidationError(f"Transformer name must be string, got {type(name)}")

    if len(name) > Limits.MAX_TRANSFORMER_NAME_LENGTH:
        raise ValidationError("Transformer name exceeds maximum length")

    if not _TRANSFORMER_NAME.match(name):
        raise ValidationError(f"Invalid transformer name: {name}")

    return True


def validate_archive(path: str) -> bool:
    """Validate that a path names an existing, readable zip archive.

    Raises:
        ValidationError: NOT_FOUND if missing, INVALID_INPUT if not a zip
    """
    validate_path(path)
    archive = Path(path)

    if not archive.exists():
        raise ValidationError(f"No such jar file: {path}", ErrorCode.NOT_FOUND)

    if not archive.is_file():
        raise ValidationError(f"Jar path is not a file: {path}")

    if not zipfile.is_zipfile(archive):
        raise ValidationError(f"Not a jar/zip archive: {path}")

    return True


def validate_directory(path: str) -> bool:
    """Validate that a path names an existing directory."""
    validate_path(path)
    directory = Path(path)

    if not directory.exists():
        raise ValidationError(f"No such directory: {path}", ErrorCode.NOT_FOUND)

    if not directory.is_dir():
        raise ValidationError(f"Not a directory: {path}")

    return True
