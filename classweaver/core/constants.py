"""
ClassWeaver Core: Constants and Type Definitions

This module provides system-wide constants, error codes, and type definitions
shared by the classpath, pipeline and transform layers.
"""
from enum import Enum, IntEnum
from typing import NewType, TypeAlias

# Version information
CLASSWEAVER_VERSION = "1.0.0"
CLASSWEAVER_API_VERSION = 1


class ErrorCode(IntEnum):
    """Standardized error codes for ClassWeaver operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad path, invalid configuration
    NOT_FOUND = 2  # File, archive or class doesn't exist
    PERMISSION_DENIED = 3  # Insufficient permissions
    CONFLICT = 4  # Stale artifact in the way
    DEPENDENCY_ERROR = 5  # Transformer cannot be resolved
    INTERNAL_ERROR = 6  # Bug in ClassWeaver
    IO_ERROR = 7  # Listing, reading or writing failed
    TRANSFORM_FAILED = 8  # Transformer plug-in raised
    UNRECOVERABLE = 9  # Archive swap left half done


# Type aliases for clarity
ClassName: TypeAlias = str
EntryName: TypeAlias = str
ClassBytes: TypeAlias = bytes
FilterPattern: TypeAlias = str

# NewTypes for type safety
ArtifactPath = NewType("ArtifactPath", str)
TransformerName = NewType("TransformerName", str)


class ClassFiles:
    """Naming conventions for class files and jar archives."""

    CLASS_SUFFIX = ".class"
    MANIFEST_NAME = "META-INF/MANIFEST.MF"
    PACKAGE_SEPARATOR = "."
    ENTRY_SEPARATOR = "/"
    ARCHIVE_SUFFIXES = (".jar", ".zip", ".war", ".ear")


class ArtifactNames:
    """Sibling artifacts created next to an archive during a jar run."""

    STAGING_SUFFIX = ".tmp"  # X.jar -> X.jar.tmp
    COPY_PREFIX = "copy-"  # X.jar -> copy-X.jar
    BACKUP_PREFIX = "old-"  # X.jar -> old-X.jar


class Limits:
    """Resource limits and default values."""

    COPY_BUFFER_SIZE = 8192
    MAX_PATH_LENGTH = 4096
    MAX_PATTERN_LENGTH = 4096
    MAX_TRANSFORMER_NAME_LENGTH = 1024

    # Zip timestamps cannot predate the DOS epoch
    MIN_ZIP_YEAR = 1980

    LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10MB
    LOG_FILE_BACKUPS = 5


class WriteBackMode(Enum):
    """Where replacement bytes are written."""

    IN_PLACE = "in_place"  # Overwrite the class file (directory mode)
    STAGED = "staged"  # Write into the staging tree (jar mode)


class StagingPolicy(Enum):
    """What to do with a staging directory left over by an earlier run."""

    REUSE = "reuse"  # Warn and reuse
    CLEAN = "clean"  # Delete before staging


class Scope(Enum):
    """Which compiled output a build-triggered run targets."""

    MAIN = "main"
    TEST = "test"


class ConfigKey:
    """Configuration key constants."""

    # Top-level section
    SECTION = "classweaver"

    # Transformation
    TRANSFORMER = "transformer"
    FILTER_PATTERN = "filter_pattern"
    FAIL_FAST = "fail_fast"

    # Build output
    SCOPE = "scope"
    OUTPUT_DIRECTORY = "output_directory"
    TEST_OUTPUT_DIRECTORY = "test_output_directory"
    CLASSPATH = "classpath"
    TEST_CLASSPATH = "test_classpath"

    # Staging
    STAGING = "staging"
    STAGING_POLICY = "policy"
    STAGING_CLEAN_AFTER = "clean_after"

    # Logging
    LOGGING = "logging"
    LOG_LEVEL = "level"
    LOG_FILE = "file"


# Default configuration values
DEFAULT_CONFIG = {
    ConfigKey.TRANSFORMER: None,
    ConfigKey.FILTER_PATTERN: None,
    ConfigKey.FAIL_FAST: True,
    ConfigKey.SCOPE: Scope.MAIN.value,
    ConfigKey.OUTPUT_DIRECTORY: None,
    ConfigKey.TEST_OUTPUT_DIRECTORY: None,
    ConfigKey.CLASSPATH: [],
    ConfigKey.TEST_CLASSPATH: [],
    ConfigKey.STAGING: {
        ConfigKey.STAGING_POLICY: StagingPolicy.REUSE.value,
        ConfigKey.STAGING_CLEAN_AFTER: False,
    },
    ConfigKey.LOGGING: {
        ConfigKey.LOG_LEVEL: "INFO",
        ConfigKey.LOG_FILE: None,
    },
}
