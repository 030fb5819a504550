"""
ClassWeaver Core: Exception hierarchy.

Every error raised by ClassWeaver carries an ErrorCode so the CLI can
report a consistent exit status.
"""
from typing import List, Optional, Tuple

from classweaver.core.constants import ErrorCode


class ClassWeaverError(Exception):
    """Base exception for ClassWeaver errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR):
        """Initialize ClassWeaverError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ClassNotFoundError(ClassWeaverError):
    """A class could not be located on the classpath."""

    def __init__(self, class_name: str, message: Optional[str] = None):
        self.class_name = class_name
        super().__init__(
            message or f"No such class name: {class_name}, wrong classpath?",
            ErrorCode.NOT_FOUND,
        )


class EnumerationError(ClassWeaverError):
    """A directory or archive could not be listed or read."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message, ErrorCode.IO_ERROR)


class ArchiveError(ClassWeaverError):
    """Archive rebuild or finalize failed with the original intact."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.IO_ERROR):
        super().__init__(message, error_code)


class ArchiveSwapError(ArchiveError):
    """The original was moved away but the rebuilt archive was not moved in.

    Nothing is rolled back: the backup and the rebuilt copy are left on
    disk and both paths are reported.
    """

    def __init__(self, message: str, original: str, backup: str, copy: str):
        self.original = original
        self.backup = backup
        self.copy = copy
        super().__init__(message, ErrorCode.UNRECOVERABLE)


class TransformationFailedError(ClassWeaverError):
    """One or more transformation targets failed in a keep-going run."""

    def __init__(self, failures: List[Tuple[str, Exception]]):
        self.failures = failures
        names = ", ".join(name for name, _ in failures)
        super().__init__(
            f"{len(failures)} class(es) failed to transform: {names}",
            ErrorCode.TRANSFORM_FAILED,
        )
