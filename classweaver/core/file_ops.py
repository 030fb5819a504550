"""
ClassWeaver Core: File operations.

Thin wrappers around the os/shutil calls the pipeline makes, translating
OSError into FileOperationError with an ErrorCode.
"""
import errno
import os
import shutil
import time
from pathlib import Path
from typing import BinaryIO, Optional, Union

from classweaver.core.constants import ErrorCode, Limits
from classweaver.core.errors import ClassWeaverError

PathLike = Union[str, Path]


class FileOperationError(ClassWeaverError):
    """File operation failed."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR):
        super().__init__(message, error_code)


def _error_code_for(exc: OSError) -> ErrorCode:
    if exc.errno == errno.ENOENT:
        return ErrorCode.NOT_FOUND
    if exc.errno in (errno.EACCES, errno.EPERM):
        return ErrorCode.PERMISSION_DENIED
    if exc.errno == errno.EEXIST:
        return ErrorCode.CONFLICT
    return ErrorCode.IO_ERROR


def read_file(path: PathLike) -> bytes:
    """Read a whole file as bytes.

    Args:
        path: File to read

    Returns:
        File content

    Raises:
        FileOperationError: If the file cannot be read
    """
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise FileOperationError(f"Cannot read file {path}: {e}", _error_code_for(e)) from e


def write_file(path: PathLike, content: bytes, create_parents: bool = False) -> None:
    """Write bytes to a file, replacing its content.

    Args:
        path: Destination file
        content: Bytes to write
        create_parents: Create missing parent directories first

    Raises:
        FileOperationError: If the file cannot be written
    """
    if create_parents:
        create_directory(Path(path).parent)
    try:
        with open(path, "wb") as f:
            f.write(content)
            f.flush()
    except OSError as e:
        raise FileOperationError(f"Cannot write file {path}: {e}", _error_code_for(e)) from e


def touch(path: PathLike, timestamp: Optional[float] = None) -> bool:
    """Set a file's access and modification time.

    Args:
        path: File to update
        timestamp: Epoch seconds, or None for now

    Returns:
        True if the timestamp was updated
    """
    when = time.time() if timestamp is None else timestamp
    try:
        os.utime(path, (when, when))
        return True
    except OSError:
        return False


def copy_stream(source: BinaryIO, target: BinaryIO, buffer_size: int = Limits.COPY_BUFFER_SIZE) -> int:
    """Copy one binary stream into another.

    Returns:
        Number of bytes copied
    """
    copied = 0
    while True:
        chunk = source.read(buffer_size)
        if not chunk:
            break
        target.write(chunk)
        copied += len(chunk)
    return copied


def create_directory(path: PathLike) -> None:
    """Create a directory and its parents if missing."""
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise FileOperationError(
            f"Cannot create directory {path}: {e}", _error_code_for(e)
        ) from e


def delete_tree(path: PathLike) -> None:
    """Delete a file or directory tree; a missing path is not an error."""
    target = Path(path)
    if not target.exists() and not target.is_symlink():
        return
    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink()
    except OSError as e:
        raise FileOperationError(f"Cannot delete {path}: {e}", _error_code_for(e)) from e


def rename_file(source: PathLike, target: PathLike) -> None:
    """Rename a file within one filesystem.

    Raises:
        FileOperationError: If the rename fails or the target exists
    """
    if Path(target).exists():
        raise FileOperationError(
            f"Cannot rename {source} to {target}: target exists", ErrorCode.CONFLICT
        )
    try:
        os.rename(source, target)
    except OSError as e:
        raise FileOperationError(
            f"Cannot rename {source} to {target}: {e}", _error_code_for(e)
        ) from e
