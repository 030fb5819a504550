#!/usr/bin/env python3
"""Writing transformed bytes back.

Two strategies, chosen once per run by WriteBackMode:

IN_PLACE
    Overwrite the class file, then bump its modification time so build
    tools see it as changed. A no-op leaves the file alone entirely.

STAGED
    Write into the staging tree of an archive rebuild. A no-op stages the
    original bytes, since the class must still end up in the new archive.
"""

from typing import Optional

from classweaver.core.constants import WriteBackMode
from classweaver.core.file_ops import touch, write_file
from classweaver.infrastructure.logger import Logger, get_logger
from classweaver.pipeline.targets import TransformationTarget


class WriteBack:
    """Write-back strategy for one run."""

    def __init__(self, mode: WriteBackMode, logger: Optional[Logger] = None):
        self.mode = mode
        self._logger = logger or get_logger()

    def write(self, target: TransformationTarget) -> bool:
        """Write a target out.

        Args:
            target: Target the transformer has been applied to

        Returns:
            True if transformed bytes were written

        Raises:
            FileOperationError: If the bytes cannot be written
        """
        if self.mode is WriteBackMode.IN_PLACE:
            return self._write_in_place(target)
        return self._write_staged(target)

    def _write_in_place(self, target: TransformationTarget) -> bool:
        if target.noop:
            self._logger.debug(f"No changes for {target.class_name}, leaving {target.write_path}")
            return False

        path = target.write_path.absolute()
        self._logger.info(f"writing transformation changes [{path}]")
        write_file(path, target.transformed)

        if not touch(path):
            self._logger.info(f"Unable to manually update class file timestamp [{path}]")
        return True

    def _write_staged(self, target: TransformationTarget) -> bool:
        if target.noop:
            write_file(target.write_path, target.original, create_parents=True)
            return False

        self._logger.info(f"writing transformation changes [{target.write_path.absolute()}]")
        write_file(target.write_path, target.transformed, create_parents=True)
        return True
