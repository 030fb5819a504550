#!/usr/bin/env python3
"""Transactional archive rebuild for jar mode.

Given ``dir/X.jar`` a rebuild uses three siblings:

- ``dir/X.jar.tmp``  staging tree mirroring the archive's entries
- ``dir/copy-X.jar`` the newly serialized archive
- ``dir/old-X.jar``  the original, after the swap

Steps:
1. prepare_staging(): create or reuse the staging tree
2. stage_*(): fill it, entry by entry, in archive order
3. serialize(): write ``copy-X.jar`` from the staging tree
4. finalize(): rename ``X.jar`` to ``old-X.jar``, then ``copy-X.jar`` to ``X.jar``

Nothing touches ``X.jar`` before step 4, so any failure earlier leaves
the original intact. If the second rename of step 4 fails the original
path is empty; that is reported as ArchiveSwapError and not rolled back.
"""

import time
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Set, Tuple, Union

from classweaver.core.constants import ArtifactNames, ClassFiles, ErrorCode, Limits, StagingPolicy
from classweaver.core.errors import ArchiveError, ArchiveSwapError, EnumerationError
from classweaver.core.file_ops import (
    FileOperationError,
    copy_stream,
    create_directory,
    delete_tree,
    rename_file,
)
from classweaver.infrastructure.logger import Logger, get_logger

DateTime = Tuple[int, int, int, int, int, int]

# drwxr-xr-x with the MS-DOS directory flag
_DIRECTORY_ATTR = (0o40755 << 16) | 0x10


@dataclass(frozen=True)
class ArchivePaths:
    """The original artifact and its sibling working paths."""

    original: Path
    staging: Path
    copy: Path
    backup: Path

    @classmethod
    def for_artifact(cls, artifact: Union[str, Path]) -> "ArchivePaths":
        original = Path(artifact)
        parent = original.parent
        name = original.name
        return cls(
            original=original,
            staging=parent / (name + ArtifactNames.STAGING_SUFFIX),
            copy=parent / (ArtifactNames.COPY_PREFIX + name),
            backup=parent / (ArtifactNames.BACKUP_PREFIX + name),
        )


@dataclass
class StagedEntry:
    """An entry placed in the staging tree by the current run."""

    name: str
    is_directory: bool
    date_time: Optional[DateTime] = None
    external_attr: int = 0
    transformed: bool = False


def normalize_entry_name(entry_name: str) -> str:
    """Path of an entry relative to the staging root.

    Empty and ``.`` segments are dropped, so ``res//data.bin``,
    ``/res/data.bin`` and ``./res/data.bin`` all become ``res/data.bin``.
    The entry keeps its original name in the rebuilt archive.
    """
    parts = entry_name.split(ClassFiles.ENTRY_SEPARATOR)
    return ClassFiles.ENTRY_SEPARATOR.join(p for p in parts if p not in ("", "."))


def _zip_date_time(timestamp: float) -> DateTime:
    date_time = time.localtime(timestamp)[:6]
    if date_time[0] < Limits.MIN_ZIP_YEAR:
        return (Limits.MIN_ZIP_YEAR, 1, 1, 0, 0, 0)
    return date_time


class ArchiveRebuilder:
    """Stages, serializes and swaps one archive."""

    def __init__(
        self,
        artifact: Union[str, Path],
        staging_policy: StagingPolicy = StagingPolicy.REUSE,
        logger: Optional[Logger] = None,
    ):
        """Initialize rebuilder.

        Args:
            artifact: Path of the archive to rebuild
            staging_policy: What to do with a leftover staging tree
            logger: Logger instance
        """
        self.paths = ArchivePaths.for_artifact(artifact)
        self.staging_policy = staging_policy
        self._logger = logger or get_logger()
        self._staged: Dict[str, StagedEntry] = {}
        self._staging_root: Optional[Path] = None

    @property
    def staged(self) -> Dict[str, StagedEntry]:
        """Entries staged by this run, keyed by their path in the staging tree."""
        return dict(self._staged)

    def prepare_staging(self) -> Path:
        """Create the staging directory, or reuse a leftover one.

        Returns:
            Staging directory path

        Raises:
            ArchiveError: If the staging directory cannot be created
        """
        staging = self.paths.staging
        if staging.exists():
            if self.staging_policy is StagingPolicy.CLEAN:
                self._logger.warning(f"Removing leftover staging directory: {staging}")
                try:
                    delete_tree(staging)
                except FileOperationError as e:
                    raise ArchiveError(f"Cannot delete staging directory: {staging}: {e}") from e
            else:
                self._logger.warning(
                    f"Staging directory already exists, potential old content present: {staging}"
                )

        if staging.exists() and not staging.is_dir():
            raise ArchiveError(
                f"Staging path exists and is not a directory: {staging}", ErrorCode.CONFLICT
            )

        try:
            create_directory(staging)
        except FileOperationError as e:
            raise ArchiveError(f"Cannot create staging directory: {staging}: {e}") from e

        self._staging_root = staging.resolve()
        return staging

    def staging_path(self, entry_name: str) -> Path:
        """Map an entry name to its path in the staging tree.

        Raises:
            EnumerationError: If the entry name escapes the staging tree
        """
        if self._staging_root is None:
            raise ArchiveError("Staging directory not prepared", ErrorCode.INTERNAL_ERROR)

        relative = normalize_entry_name(entry_name)
        if not relative:
            raise EnumerationError(f"Archive entry has no usable name: {entry_name!r}", entry_name)
        target = self._staging_root.joinpath(*relative.split(ClassFiles.ENTRY_SEPARATOR))
        resolved = target.resolve()
        if resolved != self._staging_root and self._staging_root not in resolved.parents:
            raise EnumerationError(f"Archive entry escapes staging directory: {entry_name}", entry_name)
        return target

    def stage_directory(self, info: zipfile.ZipInfo) -> Path:
        """Recreate a directory entry as an empty directory."""
        path = self.staging_path(info.filename)
        create_directory(path)
        self._record(info, is_directory=True)
        return path

    def stage_copy(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> Path:
        """Copy a file entry verbatim into the staging tree.

        Raises:
            EnumerationError: If the entry cannot be read
        """
        path = self.staging_path(info.filename)
        create_directory(path.parent)
        try:
            with archive.open(info, "r") as source, open(path, "wb") as target:
                copy_stream(source, target)
        except (OSError, zipfile.BadZipFile) as e:
            raise EnumerationError(f"Cannot copy archive entry {info.filename}: {e}", info.filename) from e
        self._record(info, is_directory=False)
        return path

    def record_class(self, info: zipfile.ZipInfo, transformed: bool) -> None:
        """Record a class entry written to staging by write-back.

        Transformed classes take the staging file's timestamp; untouched
        ones keep the original entry's.
        """
        self._record(info, is_directory=False, transformed=transformed)

    def _record(self, info: zipfile.ZipInfo, is_directory: bool, transformed: bool = False) -> None:
        key = normalize_entry_name(info.filename)
        if is_directory:
            key += ClassFiles.ENTRY_SEPARATOR

        previous = self._staged.get(key)
        if previous is not None:
            raise EnumerationError(
                f"Archive entries {previous.name!r} and {info.filename!r} "
                f"map to the same staging path: {key}",
                info.filename,
            )

        self._staged[key] = StagedEntry(
            name=info.filename,
            is_directory=is_directory,
            date_time=None if transformed else info.date_time,
            external_attr=info.external_attr,
            transformed=transformed,
        )

    def serialize(self, manifest: Optional[Tuple[zipfile.ZipInfo, bytes]] = None) -> Path:
        """Write the new archive at the copy path.

        The manifest is written first with its original bytes. The staging
        tree is then walked in sorted order; only entries staged by this
        run are written.

        Args:
            manifest: Original manifest entry and its content, if any

        Returns:
            Path of the new archive

        Raises:
            ArchiveError: If the archive cannot be written
        """
        if self._staging_root is None:
            raise ArchiveError("Staging directory not prepared", ErrorCode.INTERNAL_ERROR)

        copy = self.paths.copy
        if copy.exists():
            self._logger.debug(f"Removing leftover copy: {copy}")
            try:
                delete_tree(copy)
            except FileOperationError as e:
                raise ArchiveError(f"Cannot delete copy jar: {copy}: {e}") from e

        try:
            with zipfile.ZipFile(copy, "w", zipfile.ZIP_DEFLATED) as archive:
                if manifest is not None:
                    info, content = manifest
                    manifest_info = zipfile.ZipInfo(info.filename, info.date_time)
                    manifest_info.compress_type = zipfile.ZIP_DEFLATED
                    manifest_info.external_attr = info.external_attr
                    archive.writestr(manifest_info, content)
                written: Set[str] = set()
                self._write_tree(archive, self._staging_root, "", written)
                missing = sorted(self._staged[key].name for key in set(self._staged) - written)
                if missing:
                    raise ArchiveError(
                        f"Staged entries missing from {self.paths.staging}: {', '.join(missing)}"
                    )
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            self._discard_copy()
            raise ArchiveError(f"Cannot write archive {copy}: {e}") from e
        except Exception:
            self._discard_copy()
            raise

        return copy

    def _write_tree(
        self, archive: zipfile.ZipFile, directory: Path, prefix: str, written: Set[str]
    ) -> None:
        for child in sorted(directory.iterdir(), key=lambda p: p.name):
            if child.is_dir():
                name = prefix + child.name + ClassFiles.ENTRY_SEPARATOR
                entry = self._staged.get(name)
                if entry is not None:
                    self._write_directory(archive, entry)
                    written.add(name)
                self._write_tree(archive, child, name, written)
            elif child.is_file():
                name = prefix + child.name
                entry = self._staged.get(name)
                if entry is None:
                    self._logger.debug(f"Skipping stale staging file: {child}")
                    continue
                self._write_file(archive, entry, child)
                written.add(name)

    def _write_directory(self, archive: zipfile.ZipFile, entry: StagedEntry) -> None:
        info = zipfile.ZipInfo(entry.name, entry.date_time or _zip_date_time(time.time()))
        info.compress_type = zipfile.ZIP_STORED
        info.file_size = 0
        info.CRC = 0
        info.external_attr = entry.external_attr or _DIRECTORY_ATTR
        archive.writestr(info, b"")

    def _write_file(self, archive: zipfile.ZipFile, entry: StagedEntry, path: Path) -> None:
        stat = path.stat()
        info = zipfile.ZipInfo(entry.name, entry.date_time or _zip_date_time(stat.st_mtime))
        info.compress_type = zipfile.ZIP_DEFLATED
        info.external_attr = entry.external_attr or ((stat.st_mode & 0xFFFF) << 16)
        info.file_size = stat.st_size
        with open(path, "rb") as source, archive.open(
            info, "w", force_zip64=stat.st_size > zipfile.ZIP64_LIMIT
        ) as target:
            copy_stream(source, target)

    def _discard_copy(self) -> None:
        try:
            delete_tree(self.paths.copy)
        except FileOperationError as e:
            self._logger.warning(f"Cannot remove partial copy {self.paths.copy}: {e}")

    def finalize(self) -> Path:
        """Swap the new archive into place.

        Returns:
            Path of the backup of the original

        Raises:
            ArchiveError: The original could not be moved; it is untouched
            ArchiveSwapError: The original was moved but the copy was not
        """
        paths = self.paths

        if paths.backup.exists():
            self._logger.debug(f"Removing previous backup: {paths.backup}")
            try:
                delete_tree(paths.backup)
            except FileOperationError as e:
                raise ArchiveError(f"Cannot delete old: {paths.backup}: {e}") from e

        try:
            rename_file(paths.original, paths.backup)
        except FileOperationError as e:
            raise ArchiveError(
                f"Cannot rename original: {paths.original} to old: {paths.backup}: {e}"
            ) from e

        try:
            rename_file(paths.copy, paths.original)
        except FileOperationError as e:
            self._logger.error(
                "Archive swap failed, original path is empty",
                original=paths.original,
                backup=paths.backup,
                copy=paths.copy,
            )
            raise ArchiveSwapError(
                f"Cannot rename copy: {paths.copy} to actual original: {paths.original}: {e}; "
                f"the original archive is at {paths.backup}",
                original=str(paths.original),
                backup=str(paths.backup),
                copy=str(paths.copy),
            ) from e

        return paths.backup

    def cleanup_staging(self) -> None:
        """Delete the staging directory."""
        try:
            delete_tree(self.paths.staging)
        except FileOperationError as e:
            raise ArchiveError(f"Cannot delete staging directory: {self.paths.staging}: {e}") from e
        self._staging_root = None
