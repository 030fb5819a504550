#!/usr/bin/env python3
"""Discovery of class files in directory trees and archives.

Directory mode walks a tree depth-first, visiting entries sorted by name,
and yields a Candidate for every regular file whose dotted relative path
ends with ``.class``. A directory that cannot be listed is an error, not
an empty directory.

Archive mode yields every entry of a zip file once, in the archive's own
order, classified as manifest, directory or file.
"""

import os
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Union

from classweaver.core.constants import ClassFiles
from classweaver.core.errors import EnumerationError
from classweaver.pipeline.targets import Candidate


def iter_directory_candidates(root: Union[str, Path]) -> Iterator[Candidate]:
    """Yield class file candidates under ``root``.

    Args:
        root: Output directory to walk

    Yields:
        One Candidate per ``.class`` file

    Raises:
        EnumerationError: If the root or a sub-directory cannot be listed
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise EnumerationError(f"Not a directory: {root_path}", str(root_path))
    yield from _walk(root_path, [])


def _walk(current: Path, parts: List[str]) -> Iterator[Candidate]:
    try:
        with os.scandir(current) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise EnumerationError(f"Cannot list directory, I/O error: {current}: {e}", str(current)) from e

    for entry in entries:
        names = parts + [entry.name]
        if entry.is_dir():
            yield from _walk(Path(entry.path), names)
        elif entry.is_file():
            dotted = ClassFiles.PACKAGE_SEPARATOR.join(names)
            if dotted.endswith(ClassFiles.CLASS_SUFFIX):
                yield Candidate(
                    relative_path=ClassFiles.ENTRY_SEPARATOR.join(names),
                    class_name=dotted[: -len(ClassFiles.CLASS_SUFFIX)],
                    file_path=Path(entry.path),
                )


@dataclass(frozen=True)
class ArchiveEntry:
    """One entry of an archive being rebuilt."""

    info: zipfile.ZipInfo

    @property
    def name(self) -> str:
        return self.info.filename

    @property
    def is_manifest(self) -> bool:
        return self.name.upper() == ClassFiles.MANIFEST_NAME

    @property
    def is_directory(self) -> bool:
        return self.info.is_dir()

    @property
    def is_class(self) -> bool:
        return not self.is_directory and self.name.endswith(ClassFiles.CLASS_SUFFIX)


def iter_archive_entries(archive: zipfile.ZipFile) -> Iterator[ArchiveEntry]:
    """Yield every entry of an open archive in native order.

    Raises:
        EnumerationError: If the central directory cannot be read
    """
    try:
        infos = archive.infolist()
    except (OSError, zipfile.BadZipFile) as e:
        raise EnumerationError(f"Cannot list archive {archive.filename}: {e}", archive.filename) from e

    for info in infos:
        yield ArchiveEntry(info)
