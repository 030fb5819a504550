#!/usr/bin/env python3
"""Isolated classpath used to resolve class names to bytes.

A ClassPathContext is an ordered list of byte-source roots built from
classpath elements:
- DirectoryRoot: a directory of loose class files
- ArchiveRoot: a jar/zip archive, opened lazily and held open until close()

Lookups walk the roots in order and return the first hit, the same
first-wins rule a class loader applies. The context is the "loader"
handed to transformers, so a transformer can inspect other classes.

A context holds open archive handles. It must be closed when the run
ends, which matters most in jar mode: the archive being transformed is
itself a root and has to be released before it can be renamed.

Example:
    >>> with ClassPathContext(["build/classes", "lib/dep.jar"]) as cp:
    ...     source = cp.resolve("com.example.Foo")
    ...     source.location.path
"""

import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union

from classweaver.core.constants import ClassFiles, ErrorCode
from classweaver.core.errors import ClassNotFoundError, ClassWeaverError
from classweaver.core.file_ops import read_file
from classweaver.infrastructure.logger import get_logger


def class_name_to_resource(class_name: str) -> str:
    """Map ``com.example.Foo`` to ``com/example/Foo.class``."""
    return (
        class_name.replace(ClassFiles.PACKAGE_SEPARATOR, ClassFiles.ENTRY_SEPARATOR)
        + ClassFiles.CLASS_SUFFIX
    )


def resource_to_class_name(name: str) -> str:
    """Map ``com/example/Foo.class`` (or ``com.example.Foo.class``) to ``com.example.Foo``."""
    stem = name[: -len(ClassFiles.CLASS_SUFFIX)] if name.endswith(ClassFiles.CLASS_SUFFIX) else name
    return stem.replace(ClassFiles.ENTRY_SEPARATOR, ClassFiles.PACKAGE_SEPARATOR)


@dataclass(frozen=True)
class ClassLocation:
    """Physical location of a class's bytes.

    ``entry`` is set when the class lives inside an archive; ``path`` is
    then the archive itself.
    """

    path: str
    entry: Optional[str] = None

    @property
    def in_archive(self) -> bool:
        return self.entry is not None

    def __str__(self) -> str:
        if self.entry is not None:
            return f"{self.path}!/{self.entry}"
        return self.path


@dataclass(frozen=True)
class ClassSource:
    """Resolved class: its name, raw bytes and where they came from."""

    class_name: str
    data: bytes
    location: ClassLocation


class ClassPathRoot(ABC):
    """One element of a classpath."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @abstractmethod
    def find(self, resource: str) -> Optional[ClassLocation]:
        """Locate a resource such as ``pkg/Foo.class``, or return None."""

    @abstractmethod
    def read(self, location: ClassLocation) -> bytes:
        """Read the bytes at a location returned by find()."""

    def close(self) -> None:
        """Release any handle held by this root."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.path}>"


class DirectoryRoot(ClassPathRoot):
    """Directory of loose class files."""

    def find(self, resource: str) -> Optional[ClassLocation]:
        candidate = self.path.joinpath(*resource.split(ClassFiles.ENTRY_SEPARATOR))
        if candidate.is_file():
            return ClassLocation(path=str(candidate))
        return None

    def read(self, location: ClassLocation) -> bytes:
        return read_file(location.path)


class ArchiveRoot(ClassPathRoot):
    """Jar or zip archive, opened on first lookup."""

    def __init__(self, path: Union[str, Path]):
        super().__init__(path)
        self._zip: Optional[zipfile.ZipFile] = None

    @property
    def is_open(self) -> bool:
        return self._zip is not None

    def _archive(self) -> zipfile.ZipFile:
        if self._zip is None:
            try:
                self._zip = zipfile.ZipFile(self.path, "r")
            except (OSError, zipfile.BadZipFile) as e:
                raise ClassWeaverError(
                    f"Cannot open classpath archive {self.path}: {e}", ErrorCode.IO_ERROR
                ) from e
        return self._zip

    def find(self, resource: str) -> Optional[ClassLocation]:
        try:
            self._archive().getinfo(resource)
        except KeyError:
            return None
        return ClassLocation(path=str(self.path), entry=resource)

    def read(self, location: ClassLocation) -> bytes:
        try:
            return self._archive().read(location.entry)
        except (OSError, zipfile.BadZipFile, KeyError) as e:
            raise ClassWeaverError(
                f"Cannot read {location}: {e}", ErrorCode.IO_ERROR
            ) from e

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None


class ClassPathContext:
    """Ordered set of roots used to resolve class names for one run.

    Implements the loader interface handed to transformers:
    ``find(name)``, ``load_bytes(name)``, ``resolve(name)`` and ``name in ctx``.
    """

    def __init__(self, elements: Iterable[Union[str, Path]] = ()):
        """Initialize classpath context.

        Missing elements and plain files that are not archives are skipped
        with a warning.

        Args:
            elements: Directories and archives, in lookup order
        """
        self._logger = get_logger()
        self._closed = False
        self.roots: List[ClassPathRoot] = []
        for element in elements:
            root = self._create_root(Path(element))
            if root is not None:
                self.roots.append(root)

    def _create_root(self, path: Path) -> Optional[ClassPathRoot]:
        if path.is_dir():
            self._logger.debug(f"Adding classpath directory: {path}")
            return DirectoryRoot(path)
        if path.is_file():
            if zipfile.is_zipfile(path):
                self._logger.debug(f"Adding classpath archive: {path}")
                return ArchiveRoot(path)
            self._logger.warning(f"Ignoring classpath element that is not an archive: {path}")
            return None
        self._logger.warning(f"Ignoring missing classpath element: {path}")
        return None

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ClassWeaverError("Classpath context is closed", ErrorCode.INTERNAL_ERROR)

    def find(self, class_name: str) -> Optional[ClassLocation]:
        """Locate a class without reading it.

        Args:
            class_name: Fully qualified class name

        Returns:
            Location of the first root holding the class, or None
        """
        self._check_open()
        resource = class_name_to_resource(class_name)
        for root in self.roots:
            location = root.find(resource)
            if location is not None:
                return location
        return None

    def resolve(self, class_name: str) -> ClassSource:
        """Resolve a class name to its bytes and location.

        Raises:
            ClassNotFoundError: If no root holds the class
        """
        self._check_open()
        resource = class_name_to_resource(class_name)
        for root in self.roots:
            location = root.find(resource)
            if location is not None:
                return ClassSource(class_name, root.read(location), location)
        raise ClassNotFoundError(class_name)

    def load_bytes(self, class_name: str) -> bytes:
        """Return the raw bytes of a class.

        Raises:
            ClassNotFoundError: If no root holds the class
        """
        return self.resolve(class_name).data

    def __contains__(self, class_name: object) -> bool:
        return isinstance(class_name, str) and self.find(class_name) is not None

    def close(self) -> None:
        """Release every archive handle. Safe to call more than once."""
        for root in self.roots:
            root.close()
        self._closed = True

    def __enter__(self) -> "ClassPathContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<ClassPathContext roots={len(self.roots)} {state}>"
