"""ClassWeaver Classpath - class name to bytes resolution.

- ClassPathContext: ordered roots, closed at the end of each run
- DirectoryRoot / ArchiveRoot: the two kinds of classpath element
- ClassSource / ClassLocation: resolution results
"""

from .context import (
    ArchiveRoot,
    ClassLocation,
    ClassPathContext,
    ClassPathRoot,
    ClassSource,
    DirectoryRoot,
    class_name_to_resource,
    resource_to_class_name,
)

__all__ = [
    "ArchiveRoot",
    "ClassLocation",
    "ClassPathContext",
    "ClassPathRoot",
    "ClassSource",
    "DirectoryRoot",
    "class_name_to_resource",
    "resource_to_class_name",
]
