"""ClassWeaver Pipeline - enumeration, transformation and write-back.

This module runs a transformer over compiled classes:
- iter_directory_candidates / iter_archive_entries: target discovery
- ByteSourceResolver: candidate to transformation target
- WriteBack: in-place or staged write-back
- ArchiveRebuilder: staging, serialization and swap of an archive
- TransformationPipeline: one run over a directory or an archive
"""

from .archive import ArchivePaths, ArchiveRebuilder, StagedEntry
from .enumerator import ArchiveEntry, iter_archive_entries, iter_directory_candidates
from .runner import RunContext, RunReport, TransformationPipeline, is_archive
from .targets import ByteSourceResolver, Candidate, TransformationTarget
from .writeback import WriteBack

__all__ = [
    # Enumeration
    "ArchiveEntry",
    "Candidate",
    "iter_archive_entries",
    "iter_directory_candidates",
    # Resolution and write-back
    "ByteSourceResolver",
    "TransformationTarget",
    "WriteBack",
    # Archive rebuild
    "ArchivePaths",
    "ArchiveRebuilder",
    "StagedEntry",
    # Runs
    "RunContext",
    "RunReport",
    "TransformationPipeline",
    "is_archive",
]
