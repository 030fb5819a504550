#!/usr/bin/env python3
"""Candidates, transformation targets and byte source resolution.

A Candidate is what enumeration discovers: a class file's relative path,
its qualified class name and the file path it will be written to.

A TransformationTarget is a candidate resolved to the original bytes and
their physical location. It is mutated once with the transformer's output,
then consumed by write-back.

ByteSourceResolver turns one into the other:
- in place: the bytes come from the file found during enumeration
- staged: the bytes come from the classpath context, the write path is
  the file in the staging tree
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from classweaver.classpath.context import ClassLocation, ClassPathContext
from classweaver.core.constants import ErrorCode, WriteBackMode
from classweaver.core.errors import ClassWeaverError
from classweaver.core.file_ops import read_file
from classweaver.transforms.base import TransformResult


@dataclass(frozen=True)
class Candidate:
    """A discovered class file that may be eligible for transformation."""

    relative_path: str
    class_name: str
    file_path: Path


@dataclass
class TransformationTarget:
    """A candidate resolved to concrete bytes and a write location."""

    class_name: str
    source: ClassLocation
    write_path: Path
    original: bytes
    transformed: Optional[bytes] = None
    applied: bool = False

    def apply(self, result: TransformResult) -> None:
        """Record the transformer's output. A target is transformed once."""
        if self.applied:
            raise ClassWeaverError(
                f"Transformation target {self.class_name} already transformed",
                ErrorCode.INTERNAL_ERROR,
            )
        self.transformed = None if result.noop else result.content
        self.applied = True

    @property
    def noop(self) -> bool:
        """True when there is nothing to write back."""
        return not self.transformed


class ByteSourceResolver:
    """Resolves candidates to transformation targets for one run."""

    def __init__(self, mode: WriteBackMode, classpath: Optional[ClassPathContext] = None):
        """Initialize resolver.

        Args:
            mode: Write-back mode selected for the run
            classpath: Required for staged mode
        """
        if mode is WriteBackMode.STAGED and classpath is None:
            raise ClassWeaverError(
                "Staged resolution needs a classpath context", ErrorCode.INTERNAL_ERROR
            )
        self.mode = mode
        self.classpath = classpath

    def resolve(self, candidate: Candidate) -> TransformationTarget:
        """Resolve a candidate.

        Raises:
            ClassNotFoundError: Staged mode and the classpath lacks the class
            FileOperationError: In-place mode and the file cannot be read
        """
        if self.mode is WriteBackMode.IN_PLACE:
            return TransformationTarget(
                class_name=candidate.class_name,
                source=ClassLocation(path=str(candidate.file_path)),
                write_path=candidate.file_path,
                original=read_file(candidate.file_path),
            )

        source = self.classpath.resolve(candidate.class_name)
        return TransformationTarget(
            class_name=candidate.class_name,
            source=source.location,
            write_path=candidate.file_path,
            original=source.data,
        )
