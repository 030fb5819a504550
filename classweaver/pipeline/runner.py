#!/usr/bin/env python3
"""Transformation pipeline: one run over a directory tree or an archive.

A run is single-threaded. Each class is resolved, transformed and written
before the next one is looked at. All run state (classpath, filter,
invoker, write-back, report) lives in a RunContext that is opened at the
start of the run and closed on every exit path.

Example:
    >>> pipeline = TransformationPipeline("identity", filter_pattern="Entity")
    >>> report = pipeline.transform_directory("target/classes", ["target/classes"])
    >>> report = pipeline.transform_jar("dist/app.jar")
"""

import time
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from classweaver.classpath.context import ClassPathContext, resource_to_class_name
from classweaver.core.constants import ClassFiles, StagingPolicy, WriteBackMode
from classweaver.core.errors import ArchiveError, EnumerationError, TransformationFailedError
from classweaver.core.validators import validate_archive, validate_directory
from classweaver.infrastructure.logger import Logger, get_logger
from classweaver.pipeline.archive import ArchiveRebuilder
from classweaver.pipeline.enumerator import iter_archive_entries, iter_directory_candidates
from classweaver.pipeline.targets import ByteSourceResolver, Candidate, TransformationTarget
from classweaver.pipeline.writeback import WriteBack
from classweaver.rules.patterns import PathFilter
from classweaver.transforms.base import TransformError
from classweaver.transforms.invoker import TransformationInvoker
from classweaver.transforms.registry import TransformerSpec

PathArg = Union[str, Path]


@dataclass
class RunReport:
    """Outcome of one run."""

    mode: WriteBackMode
    artifact: str
    presented: int = 0  # Classes handed to the transformer
    transformed: int = 0  # Classes rewritten
    noop: int = 0  # Classes left unchanged by the transformer
    filtered: int = 0  # Classes rejected by the filter
    copied: int = 0  # Archive resources copied verbatim
    directories: int = 0  # Archive directory entries recreated
    failures: List[Tuple[str, Exception]] = field(default_factory=list)
    duration_ms: float = 0.0
    backup: Optional[str] = None

    def summary(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "artifact": self.artifact,
            "presented": self.presented,
            "transformed": self.transformed,
            "noop": self.noop,
            "filtered": self.filtered,
            "copied": self.copied,
            "directories": self.directories,
            "failed": len(self.failures),
            "duration_ms": round(self.duration_ms, 3),
        }


@dataclass
class RunContext:
    """Explicit state of one run."""

    classpath: ClassPathContext
    path_filter: PathFilter
    invoker: TransformationInvoker
    resolver: ByteSourceResolver
    write_back: WriteBack
    report: RunReport

    def raise_failures(self) -> None:
        """Raise the aggregated failures of a keep-going run, if any."""
        if self.report.failures:
            raise TransformationFailedError(list(self.report.failures))


class TransformationPipeline:
    """Runs a transformer over compiled classes.

    Features:
    - Directory mode: rewrite class files in place
    - Jar mode: rebuild the archive and swap it in atomically
    - Optional regex filter over class file paths
    - Abort on first failure, or attempt everything and report at the end
    """

    def __init__(
        self,
        transformer: TransformerSpec,
        filter_pattern: Optional[str] = None,
        fail_fast: bool = True,
        staging_policy: StagingPolicy = StagingPolicy.REUSE,
        clean_staging: bool = False,
        logger: Optional[Logger] = None,
    ):
        """Initialize transformation pipeline.

        Args:
            transformer: Transformer name, class, instance or callable
            filter_pattern: Regex searched in class file paths, None for all
            fail_fast: Stop at the first transformer failure
            staging_policy: Jar mode, what to do with a leftover staging tree
            clean_staging: Jar mode, delete the staging tree after the swap
            logger: Logger instance
        """
        self.transformer = transformer
        self.filter_pattern = filter_pattern
        self.fail_fast = fail_fast
        self.staging_policy = staging_policy
        self.clean_staging = clean_staging
        self._logger = logger or get_logger()

    @contextmanager
    def open_run(
        self, mode: WriteBackMode, artifact: PathArg, classpath_elements: Iterable[PathArg]
    ) -> Iterator[RunContext]:
        """Acquire the state of one run and release it on exit.

        The filter is compiled and the transformer resolved before the
        context is handed out, so configuration errors come first.
        """
        classpath = ClassPathContext(classpath_elements)
        try:
            path_filter = PathFilter.from_pattern(self.filter_pattern)
            invoker = TransformationInvoker(self.transformer, loader=classpath)
            invoker.prepare()
            yield RunContext(
                classpath=classpath,
                path_filter=path_filter,
                invoker=invoker,
                resolver=ByteSourceResolver(mode, classpath),
                write_back=WriteBack(mode, self._logger),
                report=RunReport(mode=mode, artifact=str(artifact)),
            )
        finally:
            classpath.close()

    def transform_directory(
        self, root: PathArg, classpath_elements: Iterable[PathArg] = ()
    ) -> RunReport:
        """Transform every eligible class file under ``root`` in place.

        Args:
            root: Compiled output directory
            classpath_elements: Classpath used as the transformer's loader

        Returns:
            RunReport

        Raises:
            ValidationError: If root is not a directory
            TransformerConfigError: If the transformer cannot be resolved
            EnumerationError: If a directory cannot be listed
            TransformError: First transformer failure (fail_fast)
            TransformationFailedError: All failures (not fail_fast)
        """
        validate_directory(str(root))
        start_time = time.time()

        with self._logger.add_context(artifact=str(root), mode=WriteBackMode.IN_PLACE.value):
            with self.open_run(WriteBackMode.IN_PLACE, root, classpath_elements) as ctx:
                for candidate in iter_directory_candidates(root):
                    if not ctx.path_filter(candidate.file_path):
                        ctx.report.filtered += 1
                        continue
                    self._process(ctx, candidate)

                self._logger.debug(f"Transformer statistics: {ctx.invoker.get_stats()}")
                ctx.report.duration_ms = (time.time() - start_time) * 1000
                ctx.raise_failures()
                self._logger.info(f"Transformed classes: {ctx.report.summary()}")
                return ctx.report

    def transform_jar(
        self, jar_path: PathArg, classpath_elements: Iterable[PathArg] = ()
    ) -> RunReport:
        """Transform the classes of an archive and swap the result in.

        The archive itself is the first classpath element; any extra
        elements follow it.

        Args:
            jar_path: Archive to rewrite
            classpath_elements: Additional classpath for the transformer

        Returns:
            RunReport with ``backup`` set to the old archive's path

        Raises:
            ValidationError: If the archive is missing or not a zip
            ClassNotFoundError: If a class cannot be found on the classpath
            TransformError / TransformationFailedError: Transformer failures
            ArchiveError: Rebuild failed, original untouched
            ArchiveSwapError: Second rename failed, unrecoverable
        """
        validate_archive(str(jar_path))
        start_time = time.time()
        jar = Path(jar_path)

        with self._logger.add_context(artifact=str(jar), mode=WriteBackMode.STAGED.value):
            rebuilder = ArchiveRebuilder(jar, self.staging_policy, self._logger)
            rebuilder.prepare_staging()

            elements = [jar, *classpath_elements]
            with self.open_run(WriteBackMode.STAGED, jar, elements) as ctx:
                manifest = self._stage_archive(ctx, rebuilder, jar)
                self._logger.debug(f"Transformer statistics: {ctx.invoker.get_stats()}")
                ctx.raise_failures()
            report = ctx.report

            # Every archive handle is closed past this point
            rebuilder.serialize(manifest)
            report.backup = str(rebuilder.finalize())
            self._logger.info(f"Replaced {jar}, previous archive kept as {report.backup}")

            if self.clean_staging:
                try:
                    rebuilder.cleanup_staging()
                except ArchiveError as e:
                    self._logger.warning(f"Archive replaced, but staging cleanup failed: {e}")

            report.duration_ms = (time.time() - start_time) * 1000
            self._logger.info(f"Transformed classes: {report.summary()}")
            return report

    def _stage_archive(
        self, ctx: RunContext, rebuilder: ArchiveRebuilder, jar: Path
    ) -> Optional[Tuple[zipfile.ZipInfo, bytes]]:
        manifest = None
        try:
            archive = zipfile.ZipFile(jar, "r")
        except (OSError, zipfile.BadZipFile) as e:
            raise EnumerationError(f"Cannot open archive {jar}: {e}", str(jar)) from e

        with archive:
            for entry in iter_archive_entries(archive):
                if entry.is_manifest:
                    manifest = (entry.info, self._read_entry(archive, entry.info))
                    continue

                if entry.is_directory:
                    rebuilder.stage_directory(entry.info)
                    ctx.report.directories += 1
                    continue

                path = rebuilder.staging_path(entry.name)
                if entry.is_class and ctx.path_filter(path):
                    candidate = Candidate(
                        relative_path=entry.name,
                        class_name=resource_to_class_name(entry.name),
                        file_path=path,
                    )
                    target = self._process(ctx, candidate)
                    if target is not None:
                        rebuilder.record_class(entry.info, transformed=not target.noop)
                    continue

                if entry.is_class:
                    ctx.report.filtered += 1
                rebuilder.stage_copy(archive, entry.info)
                ctx.report.copied += 1

        return manifest

    def _read_entry(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> bytes:
        try:
            return archive.read(info)
        except (OSError, zipfile.BadZipFile) as e:
            raise EnumerationError(f"Cannot read archive entry {info.filename}: {e}", info.filename) from e

    def _process(self, ctx: RunContext, candidate: Candidate) -> Optional[TransformationTarget]:
        """Resolve, transform and write back one candidate.

        Returns:
            The written target, or None if the transformer failed in a
            keep-going run
        """
        ctx.report.presented += 1
        target = ctx.resolver.resolve(candidate)

        try:
            result = ctx.invoker.invoke(target.class_name, target.original)
        except TransformError as e:
            if self.fail_fast:
                raise
            self._logger.exception("Transformation failed", e, class_name=candidate.class_name)
            ctx.report.failures.append((candidate.class_name, e))
            return None

        target.apply(result)
        if ctx.write_back.write(target):
            ctx.report.transformed += 1
        else:
            ctx.report.noop += 1
        return target


def is_archive(path: PathArg) -> bool:
    """True when a path names a jar-like archive rather than a directory."""
    candidate = Path(path)
    return candidate.is_file() and (
        candidate.suffix.lower() in ClassFiles.ARCHIVE_SUFFIXES or zipfile.is_zipfile(candidate)
    )
