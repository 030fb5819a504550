#!/usr/bin/env python3
"""Run orchestration for ClassWeaver.

This module handles:
- Build-triggered runs over a compiled output directory (process-classes)
- Archive runs (transform)
- Pipeline construction from merged configuration
- Mapping of errors to exit codes

Example:
    >>> from classweaver.main import ProcessClassesRequest, process_classes
    >>> request = ProcessClassesRequest(
    ...     output_directory="target/classes",
    ...     transformer_class_name="identity",
    ... )
    >>> report = process_classes(request)
"""

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from classweaver.core.constants import ConfigKey, ErrorCode, Scope, StagingPolicy
from classweaver.core.errors import ClassWeaverError
from classweaver.core.validators import ValidationError
from classweaver.infrastructure.config_manager import ConfigManager
from classweaver.infrastructure.logger import Logger, get_logger
from classweaver.pipeline.runner import RunReport, TransformationPipeline
from classweaver.transforms.registry import TransformerSpec

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_UNRECOVERABLE = 2
EXIT_INTERRUPTED = 130


def exit_code_for(error: ClassWeaverError) -> int:
    """Exit status for a failed run."""
    if error.error_code == ErrorCode.UNRECOVERABLE:
        return EXIT_UNRECOVERABLE
    return EXIT_FAILURE


@dataclass
class ProcessClassesRequest:
    """Parameters of a build-triggered run over compiled classes.

    The scope selects which output directory and classpath are used.
    """

    output_directory: Optional[str] = None
    test_output_directory: Optional[str] = None
    filter_pattern: Optional[str] = None
    transformer_class_name: Optional[str] = None
    compile_classpath_elements: List[str] = field(default_factory=list)
    test_classpath_elements: List[str] = field(default_factory=list)
    scope: Scope = Scope.MAIN

    @classmethod
    def from_config(cls, section: Dict[str, Any]) -> "ProcessClassesRequest":
        """Build a request from the merged ``classweaver`` section."""
        scope = section.get(ConfigKey.SCOPE) or Scope.MAIN.value
        return cls(
            output_directory=section.get(ConfigKey.OUTPUT_DIRECTORY),
            test_output_directory=section.get(ConfigKey.TEST_OUTPUT_DIRECTORY),
            filter_pattern=section.get(ConfigKey.FILTER_PATTERN),
            transformer_class_name=section.get(ConfigKey.TRANSFORMER),
            compile_classpath_elements=list(section.get(ConfigKey.CLASSPATH) or []),
            test_classpath_elements=list(section.get(ConfigKey.TEST_CLASSPATH) or []),
            scope=Scope(scope),
        )

    @property
    def target_directory(self) -> Optional[str]:
        if self.scope is Scope.TEST:
            return self.test_output_directory
        return self.output_directory

    @property
    def classpath_elements(self) -> List[str]:
        """Classpath for the run; the target directory alone if none is set."""
        elements = (
            self.test_classpath_elements
            if self.scope is Scope.TEST
            else self.compile_classpath_elements
        )
        if elements:
            return list(elements)
        return [self.target_directory] if self.target_directory else []


def process_classes(
    request: ProcessClassesRequest,
    transformer: Optional[TransformerSpec] = None,
    fail_fast: bool = True,
    logger: Optional[Logger] = None,
) -> RunReport:
    """Transform the classes of a compiled output directory in place.

    Args:
        request: Run parameters
        transformer: Transformer object overriding ``transformer_class_name``
        fail_fast: Stop at the first transformer failure
        logger: Logger instance

    Returns:
        RunReport

    Raises:
        ValidationError: If the request is incomplete
        ClassWeaverError: If the run fails
    """
    spec = transformer if transformer is not None else request.transformer_class_name
    if not spec:
        raise ValidationError("Missing transformer class name!")

    directory = request.target_directory
    if not directory:
        raise ValidationError(f"Missing output directory for scope: {request.scope.value}")

    pipeline = TransformationPipeline(
        spec,
        filter_pattern=request.filter_pattern,
        fail_fast=fail_fast,
        logger=logger,
    )
    return pipeline.transform_directory(directory, request.classpath_elements)


def transform_jar(
    jar_path: Union[str, Path],
    transformer: TransformerSpec,
    filter_pattern: Optional[str] = None,
    classpath_elements: Iterable[Union[str, Path]] = (),
    fail_fast: bool = True,
    staging_policy: StagingPolicy = StagingPolicy.REUSE,
    clean_staging: bool = False,
    logger: Optional[Logger] = None,
) -> RunReport:
    """Transform the classes of an archive and replace it.

    Returns:
        RunReport with the backup location
    """
    pipeline = TransformationPipeline(
        transformer,
        filter_pattern=filter_pattern,
        fail_fast=fail_fast,
        staging_policy=staging_policy,
        clean_staging=clean_staging,
        logger=logger,
    )
    return pipeline.transform_jar(jar_path, classpath_elements)


class ClassWeaverMain:
    """
    Main class for a ClassWeaver command-line run.

    Builds the pipeline from configuration, runs the selected command and
    reports the outcome.
    """

    def __init__(self, args: argparse.Namespace, config: ConfigManager, logger: Logger):
        """
        Initialize ClassWeaver main controller.

        Args:
            args: Parsed command-line arguments
            config: Configuration manager with every source loaded
            logger: Logger instance
        """
        self.args = args
        self.config = config
        self.logger = logger
        self.section: Dict[str, Any] = {}
        self.report: Optional[RunReport] = None

    def load_section(self) -> Dict[str, Any]:
        """
        Read and validate the merged ``classweaver`` section.

        Raises:
            ValidationError: If the configuration is invalid
        """
        self.section = self.config.validate()
        return self.section

    def _staging_options(self) -> Dict[str, Any]:
        staging = self.section.get(ConfigKey.STAGING) or {}
        return {
            "staging_policy": StagingPolicy(
                staging.get(ConfigKey.STAGING_POLICY) or StagingPolicy.REUSE.value
            ),
            "clean_staging": bool(staging.get(ConfigKey.STAGING_CLEAN_AFTER)),
        }

    def _fail_fast(self) -> bool:
        value = self.section.get(ConfigKey.FAIL_FAST)
        return True if value is None else value

    def run_transform(self) -> RunReport:
        """Run the ``transform`` command."""
        transformer = self.section.get(ConfigKey.TRANSFORMER)
        if not transformer:
            raise ValidationError("Missing transformer class name!")

        self.logger.info(f"Transforming archive: {self.args.jar_path}")
        return transform_jar(
            self.args.jar_path,
            transformer,
            filter_pattern=self.section.get(ConfigKey.FILTER_PATTERN),
            classpath_elements=self.section.get(ConfigKey.CLASSPATH) or [],
            fail_fast=self._fail_fast(),
            logger=self.logger,
            **self._staging_options(),
        )

    def run_process_classes(self) -> RunReport:
        """Run the ``process-classes`` command."""
        request = ProcessClassesRequest.from_config(self.section)
        self.logger.info(
            f"Processing {request.scope.value} classes: {request.target_directory}"
        )
        return process_classes(request, fail_fast=self._fail_fast(), logger=self.logger)

    def run(self) -> int:
        """
        Run the selected command.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            self.load_section()

            if self.args.command == "transform":
                self.report = self.run_transform()
            elif self.args.command == "process-classes":
                self.report = self.run_process_classes()
            else:
                raise ValidationError(f"Unknown command: {self.args.command}")

            self.logger.info(f"Run statistics: {self.report.summary()}")
            return EXIT_SUCCESS

        except KeyboardInterrupt:
            self.logger.info("Interrupted by user")
            return EXIT_INTERRUPTED

        except ClassWeaverError as e:
            self.logger.error(f"Run failed: {e}", error_code=e.error_code.name)
            return exit_code_for(e)


def run_classweaver(args: argparse.Namespace, config: ConfigManager, logger: Logger) -> int:
    """
    Main entry point for running ClassWeaver.

    Args:
        args: Parsed command-line arguments
        config: Configuration manager
        logger: Logger instance

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    main = ClassWeaverMain(args, config, logger or get_logger())
    return main.run()


def main():
    """Entry point when run as standalone script."""
    from classweaver.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
