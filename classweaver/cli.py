#!/usr/bin/env python3
"""Command-line interface for ClassWeaver.

This module provides the CLI for transforming compiled classes:
- Argument parsing and validation
- Configuration file loading
- Logging setup
- Help and version information

Example:
    >>> from classweaver.cli import parse_arguments
    >>> args = parse_arguments(["transform", "app.jar", "identity", "Entity"])
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from classweaver.core.constants import CLASSWEAVER_VERSION, ConfigKey, Scope, StagingPolicy
from classweaver.core.errors import ClassWeaverError
from classweaver.infrastructure.config_manager import ConfigManager, ConfigSource, set_global_config
from classweaver.infrastructure.logger import Logger, LogLevel, set_global_logger

# Version information
VERSION = CLASSWEAVER_VERSION
DESCRIPTION = "ClassWeaver - bytecode transformation for class directories and jars"


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)

    common.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        type=str,
        help="Configuration file path (YAML format)",
    )

    common.add_argument(
        "--keep-going",
        action="store_true",
        help="Attempt every class and report all failures at the end",
    )

    log_group = common.add_argument_group("logging options")

    log_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        type=str,
        help="Also write the log to a rotating file",
    )

    return common


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
        CLIError: If validation fails
    """
    parser = argparse.ArgumentParser(
        prog="classweaver",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Transform every class of a jar
  classweaver transform app.jar mypkg.weaving:EntityEnhancer

  # Only classes whose path matches a pattern, with extra classpath
  classweaver transform app.jar enhancer "model/.*Entity" --classpath lib/dep.jar

  # Transform a compiled output directory in place
  classweaver process-classes --output-directory target/classes --transformer enhancer

  # Use a configuration file
  classweaver process-classes --config classweaver.yaml --scope test
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}",
    )

    common = _common_options()
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    # transform <jar_path> <transformer> [filter_pattern]
    transform = subparsers.add_parser(
        "transform",
        parents=[common],
        help="Rewrite the classes of a jar archive",
    )
    transform.add_argument("jar_path", help="Jar archive to transform")
    transform.add_argument("transformer", help="Transformer name or import path")
    transform.add_argument(
        "filter_pattern",
        nargs="?",
        default=None,
        help="Regular expression searched in class file paths",
    )
    transform.add_argument(
        "--classpath",
        metavar="PATH",
        action="append",
        help=f"Additional classpath elements ({os.pathsep}-separated, repeatable)",
    )

    staging_group = transform.add_argument_group("staging options")
    staging_group.add_argument(
        "--staging-policy",
        choices=[p.value for p in StagingPolicy],
        default=None,
        help="What to do with a leftover staging directory (default: reuse)",
    )
    staging_group.add_argument(
        "--clean-staging",
        action="store_true",
        help="Delete the staging directory after a successful run",
    )

    # process-classes
    process = subparsers.add_parser(
        "process-classes",
        parents=[common],
        help="Rewrite the classes of a compiled output directory in place",
    )
    process.add_argument("--output-directory", metavar="DIR", help="Main classes directory")
    process.add_argument("--test-output-directory", metavar="DIR", help="Test classes directory")
    process.add_argument("--transformer", metavar="NAME", help="Transformer name or import path")
    process.add_argument("--filter", dest="filter_pattern", metavar="REGEX", help="Path filter")
    process.add_argument(
        "--classpath",
        metavar="PATH",
        action="append",
        help="Compile classpath elements",
    )
    process.add_argument(
        "--test-classpath",
        metavar="PATH",
        action="append",
        help="Test classpath elements",
    )
    process.add_argument(
        "--scope",
        choices=[s.value for s in Scope],
        default=None,
        help="Which output to transform (default: main)",
    )

    parsed = parser.parse_args(args)

    _validate_arguments(parsed)

    return parsed


def _validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Args:
        args: Parsed arguments namespace

    Raises:
        CLIError: If validation fails
    """
    if args.command == "transform":
        jar_path = Path(args.jar_path)

        if not jar_path.exists():
            raise CLIError(f"No such jar file: {args.jar_path}")

        if not jar_path.is_file():
            raise CLIError(f"Jar path is not a file: {args.jar_path}")

    if args.config:
        config_path = Path(args.config)

        if not config_path.exists():
            raise CLIError(f"Configuration file does not exist: {args.config}")

        if not config_path.is_file():
            raise CLIError(f"Configuration path is not a file: {args.config}")


def split_classpath(values: Optional[List[str]]) -> Optional[List[str]]:
    """
    Flatten repeated, path-separated classpath options.

    Returns:
        List of elements, or None if the option was not given
    """
    if not values:
        return None
    return [element for value in values for element in value.split(os.pathsep) if element]


def build_config_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Build configuration dictionary from command-line arguments.

    Options that were not given map to None and do not override other
    configuration sources.

    Args:
        args: Parsed arguments namespace

    Returns:
        Configuration dictionary for ConfigManager
    """
    section: Dict[str, Any] = {
        ConfigKey.FAIL_FAST: False if args.keep_going else None,
        ConfigKey.CLASSPATH: split_classpath(args.classpath),
        ConfigKey.TRANSFORMER: args.transformer,
        ConfigKey.FILTER_PATTERN: args.filter_pattern,
    }

    if args.command == "transform":
        section[ConfigKey.STAGING] = {
            ConfigKey.STAGING_POLICY: args.staging_policy,
            ConfigKey.STAGING_CLEAN_AFTER: True if args.clean_staging else None,
        }
    else:
        section[ConfigKey.OUTPUT_DIRECTORY] = args.output_directory
        section[ConfigKey.TEST_OUTPUT_DIRECTORY] = args.test_output_directory
        section[ConfigKey.TEST_CLASSPATH] = split_classpath(args.test_classpath)
        section[ConfigKey.SCOPE] = args.scope

    section[ConfigKey.LOGGING] = {
        ConfigKey.LOG_LEVEL: "DEBUG" if args.debug else None,
        ConfigKey.LOG_FILE: args.log_file,
    }

    return {ConfigKey.SECTION: section}


def load_configuration(args: argparse.Namespace) -> ConfigManager:
    """
    Load configuration from every source.

    Args:
        args: Parsed arguments namespace

    Returns:
        ConfigManager with defaults, file, environment and arguments loaded

    Raises:
        ConfigError: If the configuration file cannot be loaded or parsed
    """
    config = ConfigManager(config_file=args.config)
    config.load_dict(build_config_from_args(args), ConfigSource.CLI_ARGS)
    set_global_config(config)
    return config


def setup_logging(args: argparse.Namespace, config: ConfigManager) -> Logger:
    """
    Setup logging based on arguments and configuration.

    Args:
        args: Parsed arguments namespace
        config: Configuration manager

    Returns:
        Configured logger instance
    """
    logging_config = config.section().get(ConfigKey.LOGGING) or {}
    log_level = "DEBUG" if args.debug else (logging_config.get(ConfigKey.LOG_LEVEL) or "INFO")
    log_file = args.log_file or logging_config.get(ConfigKey.LOG_FILE)

    try:
        level = LogLevel.parse(log_level)
    except (KeyError, ValueError):
        raise CLIError(f"Invalid log level: {log_level}")

    logger = Logger("classweaver", level=level)

    if log_file:
        try:
            logger.add_handler(logger.create_file_handler(log_file))
        except OSError as e:
            raise CLIError(f"Cannot open log file: {log_file}\n{e}")
        logger.debug(f"Logging to file: {log_file}")

    set_global_logger(logger)
    return logger


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Parses arguments, loads configuration and passes control to
    classweaver.main for the run itself.
    """
    try:
        # Parse arguments
        args = parse_arguments(argv)

        # Load configuration
        config = load_configuration(args)

        # Setup logging
        logger = setup_logging(args, config)

        # Import and run main
        from classweaver.main import run_classweaver

        try:
            return run_classweaver(args, config, logger)
        finally:
            logger.close()
            set_global_logger(None)

    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except ClassWeaverError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        import traceback

        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
