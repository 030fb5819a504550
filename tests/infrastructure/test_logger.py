#!/usr/bin/env python3
"""Tests for the Logger module."""

import io
import logging
import threading
from pathlib import Path

import pytest

from classweaver.infrastructure.logger import LogLevel, Logger, get_logger, set_global_logger


def make_logger(level=LogLevel.DEBUG):
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    return Logger(name="classweaver.test.logger", level=level, handlers=[handler]), stream


class TestLogLevel:
    """Tests for LogLevel enum."""

    def test_log_levels(self):
        """Test log level values match Python logging."""
        assert LogLevel.DEBUG == logging.DEBUG
        assert LogLevel.INFO == logging.INFO
        assert LogLevel.WARNING == logging.WARNING
        assert LogLevel.ERROR == logging.ERROR
        assert LogLevel.CRITICAL == logging.CRITICAL

    def test_parse(self):
        """Test levels parse from names and numbers."""
        assert LogLevel.parse("debug") is LogLevel.DEBUG
        assert LogLevel.parse(logging.ERROR) is LogLevel.ERROR
        assert LogLevel.parse(LogLevel.INFO) is LogLevel.INFO


class TestLogger:
    """Tests for Logger class."""

    def test_logger_creation(self):
        """Test creating a logger."""
        logger = Logger(name="test", level=LogLevel.DEBUG)
        assert logger.name == "test"
        assert logger.get_level() == LogLevel.DEBUG

    def test_logger_with_string_level(self):
        """Test creating logger with string level."""
        logger = Logger(name="test", level="warning")
        assert logger.get_level() == LogLevel.WARNING

    def test_does_not_propagate(self):
        """Test records do not reach the root logger."""
        logger = Logger(name="test")
        assert logger.logger.propagate is False

    def test_messages_written(self):
        """Test each level writes its message."""
        logger, stream = make_logger()
        logger.debug("d")
        logger.info("i")
        logger.warning("w")
        logger.error("e")
        output = stream.getvalue()
        assert "DEBUG d" in output
        assert "INFO i" in output
        assert "WARNING w" in output
        assert "ERROR e" in output

    def test_level_filters(self):
        """Test messages below the level are dropped."""
        logger, stream = make_logger(LogLevel.WARNING)
        logger.info("hidden")
        logger.warning("shown")
        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_structured_context(self):
        """Test keyword context is appended as key=value."""
        logger, stream = make_logger()
        logger.info("Rewriting", artifact="app.jar", count=3)
        assert "Rewriting | artifact=app.jar count=3" in stream.getvalue()

    def test_exception(self):
        """Test exception adds type, message and traceback."""
        logger, stream = make_logger()
        try:
            raise ValueError("bad constant pool")
        except ValueError as e:
            logger.exception("Transformation failed", e, class_name="pkg.A")
        output = stream.getvalue()
        assert "ERROR Transformation failed | class_name=pkg.A exception_type=ValueError" in output
        assert "exception_message=bad constant pool" in output
        assert "Traceback" in output

    def test_exception_below_level(self):
        """Test exception respects the logger level."""
        logger, stream = make_logger(LogLevel.CRITICAL)
        logger.exception("hidden", RuntimeError("x"))
        assert stream.getvalue() == ""

    def test_add_context(self):
        """Test scoped context applies inside the block only."""
        logger, stream = make_logger()
        with logger.add_context(mode="staged"):
            logger.info("inside")
        logger.info("outside")
        lines = stream.getvalue().splitlines()
        assert lines[0] == "INFO inside | mode=staged"
        assert lines[1] == "INFO outside"

    def test_nested_context(self):
        """Test nested contexts merge."""
        logger, stream = make_logger()
        with logger.add_context(artifact="app.jar"):
            with logger.add_context(mode="staged"):
                logger.info("msg")
        assert "artifact=app.jar mode=staged" in stream.getvalue()

    def test_context_is_thread_local(self):
        """Test context pushed in one thread is invisible in another."""
        logger, stream = make_logger()

        def worker():
            logger.info("from thread")

        with logger.add_context(artifact="main-only"):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()

        thread_line = [l for l in stream.getvalue().splitlines() if "from thread" in l][0]
        assert "main-only" not in thread_line

    def test_file_handler(self, tmp_path: Path):
        """Test the rotating file handler writes to disk."""
        logger = Logger(name="classweaver.test.file", handlers=[])
        handler = logger.create_file_handler(tmp_path / "run.log")
        logger.add_handler(handler)
        logger.info("to file")
        handler.flush()
        assert "to file" in (tmp_path / "run.log").read_text()
        logger.close()
        assert logger.logger.handlers == []

    def test_invalid_string_level(self):
        """Test unknown level names raise KeyError."""
        with pytest.raises(KeyError):
            Logger(name="test", level="LOUD")


class TestGlobalLogger:
    """Tests for global logger helpers."""

    def test_get_logger_is_cached(self):
        """Test the same instance is returned for the same name."""
        assert get_logger() is get_logger()

    def test_set_global_logger(self):
        """Test a custom logger becomes the global one."""
        logger, _ = make_logger()
        set_global_logger(logger)
        assert get_logger("classweaver.test.logger") is logger

    def test_reset(self):
        """Test resetting creates a fresh logger."""
        first = get_logger()
        set_global_logger(None)
        assert get_logger() is not first
