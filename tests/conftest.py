"""Shared pytest fixtures for ClassWeaver tests."""
import io
import logging
import os
import zipfile
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Tuple

import pytest
import yaml

from classweaver.infrastructure.config_manager import set_global_config
from classweaver.infrastructure.logger import Logger, LogLevel, set_global_logger
from classweaver.transforms.base import FunctionTransformer

CLASS_MAGIC = b"\xca\xfe\xba\xbe"
MANIFEST = b"Manifest-Version: 1.0\r\nCreated-By: classweaver-tests\r\n\r\n"

# A fixed timestamp well in the past
OLD_MTIME = 1_000_000_000


def write_jar(path: Path, entries: Iterable[Tuple[str, bytes]]) -> Path:
    """Write a zip archive with the given (name, content) entries, in order."""
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in entries:
            info = zipfile.ZipInfo(name, (2020, 1, 2, 3, 4, 6))
            if name.endswith("/"):
                info.compress_type = zipfile.ZIP_STORED
                info.external_attr = (0o40755 << 16) | 0x10
            else:
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
            archive.writestr(info, content)
    return path


def read_jar(path: Path) -> Dict[str, bytes]:
    """Read every entry of an archive into a name -> content mapping."""
    with zipfile.ZipFile(path, "r") as archive:
        return {info.filename: archive.read(info) for info in archive.infolist()}


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset global logger and config between tests."""
    set_global_logger(None)
    set_global_config(None)
    yield
    set_global_logger(None)
    set_global_config(None)


@pytest.fixture
def log_stream() -> io.StringIO:
    """Buffer receiving everything the test logger writes."""
    return io.StringIO()


@pytest.fixture
def logger(log_stream: io.StringIO) -> Logger:
    """Debug-level logger writing to ``log_stream``."""
    handler = logging.StreamHandler(log_stream)
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    return Logger(name="classweaver.test", level=LogLevel.DEBUG, handlers=[handler])


@pytest.fixture
def class_dir(tmp_path: Path) -> Path:
    """Compiled output directory with classes and a resource.

    Layout:
        classes/other/Foo.class
        classes/pkg/A.class
        classes/pkg/B.txt
        classes/pkg/sub/C.class
    """
    root = tmp_path / "classes"
    (root / "pkg" / "sub").mkdir(parents=True)
    (root / "other").mkdir()

    (root / "pkg" / "A.class").write_bytes(CLASS_MAGIC + b"A")
    (root / "pkg" / "B.txt").write_bytes(b"not a class")
    (root / "pkg" / "sub" / "C.class").write_bytes(CLASS_MAGIC + b"C")
    (root / "other" / "Foo.class").write_bytes(CLASS_MAGIC + b"Foo")

    for path in root.rglob("*"):
        os.utime(path, (OLD_MTIME, OLD_MTIME))

    return root


@pytest.fixture
def sample_jar(tmp_path: Path) -> Path:
    """Jar with a manifest, one class and one resource."""
    return write_jar(
        tmp_path / "app.jar",
        [
            ("META-INF/MANIFEST.MF", MANIFEST),
            ("pkg/A.class", CLASS_MAGIC + b"A"),
            ("res/data.bin", bytes(range(256))),
        ],
    )


@pytest.fixture
def multi_class_jar(tmp_path: Path) -> Path:
    """Jar with directory entries and several classes."""
    return write_jar(
        tmp_path / "lib.jar",
        [
            ("META-INF/", b""),
            ("META-INF/MANIFEST.MF", MANIFEST),
            ("pkg/", b""),
            ("pkg/A.class", CLASS_MAGIC + b"A"),
            ("pkg/B.class", CLASS_MAGIC + b"B"),
            ("pkg/model/", b""),
            ("pkg/model/FooEntity.class", CLASS_MAGIC + b"FooEntity"),
            ("pkg/notes.txt", b"notes"),
        ],
    )


@pytest.fixture
def marker_transformer() -> FunctionTransformer:
    """Transformer appending one marker byte to every class."""
    return FunctionTransformer(lambda loader, name, data: data + b"\x01", name="marker")


@pytest.fixture
def failing_transformer() -> Callable[[str], FunctionTransformer]:
    """Factory for a marker transformer that raises on one class."""

    def factory(failing_class: str) -> FunctionTransformer:
        def transform(loader, name, data):
            if name == failing_class:
                raise RuntimeError(f"cannot weave {name}")
            return data + b"\x01"

        return FunctionTransformer(transform, name="failing")

    return factory


@pytest.fixture
def sample_config(class_dir: Path) -> Dict[str, Any]:
    """Provide a sample ClassWeaver configuration."""
    return {
        "classweaver": {
            "transformer": "identity",
            "filter_pattern": "pkg",
            "output_directory": str(class_dir),
            "classpath": [str(class_dir)],
            "fail_fast": True,
            "staging": {
                "policy": "reuse",
                "clean_after": False,
            },
            "logging": {
                "level": "DEBUG",
                "file": None,
            },
        }
    }


@pytest.fixture
def config_file(tmp_path: Path, sample_config: Dict[str, Any]) -> Path:
    """Create a configuration file."""
    config_path = tmp_path / "classweaver.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config, f)
    return config_path


@pytest.fixture
def make_jar() -> Callable[..., Path]:
    """Build an archive from (name, content) pairs."""
    return write_jar


@pytest.fixture
def jar_contents() -> Callable[[Path], Dict[str, bytes]]:
    """Read an archive into a name -> content mapping."""
    return read_jar
