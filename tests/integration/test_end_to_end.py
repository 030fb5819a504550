#!/usr/bin/env python3
"""End-to-end runs through the public entry points."""

import os
from pathlib import Path

import pytest

from classweaver.core.constants import Scope
from classweaver.core.errors import TransformationFailedError
from classweaver.main import ProcessClassesRequest, process_classes, transform_jar
from classweaver.transforms.base import ClassTransformer, FunctionTransformer
from classweaver.transforms.registry import register_transformer, unregister_transformer

OLD_MTIME = 1_000_000_000


class AppendMarker(ClassTransformer):
    """Appends one byte to the classes it is given."""

    def transform(self, loader, class_name, original):
        return original + b"\x01"


@pytest.fixture
def append_marker():
    register_transformer("append-marker", AppendMarker)
    yield "append-marker"
    unregister_transformer("append-marker")


class TestProcessClasses:
    """Directory runs driven by a build request."""

    def test_filtered_run(self, class_dir: Path, append_marker, logger):
        """Test a filtered run grows exactly the matching class by one byte."""
        a_class = class_dir / "pkg" / "A.class"
        before = a_class.read_bytes()
        request = ProcessClassesRequest(
            output_directory=str(class_dir),
            filter_pattern=r"pkg/A\.class$",
            transformer_class_name=append_marker,
        )

        report = process_classes(request, logger=logger)

        assert a_class.read_bytes() == before + b"\x01"
        assert (class_dir / "pkg" / "B.txt").read_bytes() == b"not a class"
        assert os.stat(class_dir / "pkg" / "B.txt").st_mtime == OLD_MTIME
        assert os.stat(class_dir / "other" / "Foo.class").st_mtime == OLD_MTIME
        assert report.transformed == 1

    def test_test_scope(self, class_dir: Path, tmp_path: Path, append_marker, logger):
        """Test the test scope transforms the test output directory."""
        test_classes = tmp_path / "test-classes"
        (test_classes / "pkg").mkdir(parents=True)
        (test_classes / "pkg" / "ATest.class").write_bytes(b"T")

        request = ProcessClassesRequest(
            output_directory=str(class_dir),
            test_output_directory=str(test_classes),
            transformer_class_name=append_marker,
            scope=Scope.TEST,
        )

        process_classes(request, logger=logger)

        assert (test_classes / "pkg" / "ATest.class").read_bytes() == b"T\x01"
        assert os.stat(class_dir / "pkg" / "A.class").st_mtime == OLD_MTIME


class TestTransformJar:
    """Archive runs."""

    def test_identity_rebuild(self, sample_jar: Path, logger, jar_contents):
        """Test an identity run keeps every entry byte for byte."""
        before = jar_contents(sample_jar)

        report = transform_jar(sample_jar, "identity", logger=logger)

        assert jar_contents(sample_jar) == before
        assert len(before) == 3
        assert Path(report.backup).name == "old-app.jar"

    def test_registered_transformer(self, multi_class_jar: Path, append_marker, logger, jar_contents):
        """Test a transformer registered by name is used."""
        before = jar_contents(multi_class_jar)

        transform_jar(multi_class_jar, append_marker, filter_pattern="Entity", logger=logger)

        after = jar_contents(multi_class_jar)
        assert after["pkg/model/FooEntity.class"] == before["pkg/model/FooEntity.class"] + b"\x01"
        assert after["pkg/A.class"] == before["pkg/A.class"]

    def test_keep_going_failure(self, multi_class_jar: Path, failing_transformer, logger):
        """Test a keep-going run reports every failure and keeps the original."""
        original = multi_class_jar.read_bytes()

        with pytest.raises(TransformationFailedError) as exc_info:
            transform_jar(
                multi_class_jar, failing_transformer("pkg.A"), fail_fast=False, logger=logger
            )

        assert [name for name, _ in exc_info.value.failures] == ["pkg.A"]
        assert multi_class_jar.read_bytes() == original

    def test_extra_classpath(self, sample_jar: Path, class_dir: Path, logger):
        """Test extra classpath elements are visible to the transformer."""
        found = []

        def transform(loader, name, data):
            found.append("other.Foo" in loader)
            return None

        transform_jar(
            sample_jar, FunctionTransformer(transform), classpath_elements=[class_dir], logger=logger
        )

        assert found == [True]
