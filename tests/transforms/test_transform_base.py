#!/usr/bin/env python3
"""Tests for transformer base classes."""

import pytest

from classweaver.core.constants import ErrorCode
from classweaver.transforms.base import (
    ClassTransformer,
    FunctionTransformer,
    IdentityTransformer,
    TransformError,
    TransformerConfigError,
    TransformResult,
)


class MarkerTransformer(ClassTransformer):
    """Transformer that appends a marker byte."""

    def transform(self, loader, class_name, original):
        return original + b"\x01"


class TestTransformResult:
    """Tests for TransformResult."""

    def test_content_is_not_noop(self):
        """Test non-empty content is a change."""
        assert not TransformResult("pkg.A", b"\x00").noop

    @pytest.mark.parametrize("content", [None, b""])
    def test_none_and_empty_are_noop(self, content):
        """Test both no-op signals."""
        assert TransformResult("pkg.A", content).noop


class TestClassTransformer:
    """Tests for ClassTransformer."""

    def test_abstract(self):
        """Test the base class cannot be instantiated."""
        with pytest.raises(TypeError):
            ClassTransformer()

    def test_default_name(self):
        """Test the class name is the default name."""
        assert MarkerTransformer().name == "MarkerTransformer"
        assert MarkerTransformer(name="marker").name == "marker"

    def test_callable(self):
        """Test calling an instance runs transform."""
        assert MarkerTransformer()(None, "pkg.A", b"\xca") == b"\xca\x01"

    def test_identity(self):
        """Test the identity transformer signals no-op."""
        assert IdentityTransformer().transform(None, "pkg.A", b"\xca") is None


class TestFunctionTransformer:
    """Tests for FunctionTransformer."""

    def test_wraps_function(self):
        """Test the function receives loader, name and bytes."""
        calls = []

        def weave(loader, name, data):
            calls.append((loader, name, data))
            return data[::-1]

        transformer = FunctionTransformer(weave)
        assert transformer.transform("loader", "pkg.A", b"ab") == b"ba"
        assert calls == [("loader", "pkg.A", b"ab")]
        assert transformer.name.endswith("weave")

    def test_explicit_name(self):
        """Test an explicit name wins."""
        assert FunctionTransformer(lambda *a: None, name="noop").name == "noop"


class TestErrors:
    """Tests for transform errors."""

    def test_transform_error(self):
        """Test transform error fields."""
        error = TransformError("failed", class_name="pkg.A", transformer_name="marker")
        assert error.class_name == "pkg.A"
        assert error.transformer_name == "marker"
        assert error.error_code == ErrorCode.TRANSFORM_FAILED

    def test_config_error(self):
        """Test config error default code."""
        assert TransformerConfigError("x").error_code == ErrorCode.DEPENDENCY_ERROR
