#!/usr/bin/env python3
"""Tests for transformer lookup."""

import sys
import types
from unittest.mock import MagicMock, patch

import pytest

from classweaver.core.constants import ErrorCode
from classweaver.transforms.base import (
    ClassTransformer,
    FunctionTransformer,
    IdentityTransformer,
    TransformerConfigError,
)
from classweaver.transforms.registry import (
    ENTRY_POINT_GROUP,
    list_transformers,
    register_transformer,
    resolve_transformer,
    unregister_transformer,
)


class ReverseTransformer(ClassTransformer):
    """Reverses class bytes."""

    def transform(self, loader, class_name, original):
        return original[::-1]


class NeedsArgument(ClassTransformer):
    """Transformer without a no-argument constructor."""

    def __init__(self, required):
        super().__init__()

    def transform(self, loader, class_name, original):
        return None


class DuckTransformer:
    """Plain object with a transform method."""

    def transform(self, loader, class_name, original):
        return b"duck"


@pytest.fixture
def plugin_module():
    """Importable module holding transformer classes."""
    module = types.ModuleType("weaving_plugins")
    module.ReverseTransformer = ReverseTransformer
    module.DuckTransformer = DuckTransformer
    module.Outer = types.SimpleNamespace(Inner=ReverseTransformer)
    sys.modules["weaving_plugins"] = module
    yield module
    del sys.modules["weaving_plugins"]


@pytest.fixture
def registered():
    """Register a test transformer and remove it afterwards."""
    register_transformer("reverse", ReverseTransformer)
    yield "reverse"
    unregister_transformer("reverse")


class TestRegistry:
    """Tests for register_transformer and friends."""

    def test_identity_is_builtin(self):
        """Test the identity transformer is always registered."""
        assert "identity" in list_transformers()
        assert isinstance(resolve_transformer("identity"), IdentityTransformer)

    def test_register_and_resolve(self, registered):
        """Test a registered name resolves to a new instance."""
        transformer = resolve_transformer(registered)
        assert isinstance(transformer, ReverseTransformer)
        assert resolve_transformer(registered) is not transformer

    def test_decorator(self):
        """Test registration as a decorator."""

        @register_transformer("decorated")
        def decorated(loader, name, data):
            return b"d"

        try:
            assert decorated(None, "x", b"") == b"d"
            assert resolve_transformer("decorated").transform(None, "x", b"") == b"d"
        finally:
            unregister_transformer("decorated")

    def test_unregister(self, registered):
        """Test unregistering reports whether the name existed."""
        assert unregister_transformer(registered) is True
        assert unregister_transformer(registered) is False


class TestResolveTransformer:
    """Tests for resolve_transformer."""

    def test_instance_passthrough(self):
        """Test an instance is returned unchanged."""
        transformer = ReverseTransformer()
        assert resolve_transformer(transformer) is transformer

    def test_class(self):
        """Test a class is instantiated."""
        assert isinstance(resolve_transformer(ReverseTransformer), ReverseTransformer)

    def test_callable(self):
        """Test a plain function is wrapped."""
        transformer = resolve_transformer(lambda loader, name, data: b"x")
        assert isinstance(transformer, FunctionTransformer)
        assert transformer.transform(None, "pkg.A", b"") == b"x"

    def test_duck_typed_object(self):
        """Test an object with transform() is wrapped."""
        transformer = resolve_transformer(DuckTransformer())
        assert transformer.transform(None, "pkg.A", b"") == b"duck"

    @pytest.mark.parametrize("spec", [None, ""])
    def test_missing_name(self, spec):
        """Test a missing name is a configuration error."""
        with pytest.raises(TransformerConfigError, match="Missing transformer class name!"):
            resolve_transformer(spec)

    def test_dotted_import_path(self, plugin_module):
        """Test pkg.mod.Cls import paths."""
        transformer = resolve_transformer("weaving_plugins.ReverseTransformer")
        assert isinstance(transformer, ReverseTransformer)

    def test_colon_import_path(self, plugin_module):
        """Test pkg.mod:Outer.Inner import paths."""
        transformer = resolve_transformer("weaving_plugins:Outer.Inner")
        assert isinstance(transformer, ReverseTransformer)

    def test_duck_class_by_path(self, plugin_module):
        """Test a duck-typed class found by path is wrapped."""
        transformer = resolve_transformer("weaving_plugins:DuckTransformer")
        assert transformer.transform(None, "pkg.A", b"") == b"duck"

    def test_unknown_module(self):
        """Test an unimportable module is NOT_FOUND."""
        with pytest.raises(TransformerConfigError) as exc_info:
            resolve_transformer("no_such_module_anywhere.Cls")
        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_unknown_attribute(self, plugin_module):
        """Test a missing attribute is NOT_FOUND."""
        with pytest.raises(TransformerConfigError, match="No such transformer"):
            resolve_transformer("weaving_plugins.Missing")

    def test_unknown_short_name(self):
        """Test an unregistered bare name is NOT_FOUND."""
        with pytest.raises(TransformerConfigError, match="Unknown transformer") as exc_info:
            resolve_transformer("not-registered")
        assert "identity" in str(exc_info.value)

    def test_constructor_failure(self):
        """Test a class that cannot be built is a configuration error."""
        with pytest.raises(TransformerConfigError, match="Cannot instantiate"):
            resolve_transformer(NeedsArgument)

    def test_not_a_transformer(self, plugin_module):
        """Test an object without transform() is rejected."""
        plugin_module.NOT_A_TRANSFORMER = 42
        with pytest.raises(TransformerConfigError, match="has no transform"):
            resolve_transformer("weaving_plugins.NOT_A_TRANSFORMER")

    def test_entry_point(self):
        """Test lookup through installed entry points."""
        entry_point = MagicMock()
        entry_point.load.return_value = ReverseTransformer

        def fake_entry_points(group, name=None):
            assert group == ENTRY_POINT_GROUP
            return [entry_point] if name == "from-plugin" else []

        with patch("classweaver.transforms.registry.entry_points", side_effect=fake_entry_points):
            transformer = resolve_transformer("from-plugin")
        assert isinstance(transformer, ReverseTransformer)

    def test_entry_point_load_failure(self):
        """Test a broken entry point is a configuration error."""
        entry_point = MagicMock()
        entry_point.value = "broken.module:Cls"
        entry_point.load.side_effect = ImportError("boom")

        with patch(
            "classweaver.transforms.registry.entry_points", return_value=[entry_point]
        ):
            with pytest.raises(TransformerConfigError, match="entry point"):
                resolve_transformer("broken")

    def test_registry_before_entry_points(self, registered):
        """Test the registry is consulted first."""
        with patch("classweaver.transforms.registry.entry_points") as fake:
            resolve_transformer(registered)
        fake.assert_not_called()
