#!/usr/bin/env python3
"""Transformer lookup by name.

A transformer name is resolved, in order, against:
1. the in-process registry (``register_transformer``)
2. installed entry points in the ``classweaver.transformers`` group
3. an import path, ``package.module.ClassName`` or ``package.module:ClassName``

Callers that already hold a transformer (an instance, a class or a
plain function) can pass it directly to ``resolve_transformer``.

Any failure to find or construct the transformer is a configuration
error (TransformerConfigError), never a per-class one.
"""

import importlib
from importlib.metadata import entry_points
from typing import Any, Callable, Dict, List, Optional, Union

from classweaver.core.constants import ErrorCode
from classweaver.transforms.base import (
    ClassTransformer,
    FunctionTransformer,
    IdentityTransformer,
    TransformerConfigError,
)

ENTRY_POINT_GROUP = "classweaver.transformers"

TransformerSpec = Union[str, ClassTransformer, type, Callable[..., Any]]

_TRANSFORMER_REGISTRY: Dict[str, Any] = {}


def register_transformer(name: str, factory: Optional[Any] = None):
    """Register a transformer class or function under a short name.

    Usable directly or as a decorator:

        >>> @register_transformer("strip-debug")
        ... class StripDebug(ClassTransformer):
        ...     ...
    """

    def decorator(obj):
        _TRANSFORMER_REGISTRY[name] = obj
        return obj

    if factory is not None:
        return decorator(factory)
    return decorator


def unregister_transformer(name: str) -> bool:
    """Remove a registered transformer. Returns True if it was registered."""
    return _TRANSFORMER_REGISTRY.pop(name, None) is not None


def list_transformers() -> List[str]:
    """Names available from the registry and installed entry points."""
    names = set(_TRANSFORMER_REGISTRY)
    names.update(ep.name for ep in entry_points(group=ENTRY_POINT_GROUP))
    return sorted(names)


def resolve_transformer(spec: TransformerSpec) -> ClassTransformer:
    """Turn a transformer spec into a ready ClassTransformer instance.

    Args:
        spec: Name, class, instance or callable

    Returns:
        Transformer instance

    Raises:
        TransformerConfigError: If the spec cannot be resolved or instantiated
    """
    if isinstance(spec, ClassTransformer):
        return spec

    if isinstance(spec, str):
        if not spec:
            raise TransformerConfigError("Missing transformer class name!", ErrorCode.INVALID_INPUT)
        return _instantiate(_lookup(spec), spec)

    if spec is None:
        raise TransformerConfigError("Missing transformer class name!", ErrorCode.INVALID_INPUT)

    return _instantiate(spec, getattr(spec, "__name__", None))


def _lookup(name: str) -> Any:
    if name in _TRANSFORMER_REGISTRY:
        return _TRANSFORMER_REGISTRY[name]

    for ep in entry_points(group=ENTRY_POINT_GROUP, name=name):
        try:
            return ep.load()
        except Exception as e:
            raise TransformerConfigError(
                f"Cannot load transformer entry point {name} ({ep.value}): {e}"
            ) from e

    return _import_object(name)


def _import_object(path: str) -> Any:
    """Import ``pkg.mod:Attr`` or ``pkg.mod.Attr``."""
    if ":" in path:
        module_name, _, attr_path = path.partition(":")
        attrs = attr_path.split(".")
    else:
        module_name, _, attr = path.rpartition(".")
        attrs = [attr]
        if not module_name:
            available = ", ".join(list_transformers()) or "none"
            raise TransformerConfigError(
                f"Unknown transformer: {path} (available: {available})", ErrorCode.NOT_FOUND
            )

    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise TransformerConfigError(
            f"Cannot import transformer module {module_name}: {e}", ErrorCode.NOT_FOUND
        ) from e

    for attr in attrs:
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            raise TransformerConfigError(
                f"No such transformer: {path}", ErrorCode.NOT_FOUND
            ) from e
    return obj


def _instantiate(obj: Any, name: Optional[str]) -> ClassTransformer:
    if isinstance(obj, type):
        try:
            instance = obj()
        except Exception as e:
            raise TransformerConfigError(f"Cannot instantiate transformer {name}: {e}") from e
    else:
        instance = obj

    if isinstance(instance, ClassTransformer):
        return instance

    transform = getattr(instance, "transform", None)
    if callable(transform):
        return FunctionTransformer(transform, name)

    if callable(instance):
        return FunctionTransformer(instance, name)

    raise TransformerConfigError(
        f"Transformer {name} has no transform(loader, class_name, data) method",
        ErrorCode.INVALID_INPUT,
    )


register_transformer("identity", IdentityTransformer)
