"""ClassWeaver Transforms - transformer plug-ins.

This module provides the transformer contract and its plumbing:
- ClassTransformer: base class for plug-ins
- FunctionTransformer / IdentityTransformer: ready-made transformers
- register_transformer / resolve_transformer: lookup by name
- TransformationInvoker: per-run invocation with statistics
"""

from .base import (
    ClassTransformer,
    FunctionTransformer,
    IdentityTransformer,
    TransformError,
    TransformerConfigError,
    TransformResult,
)
from .invoker import TransformationInvoker
from .registry import (
    ENTRY_POINT_GROUP,
    list_transformers,
    register_transformer,
    resolve_transformer,
    unregister_transformer,
)

__all__ = [
    # Base classes
    "ClassTransformer",
    "FunctionTransformer",
    "IdentityTransformer",
    "TransformResult",
    "TransformError",
    "TransformerConfigError",
    # Invocation
    "TransformationInvoker",
    # Registry
    "ENTRY_POINT_GROUP",
    "list_transformers",
    "register_transformer",
    "resolve_transformer",
    "unregister_transformer",
]
