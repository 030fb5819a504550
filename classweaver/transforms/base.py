#!/usr/bin/env python3
"""Base classes for class file transformers.

This module provides the plug-in contract:
- ClassTransformer abstract base class
- FunctionTransformer adapter for plain callables
- TransformResult describing one invocation
- TransformError / TransformerConfigError

A transformer receives ``(loader, class_name, original_bytes)`` and
returns replacement bytes, or None / ``b""`` to leave the class alone.
``loader`` is the run's ClassPathContext.

Example:
    >>> class MarkerTransformer(ClassTransformer):
    ...     def transform(self, loader, class_name, original):
    ...         return original + b"\\x00"
    ...
    >>> MarkerTransformer().transform(None, "pkg.A", b"\\xca\\xfe")
    b'\\xca\\xfe\\x00'
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from classweaver.core.constants import ErrorCode
from classweaver.core.errors import ClassWeaverError

TransformFunction = Callable[[Any, str, bytes], Optional[bytes]]


@dataclass
class TransformResult:
    """Result of invoking a transformer on one class."""

    class_name: str
    content: Optional[bytes]
    transformer_name: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def noop(self) -> bool:
        """True when the transformer asked to leave the class untouched."""
        return not self.content


class TransformError(ClassWeaverError):
    """A transformer raised while processing a class."""

    def __init__(
        self,
        message: str,
        class_name: Optional[str] = None,
        transformer_name: Optional[str] = None,
    ):
        self.class_name = class_name
        self.transformer_name = transformer_name
        super().__init__(message, ErrorCode.TRANSFORM_FAILED)


class TransformerConfigError(ClassWeaverError):
    """The configured transformer cannot be resolved or instantiated."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.DEPENDENCY_ERROR):
        super().__init__(message, error_code)


class ClassTransformer(ABC):
    """Abstract base class for class file transformers.

    Subclasses must have a no-argument constructor when they are
    resolved by name.
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name or self.__class__.__name__

    @abstractmethod
    def transform(self, loader: Any, class_name: str, original: bytes) -> Optional[bytes]:
        """Transform one class.

        Args:
            loader: Classpath context for looking up other classes
            class_name: Fully qualified class name
            original: Untouched class file bytes

        Returns:
            Replacement bytes, or None / b"" for no change
        """

    def __call__(self, loader: Any, class_name: str, original: bytes) -> Optional[bytes]:
        return self.transform(loader, class_name, original)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name}>"


class FunctionTransformer(ClassTransformer):
    """Adapter turning a plain callable into a ClassTransformer."""

    def __init__(self, function: TransformFunction, name: Optional[str] = None):
        super().__init__(name or getattr(function, "__qualname__", None) or repr(function))
        self._function = function

    def transform(self, loader: Any, class_name: str, original: bytes) -> Optional[bytes]:
        return self._function(loader, class_name, original)


class IdentityTransformer(ClassTransformer):
    """Leaves every class untouched.

    Useful for rebuilding an archive without changing any class.
    """

    def transform(self, loader: Any, class_name: str, original: bytes) -> Optional[bytes]:
        return None
