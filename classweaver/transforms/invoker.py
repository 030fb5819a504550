#!/usr/bin/env python3
"""Invocation of the configured transformer.

The invoker owns the transformer for one run:
- resolves and instantiates it lazily, at most once
- calls it with the run's classpath context as the loader
- wraps plug-in exceptions in TransformError naming the class
- keeps per-run statistics

Example:
    >>> invoker = TransformationInvoker("identity", loader=classpath)
    >>> invoker.prepare()
    >>> result = invoker.invoke("com.example.Foo", original_bytes)
    >>> result.noop
    True
"""

import time
from typing import Any, Dict, Optional

from classweaver.infrastructure.logger import get_logger
from classweaver.transforms.base import ClassTransformer, TransformError, TransformResult
from classweaver.transforms.registry import TransformerSpec, resolve_transformer


class TransformationInvoker:
    """Calls one transformer for every eligible class of a run."""

    def __init__(self, spec: TransformerSpec, loader: Any = None):
        """Initialize invoker.

        Args:
            spec: Transformer name, class, instance or callable
            loader: Classpath context passed to every call
        """
        self._spec = spec
        self.loader = loader
        self._transformer: Optional[ClassTransformer] = None
        self._logger = get_logger()
        self._stats = {
            "invocations": 0,
            "transformed": 0,
            "noop": 0,
            "failed": 0,
            "total_duration_ms": 0.0,
        }

    @property
    def transformer(self) -> ClassTransformer:
        """The transformer instance, resolved on first access.

        Raises:
            TransformerConfigError: If the transformer cannot be resolved
        """
        if self._transformer is None:
            self._transformer = resolve_transformer(self._spec)
            self._logger.debug(f"Using transformer {self._transformer!r}")
        return self._transformer

    def prepare(self) -> ClassTransformer:
        """Resolve the transformer now so configuration errors surface early."""
        return self.transformer

    def invoke(self, class_name: str, original: bytes) -> TransformResult:
        """Run the transformer on one class.

        Args:
            class_name: Fully qualified class name
            original: Original class bytes

        Returns:
            TransformResult; ``content`` is None on no-op

        Raises:
            TransformError: If the transformer raised
        """
        transformer = self.transformer
        start_time = time.time()

        try:
            content = transformer.transform(self.loader, class_name, original)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._record(duration_ms, "failed")
            raise TransformError(
                f"{transformer.name} failed on {class_name}: {e}",
                class_name=class_name,
                transformer_name=transformer.name,
            ) from e

        duration_ms = (time.time() - start_time) * 1000

        if content is not None and not isinstance(content, (bytes, bytearray, memoryview)):
            self._record(duration_ms, "failed")
            raise TransformError(
                f"{transformer.name} returned {type(content).__name__} for {class_name}, "
                "expected bytes or None",
                class_name=class_name,
                transformer_name=transformer.name,
            )

        result = TransformResult(
            class_name=class_name,
            content=bytes(content) if content else None,
            transformer_name=transformer.name,
            duration_ms=duration_ms,
        )
        self._record(duration_ms, "noop" if result.noop else "transformed")
        return result

    def _record(self, duration_ms: float, outcome: str) -> None:
        self._stats["invocations"] += 1
        self._stats[outcome] += 1
        self._stats["total_duration_ms"] += duration_ms

    def get_stats(self) -> Dict[str, Any]:
        """Get invocation statistics."""
        stats = self._stats.copy()
        if stats["invocations"] > 0:
            stats["avg_duration_ms"] = stats["total_duration_ms"] / stats["invocations"]
        else:
            stats["avg_duration_ms"] = 0.0
        return stats

    def reset_stats(self) -> None:
        """Reset invocation statistics."""
        for key in self._stats:
            self._stats[key] = 0.0 if key == "total_duration_ms" else 0
