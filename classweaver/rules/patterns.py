#!/usr/bin/env python3
r"""Path filters deciding which class files are transformed.

A filter is built once per run from an optional regular expression:
- No pattern: every path is accepted
- Pattern: compiled once and searched (not full-matched) against the
  candidate's path string, so a match anywhere in the path accepts it

Paths are matched exactly as given. There is no case folding and no
separator normalization, so anchors such as ``^`` or ``\.class$`` mean
what they say.

Example:
    >>> accept = PathFilter.from_pattern("Foo")
    >>> accept("a/b/Foo.class")
    True
    >>> accept("a/b/Bar.class")
    False
"""

from pathlib import Path
from typing import Optional, Pattern, Union

from classweaver.core.validators import validate_regex

PathArg = Union[str, Path]


class PathFilter:
    """Predicate over candidate file paths.

    Instances are callable; ``filter(path)`` is the same as
    ``filter.accept(path)``.
    """

    def __init__(self, pattern: Optional[str] = None):
        """Initialize path filter.

        Args:
            pattern: Regular expression, or None to accept everything

        Raises:
            ValidationError: If the pattern does not compile
        """
        self.pattern = pattern
        self._compiled: Optional[Pattern[str]] = (
            validate_regex(pattern) if pattern is not None else None
        )

    @classmethod
    def from_pattern(cls, pattern: Optional[str]) -> "PathFilter":
        """Build a filter; an empty string counts as unconfigured."""
        return cls(pattern or None)

    @property
    def accepts_all(self) -> bool:
        """True when no pattern is configured."""
        return self._compiled is None

    def accept(self, path: PathArg) -> bool:
        """Check whether a candidate path is eligible.

        Args:
            path: Candidate file path

        Returns:
            True if the path should be transformed
        """
        if self._compiled is None:
            return True
        return self._compiled.search(str(path)) is not None

    def __call__(self, path: PathArg) -> bool:
        return self.accept(path)

    def __repr__(self) -> str:
        if self._compiled is None:
            return "<PathFilter accept-all>"
        return f"<PathFilter pattern={self.pattern!r}>"


ACCEPT_ALL = PathFilter()
