"""ClassWeaver Rules System.

This module provides the path filter that decides which discovered class
files are handed to the transformer:
- PathFilter: Regex search over candidate paths, or accept-all
"""

from .patterns import ACCEPT_ALL, PathFilter

__all__ = [
    "ACCEPT_ALL",
    "PathFilter",
]
