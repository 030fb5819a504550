"""ClassWeaver Core - Shared utilities.

Constants, the exception hierarchy, file operations and validators used
throughout the ClassWeaver codebase.

Import specific functions from submodules:
    from classweaver.core.constants import ErrorCode
    from classweaver.core.errors import ClassWeaverError
    from classweaver.core import file_ops
    from classweaver.core import validators
"""

from classweaver.core import constants, errors, file_ops, validators

__all__ = [
    "constants",
    "errors",
    "file_ops",
    "validators",
]
