"""ClassWeaver - bytecode transformation for compiled class directories and jars."""

from classweaver.core.constants import CLASSWEAVER_VERSION

__version__ = CLASSWEAVER_VERSION
