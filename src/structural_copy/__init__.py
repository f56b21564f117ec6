"""Public package surface for the structural-copy project."""

from .categories import Category, classify
from .compare import first_difference
from .config import DEFAULT_DETECT_CYCLES_AFTER, DEFAULT_MAX_CHAIN_LENGTH, CopyConfig
from .copier import Copier, deep_copy, try_copy
from .copy_arguments import copy_arguments
from .errors import (
    ChainTooLongError,
    CircularReferenceError,
    CopyError,
    UnexpectedCopyError,
)
from .hooks import SupportsDeepCopy
from .version import __version__

__all__ = [
    "DEFAULT_DETECT_CYCLES_AFTER",
    "DEFAULT_MAX_CHAIN_LENGTH",
    "Category",
    "ChainTooLongError",
    "CircularReferenceError",
    "Copier",
    "CopyConfig",
    "CopyError",
    "SupportsDeepCopy",
    "UnexpectedCopyError",
    "__version__",
    "classify",
    "copy_arguments",
    "deep_copy",
    "first_difference",
    "try_copy",
]
