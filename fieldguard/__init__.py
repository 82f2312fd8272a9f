"""fieldguard: validation and normalization runtime for structured records."""

from .result import Err, Ok, Result, err, ok
from .validation import *  # noqa: F401,F403
from .validation import __all__ as _validation_all

__version__ = "0.1.0"

__all__ = ["Err", "Ok", "Result", "err", "ok", *_validation_all]
