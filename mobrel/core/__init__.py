"""Core domain types and logic."""

from .config import MissingConfigError, ReleaseConfig
from .errors import ErrorCode
from .result import Err, Ok, Result

__all__ = [
    # config
    "MissingConfigError",
    "ReleaseConfig",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
]
