"""Core types: results, exit codes, configuration."""

from .config import BitWidth, ConfigError, ReleaseConfig, Verbosity
from .errors import ErrorCode, Fail, ReleaseError, ReleaseErrorKind
from .result import Err, Ok, Result, is_err, is_ok
from .settings import Settings, SettingsError, load_settings

__all__ = [
    # config
    "BitWidth",
    "ConfigError",
    "ReleaseConfig",
    "Verbosity",
    # errors
    "ErrorCode",
    "Fail",
    "ReleaseError",
    "ReleaseErrorKind",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
    # settings
    "Settings",
    "SettingsError",
    "load_settings",
]
