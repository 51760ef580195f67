"""Platform abstraction layer."""

from .detection import (
    TargetOS,
    UnsupportedPlatform,
    detect_os,
    is_windows,
    supports_symlinks,
)
from .process import (
    ProcessError,
    probe_tool,
    run,
    run_silent,
)

__all__ = [
    # detection
    "TargetOS",
    "UnsupportedPlatform",
    "detect_os",
    "is_windows",
    "supports_symlinks",
    # process
    "ProcessError",
    "probe_tool",
    "run",
    "run_silent",
]
