"""Host operating system detection.

Releases are always produced natively, so the host OS selects the target
profile. Detection is cached.
"""

from __future__ import annotations

import sys as _sys
from enum import Enum
from functools import lru_cache

__all__ = [
    "TargetOS",
    "UnsupportedPlatform",
    "detect_os",
    "is_windows",
    "supports_symlinks",
]


class UnsupportedPlatform(RuntimeError):
    """The host OS has no release profile."""


class TargetOS(Enum):
    """Operating systems with a DMD release layout.

    The value is the directory name used inside the release (`dmd2/<os>`).
    """

    WINDOWS = "windows"
    LINUX = "linux"
    OSX = "osx"
    FREEBSD = "freebsd"

    def __str__(self) -> str:
        return self.value

    @property
    def is_posix(self) -> bool:
        return self != TargetOS.WINDOWS


@lru_cache(maxsize=1)
def detect_os() -> TargetOS:
    """Detect the current operating system (cached).

    Raises:
        UnsupportedPlatform: For hosts DMD does not ship releases for.
    """
    system = _sys.platform.lower()
    if system.startswith("linux"):
        return TargetOS.LINUX
    if system.startswith("darwin"):
        return TargetOS.OSX
    if system.startswith("freebsd"):
        return TargetOS.FREEBSD
    if system.startswith(("win32", "cygwin", "msys")):
        return TargetOS.WINDOWS
    raise UnsupportedPlatform(f"Unsupported system: {_sys.platform}")


def is_windows() -> bool:
    return _sys.platform.lower().startswith(("win32", "cygwin", "msys"))


def supports_symlinks() -> bool:
    """True where directory copies should recreate symlinks as symlinks."""
    return not is_windows()
