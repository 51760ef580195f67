"""Non-versioned support files every release must contain.

These files (DigitalMars linker and import libraries on Windows, object file
dumpers on Posix) are not built from source: they come only from the extras
trees. After packaging, each expected file is checked and all misses are
reported together so an incomplete extras tree can be fixed in one pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from cdr.core.config import BitWidth
from cdr.core.errors import ReleaseError
from cdr.core.result import Err, Ok, Result
from cdr.output.console import ConsoleProtocol
from cdr.platform.detection import TargetOS

from .layout import WorkspacePaths

__all__ = [
    "EXPECTED_EXTRAS",
    "ManifestEntry",
    "expected_files",
    "find_missing",
    "verify_manifest",
]


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    """A required file inside a bin or lib directory.

    `bits=None` means the file is required whatever widths are released.
    """

    kind: Literal["bin", "lib"]
    name: str
    bits: BitWidth | None = None

    def path(self, paths: WorkspacePaths, bits: BitWidth) -> Path:
        directory = paths.bin_dir(bits) if self.kind == "bin" else paths.lib_dir(bits)
        return directory / self.name


def _bins(names: tuple[str, ...], bits: BitWidth | None = None) -> tuple[ManifestEntry, ...]:
    return tuple(ManifestEntry("bin", n, bits) for n in names)


def _libs(names: tuple[str, ...], bits: BitWidth | None = None) -> tuple[ManifestEntry, ...]:
    return tuple(ManifestEntry("lib", n, bits) for n in names)


EXPECTED_EXTRAS: dict[TargetOS, tuple[ManifestEntry, ...]] = {
    # The Windows release always ships the 32-bit DMC toolchain in bin/lib.
    TargetOS.WINDOWS: _bins(
        (
            "lib.exe",
            "link.exe",
            "make.exe",
            "replace.exe",
            "shell.exe",
            "windbg.exe",
            "dm.dll",
            "eecxxx86.dll",
            "emx86.dll",
            "mspdb41.dll",
            "shcv.dll",
            "tlloc.dll",
        )
    )
    + _libs(
        (
            "advapi32.lib",
            "COMCTL32.lib",
            "comdlg32.lib",
            "CTL3D32.lib",
            "gdi32.lib",
            "kernel32.lib",
            "ODBC32.lib",
            "ole32.lib",
            "OLEAUT32.lib",
            "rpcrt4.lib",
            "shell32.lib",
            "snn.lib",
            "user32.lib",
            "uuid.lib",
            "winmm.lib",
            "winspool.lib",
            "WS2_32.lib",
            "wsock32.lib",
        )
    ),
    TargetOS.LINUX: _bins(("dumpobj", "obj2asm"), BitWidth.B32)
    + _bins(("dumpobj", "obj2asm"), BitWidth.B64),
    TargetOS.OSX: _bins(("dumpobj", "obj2asm", "shell")),
    TargetOS.FREEBSD: _bins(("dumpobj", "obj2asm", "shell"), BitWidth.B32),
}


def expected_files(paths: WorkspacePaths, bits: tuple[BitWidth, ...]) -> list[Path]:
    """Absolute paths that must exist for a release of the given widths."""
    out: list[Path] = []
    for entry in EXPECTED_EXTRAS.get(paths.profile.os, ()):
        if entry.bits is None:
            # Width-independent entries live in the first requested width's dir
            # (identical dirs on the profiles that use them).
            target = BitWidth.B32 if paths.profile.os == TargetOS.WINDOWS else bits[0]
            candidate = entry.path(paths, target)
        elif entry.bits in bits:
            candidate = entry.path(paths, entry.bits)
        else:
            continue
        if candidate not in out:
            out.append(candidate)
    return out


def find_missing(paths: WorkspacePaths, bits: tuple[BitWidth, ...]) -> list[Path]:
    return [p for p in expected_files(paths, bits) if not p.is_file()]


def verify_manifest(
    paths: WorkspacePaths,
    bits: tuple[BitWidth, ...],
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    """Check every expected support file; report all misses at once."""
    console.info("Ensuring non-versioned support files exist")

    missing = find_missing(paths, bits)
    if not missing:
        return Ok(None)

    console.error("The following files are missing:")
    for path in missing:
        console.detail(paths.display(path))

    return Err(
        ReleaseError(
            kind="manifest_incomplete",
            message=(
                f"{len(missing)} support file(s) were missing from the appropriate dirs:\n"
                + "\n".join(_extras_dirs_to_check(paths, bits))
            ),
            hint="Add the missing files to your --extras directory and run again.",
        )
    )


def _extras_dirs_to_check(paths: WorkspacePaths, bits: tuple[BitWidth, ...]) -> list[str]:
    base = paths.custom_extras_dir or paths.release_dir
    dirs: list[str] = []
    for width in bits:
        for directory in (paths.bin_dir(width), paths.lib_dir(width)):
            rel = directory.relative_to(paths.release_dir)
            shown = str(base / rel)
            if shown not in dirs:
                dirs.append(shown)
    return dirs
