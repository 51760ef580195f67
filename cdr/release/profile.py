"""Per-OS target profiles.

Everything that differs between the Windows and Posix releases is captured
here once, so the pipeline code reads the same on every host and only
consults profile fields.
"""

from __future__ import annotations

from dataclasses import dataclass

from cdr.core.config import BitWidth
from cdr.platform.detection import TargetOS, detect_os

__all__ = ["PROFILES", "TargetProfile", "detect_profile", "profile_for"]


@dataclass(frozen=True, slots=True)
class TargetProfile:
    """Build and layout conventions for one target OS.

    Attributes:
        os: Target OS; its value names the `dmd2/<os>` directory.
        work_dir_name: Name of the default clone workspace under the temp dir.
        makefile32: Makefile used for 32-bit builds.
        makefile64: Makefile used for 64-bit builds.
        make: Make executable.
        exe: Executable suffix.
        lib: Static library suffix.
        obj: Object file suffix.
        dll: Shared library suffix.
        generated_docs: Directory (relative to the clone root) holding the
            built dlang.org site.
        lib_phobos32: Phobos library base name for 32-bit.
        lib_phobos64: Phobos library base name for 64-bit.
        suffix32: Suffix of the 32-bit bin/lib directories.
        suffix64: Suffix of the 64-bit bin/lib directories.
        jobs: Parallel make jobs (None: do not pass -j).
        build_64bit_tools: Build dmd and the tools in 64-bit passes.
        lib64_requires_dmd32: A 64-bit library build needs a 32-bit dmd, even
            when only 64-bit output was requested.
        ships_32bit_tools: Release includes 32-bit executables.
        ships_64bit_tools: Release includes 64-bit executables.
        universal_binaries: Both widths are merged into one library.
        dmc_toolchain: Builds use DMC/OPTLINK (sc.ini, CHM docs, gcstub
            objects, MSVC for 64-bit).
        export_dynamic: Link with --export-dynamic.
        dlang_org_target: Make target building the dlang.org site.
    """

    os: TargetOS
    work_dir_name: str
    makefile32: str
    makefile64: str
    make: str
    exe: str
    lib: str
    obj: str
    dll: str
    generated_docs: str
    lib_phobos32: str
    lib_phobos64: str
    suffix32: str
    suffix64: str
    jobs: int | None = 4
    build_64bit_tools: bool = True
    lib64_requires_dmd32: bool = False
    ships_32bit_tools: bool = True
    ships_64bit_tools: bool = True
    universal_binaries: bool = False
    dmc_toolchain: bool = False
    export_dynamic: bool = True
    dlang_org_target: str | None = "html"

    @property
    def os_name(self) -> str:
        return self.os.value

    @property
    def compiler_conf(self) -> str:
        """Name of the compiler configuration file dmd reads."""
        return "sc.ini" if self.dmc_toolchain else "dmd.conf"

    def makefile(self, bits: BitWidth) -> str:
        return self.makefile32 if bits == BitWidth.B32 else self.makefile64

    def suffix(self, bits: BitWidth) -> str:
        return self.suffix32 if bits == BitWidth.B32 else self.suffix64

    def lib_phobos(self, bits: BitWidth) -> str:
        return self.lib_phobos32 if bits == BitWidth.B32 else self.lib_phobos64

    def exe_name(self, name: str) -> str:
        return f"{name}{self.exe}"

    def builds_host_tools(self, bits: BitWidth) -> bool:
        """True if dmd and the tools are built in a pass of this width."""
        return self.build_64bit_tools or bits == BitWidth.B32

    def ships_tools(self, bits: BitWidth) -> bool:
        return self.ships_32bit_tools if bits == BitWidth.B32 else self.ships_64bit_tools


_POSIX = dict(
    work_dir_name=".create_dmd_release",
    makefile32="posix.mak",
    makefile64="posix.mak",
    make="make",
    exe="",
    lib=".a",
    obj=".o",
    dll=".so",
    generated_docs="dlang.org/web",
    lib_phobos32="libphobos2",
    lib_phobos64="libphobos2",
    suffix32="32",
    suffix64="64",
)

PROFILES: dict[TargetOS, TargetProfile] = {
    TargetOS.WINDOWS: TargetProfile(
        os=TargetOS.WINDOWS,
        # MS HTML Help Workshop fails on paths with a leading dot.
        work_dir_name="create_dmd_release",
        makefile32="win32.mak",
        makefile64="win64.mak",
        make="make",
        exe=".exe",
        lib=".lib",
        obj=".obj",
        dll=".dll",
        generated_docs="dlang.org",
        lib_phobos32="phobos",
        lib_phobos64="phobos64",
        suffix32="",
        suffix64="64",
        jobs=None,
        build_64bit_tools=False,
        lib64_requires_dmd32=True,
        ships_64bit_tools=False,
        dmc_toolchain=True,
        export_dynamic=False,
        dlang_org_target=None,
    ),
    TargetOS.LINUX: TargetProfile(os=TargetOS.LINUX, **_POSIX),
    TargetOS.FREEBSD: TargetProfile(os=TargetOS.FREEBSD, **{**_POSIX, "make": "gmake"}),
    TargetOS.OSX: TargetProfile(
        os=TargetOS.OSX,
        **{**_POSIX, "dll": ".dylib", "suffix32": "", "suffix64": ""},
        ships_32bit_tools=False,
        universal_binaries=True,
        export_dynamic=False,
    ),
}


def profile_for(target: TargetOS) -> TargetProfile:
    return PROFILES[target]


def detect_profile() -> TargetProfile:
    """Profile of the host OS."""
    return PROFILES[detect_os()]
