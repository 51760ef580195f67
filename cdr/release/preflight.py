"""Checks that run before any stage touches the disk.

A release takes hours; a missing tool should be reported in the first second
rather than halfway through a build. All checks raise `Fail` with a message
naming what is missing.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from cdr.core.config import ReleaseConfig
from cdr.core.errors import Fail
from cdr.git.repository import VcsClient
from cdr.output.console import ConsoleProtocol
from cdr.platform.files import ensure_dir, ensure_file
from cdr.platform.process import probe_tool

from .layout import WorkspacePaths
from .make import BuildTool
from .profile import TargetProfile

__all__ = [
    "OPTLINK_BANNER",
    "OPTLINK_LARGE_ADDRESS_AWARE",
    "REQUIRED_WINDOWS_LIBS",
    "MsvcToolchain",
    "extras_optlink",
    "resolve_msvc",
    "run_preflight",
]

OPTLINK_BANNER = r"OPTLINK \(R\) for Win32"
OPTLINK_LARGE_ADDRESS_AWARE = OPTLINK_BANNER + r".*LA\[RGEADDRESSAWARE\]"

# Import libraries the DMC build links against; only available from extras.
REQUIRED_WINDOWS_LIBS = (
    "user32.lib",
    "kernel32.lib",
    "snn.lib",
    "ws2_32.lib",
    "wsock32.lib",
    "shell32.lib",
    "advapi32.lib",
)


def _tool_problem(cmd: str) -> Fail:
    return Fail(
        "tool_missing",
        f"Problem running '{cmd}'. Please make sure it's correctly installed.",
    )


@dataclass(frozen=True, slots=True)
class MsvcToolchain:
    """Visual C++ and Windows SDK used for 64-bit DMC-profile builds."""

    vc_dir: Path
    sdk_dir: Path
    bin_dir: Path

    def make_variables(self) -> tuple[str, ...]:
        return (
            f"VCDIR={self.vc_dir}",
            f"SDKDIR={self.sdk_dir}",
            f'CC="{self.bin_dir / "cl"}"',
            f'LD="{self.bin_dir / "link"}"',
            f'AR="{self.bin_dir / "lib"}"',
        )


def _strip_separators(value: str) -> str:
    return value.rstrip("\\/")


def resolve_msvc(environ: Mapping[str, str] | None = None) -> MsvcToolchain:
    """Locate MSVC from VCDIR and SDKDIR.

    cl.exe is looked for under `bin/x86_amd64` first (cross compiler), then
    `bin/amd64`. Only paths are resolved here; nothing is executed.

    Raises:
        Fail: If a variable is unset or SDKDIR is not a Windows SDK.
    """
    env = os.environ if environ is None else environ
    vc = env.get("VCDIR", "")
    sdk = env.get("SDKDIR", "")
    if not vc or not sdk:
        raise Fail(
            "tool_missing",
            "Environment variables VCDIR and SDKDIR must both be set. For example:\n"
            "set VCDIR=C:\\Program Files (x86)\\Microsoft Visual Studio 8\\VC\\\n"
            "set SDKDIR=C:\\Program Files\\Microsoft SDKs\\Windows\\v7.1\\",
        )

    vc_dir = Path(_strip_separators(vc))
    sdk_dir = Path(_strip_separators(sdk))

    bin_dir = vc_dir / "bin" / "x86_amd64"
    if not (bin_dir / "cl.exe").exists():
        bin_dir = vc_dir / "bin" / "amd64"

    try:
        for sub in ("", "Bin", "Include", "Lib"):
            ensure_dir(sdk_dir / sub if sub else sdk_dir)
    except Fail as e:
        raise Fail(
            "tool_missing", f"SDKDIR doesn't appear to be a proper Windows SDK: {sdk}"
        ) from e

    return MsvcToolchain(vc_dir=vc_dir, sdk_dir=sdk_dir, bin_dir=bin_dir)


def extras_optlink(paths: WorkspacePaths) -> Path:
    """The OPTLINK the build must use: the one from the user's extras."""
    base = paths.custom_extras_dir or paths.origin_dir
    return base / "dmd2" / "windows" / "bin" / "link.exe"


def _check_dmc(paths: WorkspacePaths, profile: TargetProfile, console: ConsoleProtocol) -> None:
    with tempfile.TemporaryDirectory(prefix="cdr-preflight-") as tmp:
        scratch = Path(tmp)
        dummy = scratch / "dummy.obj.src"
        dummy.write_text("", encoding="utf-8")
        dummy_c = scratch / "dummy.c"
        dummy_c.write_text("void main(){}", encoding="utf-8")

        # DMC and DM make do not exit 0 from their help screens.
        console.debug("Checking: dmc -c")
        if not probe_tool(["dmc", "-c", str(dummy)], cwd=scratch):
            raise _tool_problem("dmc")
        console.debug(f"Checking: {profile.make} -f")
        if not probe_tool([profile.make, "-f", str(dummy)], cwd=scratch):
            raise _tool_problem(profile.make)

        if not probe_tool(["dmc", str(dummy_c), "-L/?"], cwd=scratch, pattern=OPTLINK_BANNER):
            raise Fail("tool_missing", "DMC appears to be missing OPTLINK")

        optlink = extras_optlink(paths)
        if not probe_tool([str(optlink), "/?"], cwd=scratch, pattern=OPTLINK_BANNER):
            raise Fail(
                "tool_missing",
                f"You must have a valid OPTLINK in: {paths.display(optlink)}",
            )
        if not probe_tool([str(optlink), "/?"], cwd=scratch, pattern=OPTLINK_LARGE_ADDRESS_AWARE):
            raise Fail(
                "tool_missing",
                "The OPTLINK in your --extras=... directory does not support "
                "/LARGEADDRESSAWARE. You must use a newer OPTLINK.",
                hint="See <http://wiki.dlang.org/Building_OPTLINK>",
            )

    lib_dir = optlink.parent.parent / "lib"
    for name in REQUIRED_WINDOWS_LIBS:
        ensure_file(lib_dir / name)


def run_preflight(
    config: ReleaseConfig,
    paths: WorkspacePaths,
    profile: TargetProfile,
    console: ConsoleProtocol,
    vcs: VcsClient,
    make: BuildTool,
    *,
    environ: Mapping[str, str] | None = None,
) -> MsvcToolchain | None:
    """Verify the extras tree and every external tool the planned stages use.

    Returns:
        The MSVC toolchain when a 64-bit DMC-profile build is planned.

    Raises:
        Fail: On the first missing directory or tool.
    """
    if paths.custom_extras_dir is not None:
        ensure_dir(paths.custom_extras_dir)

    if not config.skip_clone:
        console.debug("Checking: git --help")
        if not vcs.probe(paths.origin_dir):
            raise _tool_problem("git")

    if profile.dmc_toolchain:
        _check_dmc(paths, profile, console)
    else:
        console.debug(f"Checking: {profile.make} --help")
        if not make.probe(paths.origin_dir):
            raise _tool_problem(profile.make)

    if not (profile.dmc_toolchain and config.do64):
        return None

    msvc = resolve_msvc(environ)
    console.debug(f"VCDIR:  {paths.display(msvc.vc_dir)}")
    console.debug(f"SDKDIR: {paths.display(msvc.sdk_dir)}")
    cl = msvc.bin_dir / "cl.exe"
    if not probe_tool([str(cl), "/HELP"], cwd=paths.origin_dir):
        raise _tool_problem(str(cl))
    return msvc
