"""Build tool adapter.

Components are built by invoking make with a fixed command-line contract:

    make [-jN] MODEL=<32|64> DMD=<path> RELEASE=1 LATEST=<tag> -f <makefile> [targets] [VAR=val ...]

`MakeInvocation` describes one call; `Make` runs it. The pipeline only depends
on the `BuildTool` protocol so tests can substitute a fake.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from cdr.core.config import BitWidth
from cdr.core.result import Result
from cdr.platform.process import ProcessError, probe_tool, run_silent

__all__ = ["BuildTool", "Make", "MakeInvocation"]


@dataclass(frozen=True, slots=True)
class MakeInvocation:
    """One make call.

    Attributes:
        cwd: Directory make runs in.
        makefile: Makefile passed with -f.
        model: Target bit-width (MODEL=).
        latest: Tag or branch being released (LATEST=).
        targets: Make targets; empty for the default target.
        variables: Extra "NAME=value" assignments, appended last.
        dmd: Compiler the build uses (DMD=); None for clean invocations.
        jobs: Parallel jobs (-j); None to omit.
        release: Pass RELEASE=1.
    """

    cwd: Path
    makefile: str
    model: BitWidth
    latest: str
    targets: tuple[str, ...] = ()
    variables: tuple[str, ...] = ()
    dmd: Path | None = None
    jobs: int | None = None
    release: bool = True

    @property
    def is_clean(self) -> bool:
        return "clean" in self.targets

    def command(self, make_exe: str = "make") -> list[str]:
        cmd = [make_exe]
        if self.jobs:
            cmd.append(f"-j{self.jobs}")
        cmd.append(f"MODEL={self.model.value}")
        if self.dmd is not None:
            cmd.append(f"DMD={self.dmd}")
        if self.release:
            cmd.append("RELEASE=1")
        cmd.append(f"LATEST={self.latest}")
        cmd += ["-f", self.makefile]
        cmd += list(self.targets)
        cmd += list(self.variables)
        return cmd


class BuildTool(Protocol):
    """What the pipeline needs from the build tool."""

    def probe(self, cwd: Path) -> bool: ...

    def run(self, invocation: MakeInvocation) -> Result[None, ProcessError]: ...


class Make:
    """BuildTool backed by a make executable.

    stdout of the child is discarded unless `verbose`; its stderr always
    reaches the terminal.
    """

    def __init__(self, executable: str = "make", *, verbose: bool = False) -> None:
        self.executable = executable
        self.verbose = verbose

    def probe(self, cwd: Path) -> bool:
        return probe_tool([self.executable, "--help"], cwd=cwd)

    def run(self, invocation: MakeInvocation) -> Result[None, ProcessError]:
        return run_silent(
            invocation.command(self.executable),
            cwd=invocation.cwd,
            hide_stdout=not self.verbose,
        )
