"""Git client used by the release pipeline.

Only two operations are needed: a shallow clone of a tag/branch and the list
of files tracked in a checkout (so that releases only ship committed
content). Both return Result types.

Usage:
    git = GitClient()
    match git.clone(url, dest, branch="v2.064"):
        case Ok(_):
            ...
        case Err(e):
            print(e.message)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from cdr.core.result import Err, Ok, Result
from cdr.platform.process import ProcessError, probe_tool
from cdr.platform.process import run as run_process
from cdr.platform.process import run_silent

_GIT_TIMEOUT_SECONDS = 60.0

__all__ = [
    "GitClient",
    "GitError",
    "VcsClient",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed.
        message: Error message.
        cwd: Directory git ran from.
        command_line: Full command line.
        returncode: Process return code.
    """

    command: str
    message: str
    cwd: Path
    command_line: str = ""
    returncode: int = 1

    @classmethod
    def from_process(cls, command: str, error: ProcessError) -> GitError:
        return cls(
            command=command,
            message=error.stderr.strip() or f"git {command} failed",
            cwd=error.cwd,
            command_line=error.command_line,
            returncode=error.returncode,
        )


class VcsClient(Protocol):
    """What the pipeline needs from version control."""

    def probe(self, cwd: Path) -> bool:
        """True if the client is installed and runs."""
        ...

    def clone(
        self, url: str, dest: Path, branch: str | None = None, *, shallow: bool = True
    ) -> Result[None, GitError]: ...

    def tracked_files(self, directory: Path) -> Result[list[str], GitError]:
        """Tracked files under `directory`, relative to it, in git's order."""
        ...


class GitClient:
    """VcsClient backed by the command-line git client.

    Attributes:
        quiet: Pass -q to clone.
    """

    def __init__(self, *, quiet: bool = True, executable: str = "git") -> None:
        self.quiet = quiet
        self.executable = executable

    def probe(self, cwd: Path) -> bool:
        return probe_tool([self.executable, "--help"], cwd=cwd)

    def clone_command(
        self, url: str, dest: Path, branch: str | None = None, *, shallow: bool = True
    ) -> list[str]:
        cmd = [self.executable, "clone"]
        if shallow:
            cmd += ["--depth", "1"]
        if branch:
            cmd += ["-b", branch]
        if self.quiet:
            cmd.append("-q")
        cmd += [url, str(dest)]
        return cmd

    def clone(
        self, url: str, dest: Path, branch: str | None = None, *, shallow: bool = True
    ) -> Result[None, GitError]:
        """Clone `url` into `dest` (which should be absent or empty)."""
        cmd = self.clone_command(url, dest, branch, shallow=shallow)
        result = run_silent(cmd, cwd=dest.parent)
        match result:
            case Err(e):
                return Err(GitError.from_process("clone", e))
            case Ok(_):
                return Ok(None)

    def tracked_files(self, directory: Path) -> Result[list[str], GitError]:
        """List files tracked by git under `directory`.

        Paths are relative to `directory` with "/" separators, as printed by
        `git ls-files`.
        """
        result = run_process(
            [self.executable, "ls-files", "-z"], cwd=directory, timeout=_GIT_TIMEOUT_SECONDS
        )
        match result:
            case Err(e):
                return Err(GitError.from_process("ls-files", e))
            case Ok(stdout):
                return Ok(self._parse_ls_files(stdout))

    @staticmethod
    def _parse_ls_files(output: str) -> list[str]:
        return [name for name in output.split("\0") if name]
