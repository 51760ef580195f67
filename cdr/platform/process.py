"""Subprocess execution with Result-based error handling.

Every call takes an explicit working directory; nothing here changes the
process cwd.

Usage:
    result = run(["git", "ls-files"], cwd=repo_dir)
    match result:
        case Ok(stdout):
            print(stdout)
        case Err(error):
            print(error.describe())
"""

from __future__ import annotations

import os
import re
import subprocess
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from cdr.core.result import Err, Ok, Result

__all__ = ["ProcessError", "merged_env", "probe_tool", "run", "run_silent"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        cwd: Directory the command ran from.
        returncode: Exit code (-1 if the process could not be started).
        stdout: Standard output (may be empty).
        stderr: Standard error (may be empty).
    """

    command: tuple[str, ...]
    cwd: Path
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def command_line(self) -> str:
        return " ".join(self.command)

    def describe(self, display: Callable[[Path], str] = str) -> str:
        """One-line diagnostic naming the command and its directory."""
        return f"Command failed (ran from dir '{display(self.cwd)}'): {self.command_line}"

    def __str__(self) -> str:
        return f"{self.command_line} failed (exit {self.returncode})"


def merged_env(overrides: Mapping[str, str] | None) -> dict[str, str] | None:
    """Current environment plus `overrides`, or None to inherit unchanged."""
    if not overrides:
        return None
    env = os.environ.copy()
    env.update(overrides)
    return env


def _flush() -> None:
    # Keep our own buffered output ahead of the child's.
    sys.stdout.flush()
    sys.stderr.flush()


def run(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return its stdout.

    Args:
        cmd: Command and arguments.
        cwd: Working directory for the command.
        env: Extra environment variables (merged over the current env).
        timeout: Maximum seconds to wait (None for no limit).

    Returns:
        Ok(stdout) on exit 0, Err(ProcessError) otherwise.
    """
    _flush()
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=merged_env(env),
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return Err(
            ProcessError(
                command=tuple(cmd),
                cwd=cwd,
                returncode=-1,
                stderr=f"Command timed out after {timeout}s",
            )
        )
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), cwd=cwd, returncode=-1, stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                cwd=cwd,
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)


def run_silent(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
    *,
    hide_stdout: bool = False,
) -> Result[None, ProcessError]:
    """Execute a command with output going straight to the terminal.

    Args:
        cmd: Command and arguments.
        cwd: Working directory for the command.
        env: Extra environment variables (merged over the current env).
        hide_stdout: Discard the child's stdout (stderr is kept).

    Returns:
        Ok(None) on exit 0, Err(ProcessError) otherwise.
    """
    _flush()
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=merged_env(env),
            stdout=subprocess.DEVNULL if hide_stdout else None,
            check=False,
        )
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), cwd=cwd, returncode=-1, stderr=str(e)))

    if proc.returncode != 0:
        return Err(ProcessError(command=tuple(cmd), cwd=cwd, returncode=proc.returncode))

    return Ok(None)


def probe_tool(cmd: list[str], cwd: Path, pattern: str | None = None) -> bool:
    """Check that a tool runs, optionally matching its output.

    The exit code is ignored: several toolchain programs return non-zero from
    their help screens. stderr is discarded.

    Args:
        cmd: Probe command line, e.g. ["make", "--help"].
        cwd: Working directory.
        pattern: Regex searched in stdout (`.` matches newlines).

    Returns:
        False if the tool cannot be started or its output does not match.
    """
    _flush()
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError:
        return False

    if pattern and not re.search(pattern, proc.stdout or "", re.DOTALL):
        return False
    return True
