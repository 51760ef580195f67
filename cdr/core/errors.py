"""Exit codes and expected-failure types.

Two kinds of failure exist:

- Expected failures (missing tool, missing file, a command exiting non-zero,
  an incomplete extras tree). These are described by `ReleaseError`; deep
  inside a stage they travel as a `Fail` exception and the pipeline turns
  them back into `Err(ReleaseError)` at its boundary. The CLI prints the
  message and exits with `ErrorCode.FAILURE`.
- Anything else is a defect in the tool and propagates with a traceback.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Literal

__all__ = ["ErrorCode", "Fail", "ReleaseError", "ReleaseErrorKind"]


class ErrorCode(IntEnum):
    """Exit codes for the CLI. Values are part of the public contract."""

    OK = 0
    FAILURE = 1

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK


ReleaseErrorKind = Literal[
    "invalid_input",
    "tool_missing",
    "path_missing",
    "command_failed",
    "remove_failed",
    "manifest_incomplete",
    "archive_invalid",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def __str__(self) -> str:
        return self.message


class Fail(Exception):
    """Raised inside a stage to abort the run with an expected failure."""

    def __init__(self, kind: ReleaseErrorKind, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.error = ReleaseError(kind=kind, message=message, hint=hint)
