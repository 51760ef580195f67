"""Ok/Err values returned by the adapters around git, make and the filesystem.

Adapters never raise for an expected failure; the caller decides whether the
failure aborts the run (pipeline stages raise `Fail`) or is reported directly
(the CLI calls `exit_on_error`).

    match git.tracked_files(checkout):
        case Ok(files):
            copy_tree(files, checkout, dest)
        case Err(error):
            console.error(error.message)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeGuard


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T

    def unwrap(self) -> T:
        return self.value

    def map[U](self, f: Callable[[T], U]) -> Ok[U]:
        return Ok(f(self.value))


@dataclass(frozen=True, slots=True)
class Err[E]:
    error: E

    def unwrap(self) -> None:
        """Raises ValueError: an Err carries no value."""
        raise ValueError(f"unwrap() on Err: {self.error}")

    def map[T, U](self, f: Callable[[T], U]) -> Err[E]:
        return self


type Result[T, E] = Ok[T] | Err[E]


def is_ok[T, E](result: Result[T, E]) -> TypeGuard[Ok[T]]:
    return isinstance(result, Ok)


def is_err[T, E](result: Result[T, E]) -> TypeGuard[Err[E]]:
    return isinstance(result, Err)
