"""Console output abstraction.

Pipeline code reports progress through `ConsoleProtocol` so tests can capture
messages with `MockConsole` while the CLI uses Rich. Verbosity is handled
here: `info` is silenced in quiet mode and `debug` only prints in verbose
mode. Errors always go to stderr.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

from cdr.core.config import Verbosity

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()
    HEADER = auto()
    DETAIL = auto()

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Interface for progress and diagnostic output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message unconditionally (stdout)."""
        ...

    def info(self, message: str) -> None:
        """Progress message; suppressed in quiet mode."""
        ...

    def debug(self, message: str) -> None:
        """Detail message; only shown in verbose mode."""
        ...

    def success(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None:
        """Error message (stderr)."""
        ...

    def detail(self, message: str) -> None:
        """Continuation line of an error or its hint (stderr, never suppressed)."""
        ...

    def header(self, message: str) -> None: ...


class RichConsole:
    """Production console backed by Rich."""

    def __init__(self, verbosity: Verbosity = Verbosity.NORMAL) -> None:
        from rich.console import Console

        self._out = Console(highlight=False)
        self._err = Console(stderr=True, highlight=False)
        self._verbosity = verbosity
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.HEADER: "blue bold",
        }

    @property
    def _quiet(self) -> bool:
        return self._verbosity == Verbosity.QUIET

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._out.print(message, style=rich_style, markup=False)
        else:
            self._out.print(message, markup=False)

    def info(self, message: str) -> None:
        if not self._quiet:
            self._out.print(message, markup=False)

    def debug(self, message: str) -> None:
        if self._verbosity == Verbosity.VERBOSE:
            self._out.print(message, style="dim", markup=False)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._out.print(f"[green]OK[/green] {_escape(message)}")

    def warning(self, message: str) -> None:
        self._err.print(f"[yellow]warning:[/yellow] {_escape(message)}")

    def error(self, message: str) -> None:
        self._err.print(f"[red bold]error:[/red bold] {_escape(message)}")

    def detail(self, message: str) -> None:
        self._err.print(message, style="dim", markup=False)

    def header(self, message: str) -> None:
        if not self._quiet:
            self._out.print(f"\n[blue bold]{_escape(message)}[/blue bold]")


def _escape(message: str) -> str:
    from rich.markup import escape

    return escape(message)


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console that records everything, for tests.

    Unlike RichConsole it keeps `debug` messages regardless of verbosity so
    tests can assert on them.
    """

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.INFO))

    def debug(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.DIM))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def detail(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.DETAIL))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def clear(self) -> None:
        self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    @property
    def errors(self) -> list[str]:
        return [o.message for o in self.outputs if o.style == Style.ERROR]

    @property
    def details(self) -> list[str]:
        return [o.message for o in self.outputs if o.style == Style.DETAIL]

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)
