from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import typer

from cdr.core.config import ReleaseConfig, Verbosity
from cdr.core.errors import ErrorCode
from cdr.core.result import Err, Result
from cdr.core.settings import Settings, load_settings
from cdr.output.console import ConsoleProtocol, RichConsole
from cdr.release.layout import WorkspacePaths
from cdr.release.profile import TargetProfile


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: ReleaseConfig
    profile: TargetProfile
    settings: Settings
    paths: WorkspacePaths
    console: ConsoleProtocol


def exit_on_error[T, E](
    result: Result[T, E],
    console: ConsoleProtocol,
    error_code: ErrorCode = ErrorCode.FAILURE,
) -> None:
    """Exit with `error_code` if result is Err, otherwise return.

    Expects error objects to have 'message' and optional 'hint' attributes.
    """
    if isinstance(result, Err):
        error = result.error
        message: str = getattr(error, "message", str(error))
        hint: str | None = getattr(error, "hint", None)
        console.error(message)
        if hint:
            console.detail(f"hint: {hint}")
        raise typer.Exit(code=int(error_code))


def exit_with_code(code: int) -> NoReturn:
    raise typer.Exit(code=code)


def build_context(
    config: ReleaseConfig,
    profile: TargetProfile,
    *,
    settings_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> CLIContext:
    console = RichConsole(config.verbosity)

    settings = Settings()
    if settings_path is not None:
        settings_result = load_settings(settings_path)
        exit_on_error(settings_result, console)
        settings = settings_result.unwrap()
    settings = settings.with_env(os.environ if environ is None else environ)

    paths = WorkspacePaths.create(config, profile, work_dir=settings.work_dir)
    return CLIContext(
        config=config,
        profile=profile,
        settings=settings,
        paths=paths,
        console=console,
    )


def plain_console() -> ConsoleProtocol:
    """Console used before the configuration (and its verbosity) is known."""
    return RichConsole(Verbosity.NORMAL)
