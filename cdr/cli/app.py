from __future__ import annotations

from pathlib import Path

import typer

from cdr import __version__
from cdr.cli.context import build_context, exit_on_error, exit_with_code, plain_console
from cdr.core.config import ReleaseConfig
from cdr.core.errors import ErrorCode, ReleaseError
from cdr.core.result import Err
from cdr.git.repository import GitClient, VcsClient
from cdr.platform.detection import UnsupportedPlatform
from cdr.release.make import BuildTool, Make
from cdr.release.pipeline import ReleasePipeline
from cdr.release.profile import TargetProfile, detect_profile

app = typer.Typer(
    add_completion=False,
    rich_markup_mode="rich",
    help=(
        "Generate a platform-specific DMD release as a directory tree, "
        "and optionally a zip archive.\n\n"
        "Example: create-dmd-release --extras=linux-extra --archive v2.064"
    ),
)


def create_collaborators(
    config: ReleaseConfig, profile: TargetProfile
) -> tuple[VcsClient, BuildTool]:
    """Git and make adapters for a run."""
    return (
        GitClient(quiet=not config.verbose),
        Make(profile.make, verbose=config.verbose),
    )


@app.command()
def release(
    tag: str | None = typer.Argument(
        None,
        metavar="TAG_OR_BRANCH",
        help="GitHub tag/branch of DMD to generate a release for.",
        show_default=False,
    ),
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Quiet mode."),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose mode."),
    extras: Path | None = typer.Option(
        None,
        "--extras",
        help=(
            "Include additional files from this directory tree (matching the release "
            "structure, including 'dmd2'). Required, to ship the DM bins/libs that are "
            "not on GitHub."
        ),
    ),
    skip_clone: bool = typer.Option(
        False,
        "--skip-clone",
        help=(
            "Use already-existing clones in the temp dir instead of cloning. "
            "TAG_OR_BRANCH is then only used for directory/archive names."
        ),
    ),
    use_clone: Path | None = typer.Option(
        None,
        "--use-clone",
        help="Use the existing clones in this path. Implies --skip-clone.",
    ),
    skip_build: bool = typer.Option(
        False,
        "--skip-build",
        help="Assume all tools/libs are already built. Implies --skip-clone.",
    ),
    skip_docs: bool = typer.Option(False, "--skip-docs", help="Don't build or package docs."),
    skip_package: bool = typer.Option(
        False,
        "--skip-package",
        help="Assume the release directory already exists. Implies --skip-build.",
    ),
    archive: bool = typer.Option(False, "--archive", help="Create a zip archive."),
    clean: bool = typer.Option(False, "--clean", help="Delete the temporary dir and exit."),
    only_32: bool = typer.Option(False, "--only-32", help="Only build and package 32-bit."),
    only_64: bool = typer.Option(False, "--only-64", help="Only build and package 64-bit."),
    settings_path: Path | None = typer.Option(
        None,
        "--config",
        help="Settings file (TOML): source URL prefix, make jobs, work dir.",
    ),
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    """Clone, build, package and archive a DMD release."""
    if version:
        typer.echo(__version__)
        exit_with_code(int(ErrorCode.OK))

    console = plain_console()
    try:
        profile = detect_profile()
    except UnsupportedPlatform as e:
        exit_on_error(Err(ReleaseError("invalid_input", str(e))), console)
        return

    config_result = ReleaseConfig.from_options(
        tag=tag,
        extras=extras,
        quiet=quiet,
        verbose=verbose,
        skip_clone=skip_clone,
        use_clone=use_clone,
        skip_build=skip_build,
        skip_docs=skip_docs,
        skip_package=skip_package,
        archive=archive,
        clean=clean,
        only_32=only_32,
        only_64=only_64,
        universal_binaries=profile.universal_binaries,
    )
    exit_on_error(config_result, console)
    config = config_result.unwrap()

    ctx = build_context(config, profile, settings_path=settings_path)
    vcs, make = create_collaborators(config, profile)
    pipeline = ReleasePipeline(config, ctx.paths, ctx.console, vcs, make, settings=ctx.settings)
    exit_on_error(pipeline.run(), ctx.console)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
