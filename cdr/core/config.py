"""Release configuration built once from command-line options.

`ReleaseConfig` is immutable: it is constructed by `ReleaseConfig.from_options`
(which applies the skip-flag cascade and rejects contradictory options) and
then passed explicitly to every part of the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum, auto
from pathlib import Path

from .result import Err, Ok, Result

__all__ = [
    "BitWidth",
    "ConfigError",
    "ReleaseConfig",
    "Verbosity",
]


class BitWidth(IntEnum):
    """Target pointer size."""

    B32 = 32
    B64 = 64

    def __str__(self) -> str:
        return str(self.value)

    @property
    def display(self) -> str:
        """Human readable form, e.g. "64-bit"."""
        return f"{self.value}-bit"


class Verbosity(Enum):
    QUIET = auto()
    NORMAL = auto()
    VERBOSE = auto()


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Invalid combination of options."""

    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """What to release and which stages to run.

    Attributes:
        tag: Git tag or branch to release (also used in directory names).
        bits: Requested bit-widths, in build order. Never empty.
        skip_clone: Reuse an existing checkout instead of cloning.
        skip_build: Assume everything is already built.
        skip_docs: Do not build or package documentation.
        skip_package: Assume the release directory already exists.
        archive: Create the zip archive.
        clean: Only delete the temporary workspace.
        extras_dir: User supplied tree of non-versioned support files.
        clone_dir: Existing checkout given with --use-clone.
        verbosity: Console verbosity.
    """

    tag: str
    bits: tuple[BitWidth, ...] = (BitWidth.B32, BitWidth.B64)
    skip_clone: bool = False
    skip_build: bool = False
    skip_docs: bool = False
    skip_package: bool = False
    archive: bool = False
    clean: bool = False
    extras_dir: Path | None = None
    clone_dir: Path | None = None
    verbosity: Verbosity = Verbosity.NORMAL

    @property
    def do32(self) -> bool:
        return BitWidth.B32 in self.bits

    @property
    def do64(self) -> bool:
        return BitWidth.B64 in self.bits

    @property
    def verbose(self) -> bool:
        return self.verbosity == Verbosity.VERBOSE

    @classmethod
    def from_options(
        cls,
        *,
        tag: str | None,
        extras: Path | None,
        quiet: bool = False,
        verbose: bool = False,
        skip_clone: bool = False,
        use_clone: Path | None = None,
        skip_build: bool = False,
        skip_docs: bool = False,
        skip_package: bool = False,
        archive: bool = False,
        clean: bool = False,
        only_32: bool = False,
        only_64: bool = False,
        universal_binaries: bool = False,
    ) -> Result[ReleaseConfig, ConfigError]:
        """Validate raw CLI options and apply the implied flags.

        `universal_binaries` is set by the caller when the target profile
        merges both widths into one binary; single-width releases are then
        refused.
        """
        if quiet and verbose:
            return Err(ConfigError("Can't use both --quiet and --verbose"))

        if only_32 and only_64:
            return Err(ConfigError("--only-32 and --only-64 cannot be used together."))

        if universal_binaries and (only_32 or only_64):
            return Err(
                ConfigError(
                    "--only-32 and --only-64 are not supported on this platform: "
                    "universal binaries would not be created."
                )
            )

        if only_32:
            bits: tuple[BitWidth, ...] = (BitWidth.B32,)
        elif only_64:
            bits = (BitWidth.B64,)
        else:
            bits = (BitWidth.B32, BitWidth.B64)

        if quiet:
            verbosity = Verbosity.QUIET
        elif verbose:
            verbosity = Verbosity.VERBOSE
        else:
            verbosity = Verbosity.NORMAL

        if clean:
            return Ok(
                cls(
                    tag=tag or "",
                    bits=bits,
                    clean=True,
                    extras_dir=_absolute(extras) if extras else None,
                    verbosity=verbosity,
                )
            )

        if not tag:
            return Err(
                ConfigError("Missing TAG_OR_BRANCH.", hint="See --help for more info.")
            )

        if skip_package:
            skip_build = True
        if use_clone is not None or skip_build:
            skip_clone = True

        if skip_package and not archive:
            return Err(
                ConfigError("Nothing to do! Specified --skip-package, but not --archive.")
            )

        if extras is None:
            return Err(
                ConfigError("--extras=path is required.", hint="See --help for more info.")
            )

        return Ok(
            cls(
                tag=tag,
                bits=bits,
                skip_clone=skip_clone,
                skip_build=skip_build,
                skip_docs=skip_docs,
                skip_package=skip_package,
                archive=archive,
                extras_dir=_absolute(extras),
                clone_dir=_absolute(use_clone) if use_clone is not None else None,
                verbosity=verbosity,
            )
        )


def _absolute(path: Path) -> Path:
    return Path(path).expanduser().absolute()
