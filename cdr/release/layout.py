"""Directory layout of a release run.

`WorkspacePaths` is derived once from the configuration, the target profile
and the invocation directory. Construction is pure: nothing is created or
checked on disk.

Layout of a release directory (Linux, both widths):

    dmd.v2.064.linux/
        dmd2/
            linux/bin32, linux/lib32, linux/bin64, linux/lib64
            src/dmd, src/druntime, src/phobos, src/VERSION
            html/d, samples/d, man
"""

from __future__ import annotations

import tempfile
from dataclasses import dataclass
from pathlib import Path

from cdr.core.config import BitWidth, ReleaseConfig

from .components import Component
from .profile import TargetProfile

__all__ = [
    "EXTRAS_SUBDIR",
    "RELEASE_PREFIX",
    "WorkspacePaths",
    "default_work_dir",
    "release_bit_suffix",
]

RELEASE_PREFIX = "dmd"

# Versioned extras shipped inside the installer repository.
EXTRAS_SUBDIR = "installer/create_dmd_release/extras"


def release_bit_suffix(bits: tuple[BitWidth, ...]) -> str:
    """Name suffix: "-32" or "-64" for single-width releases, "" for both."""
    if bits == (BitWidth.B32,):
        return "-32"
    if bits == (BitWidth.B64,):
        return "-64"
    return ""


def default_work_dir(profile: TargetProfile, override: Path | None = None) -> Path:
    """Temporary clone workspace used unless --use-clone is given."""
    if override is not None:
        return override.expanduser().absolute()
    return Path(tempfile.gettempdir()).absolute() / profile.work_dir_name


@dataclass(frozen=True, slots=True)
class WorkspacePaths:
    """Absolute paths used by every stage.

    Attributes:
        origin_dir: Directory the tool was invoked from; releases and
            archives are written here.
        clone_dir: Root holding one checkout per component.
        release_dir: The release directory being assembled.
        custom_extras_dir: User supplied extras tree.
        profile: Target profile the layout follows.
    """

    origin_dir: Path
    clone_dir: Path
    release_dir: Path
    custom_extras_dir: Path | None
    profile: TargetProfile

    @classmethod
    def create(
        cls,
        config: ReleaseConfig,
        profile: TargetProfile,
        *,
        origin_dir: Path | None = None,
        work_dir: Path | None = None,
    ) -> WorkspacePaths:
        origin = (origin_dir or Path.cwd()).absolute()
        name = f"{RELEASE_PREFIX}.{config.tag}.{profile.os_name}{release_bit_suffix(config.bits)}"
        clone_dir = config.clone_dir or default_work_dir(profile, work_dir)
        return cls(
            origin_dir=origin,
            clone_dir=clone_dir.absolute(),
            release_dir=origin / name,
            custom_extras_dir=config.extras_dir,
            profile=profile,
        )

    @property
    def dmd2_dir(self) -> Path:
        return self.release_dir / "dmd2"

    @property
    def os_dir(self) -> Path:
        return self.dmd2_dir / self.profile.os_name

    @property
    def extras_root(self) -> Path:
        return self.clone_dir / EXTRAS_SUBDIR

    @property
    def all_extras_dir(self) -> Path:
        return self.extras_root / "all"

    @property
    def os_extras_dir(self) -> Path:
        return self.extras_root / self.profile.os_name

    @property
    def archive_path(self) -> Path:
        return self.origin_dir / f"{self.release_dir.name}.zip"

    def bin_dir(self, bits: BitWidth) -> Path:
        return self.os_dir / f"bin{self.profile.suffix(bits)}"

    def lib_dir(self, bits: BitWidth) -> Path:
        return self.os_dir / f"lib{self.profile.suffix(bits)}"

    def component_dir(self, component: Component) -> Path:
        return self.clone_dir / component.value

    @property
    def dmd_exe(self) -> Path:
        """The dmd binary later build steps compile with."""
        return self.component_dir(Component.DMD) / "src" / self.profile.exe_name("dmd")

    def display(self, path: Path) -> str:
        """Path as shown to the user: relative to the invocation directory."""
        try:
            return str(path.relative_to(self.origin_dir))
        except ValueError:
            return str(path)
