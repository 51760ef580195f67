"""Package stage: assemble the release directory from a built checkout.

Files are copied explicitly rather than through `make install`, so the result
does not depend on differences between the Posix and Windows makefiles.
"""

from __future__ import annotations

from pathlib import Path

from cdr.core.config import BitWidth, ReleaseConfig
from cdr.core.errors import Fail
from cdr.core.result import Err
from cdr.git.repository import VcsClient
from cdr.output.console import ConsoleProtocol
from cdr.platform.files import (
    Log,
    copy_directory,
    copy_file,
    copy_file_if_exists,
    copy_tree,
    make_dir,
    remove_tree,
)

from .components import Component
from .layout import WorkspacePaths
from .manifest import verify_manifest

__all__ = ["Packager", "copy_versioned", "is_doc_file"]

ZLIB_DOCS = ("ChangeLog", "README", "zlib.3")


def copy_versioned(
    vcs: VcsClient, src_dir: Path, dst_dir: Path, *, log: Log | None = None
) -> list[str]:
    """Copy only the files `vcs` tracks under `src_dir`.

    Build products and stray local files in the checkout are left behind.
    """
    result = vcs.tracked_files(src_dir)
    if isinstance(result, Err):
        raise Fail(
            "command_failed",
            f"Could not list version controlled files in {src_dir}: {result.error.message}",
        )
    return copy_tree(result.value, src_dir, dst_dir, log=log)


def is_doc_file(rel_path: str) -> bool:
    """Filter for the generated site: pages and their assets only."""
    # Directory entries arrive without a trailing slash.
    if f"{rel_path}/".startswith(("images/original/", "chm/")):
        return False
    return rel_path.endswith(".html") or rel_path.startswith(("css/", "images/", "js/"))


class Packager:
    """Builds `<release>/dmd2` from the clone tree."""

    def __init__(
        self,
        config: ReleaseConfig,
        paths: WorkspacePaths,
        console: ConsoleProtocol,
        vcs: VcsClient,
    ) -> None:
        self.config = config
        self.paths = paths
        self.profile = paths.profile
        self.console = console
        self.vcs = vcs

    def _log(self, message: str) -> None:
        self.console.debug(message)

    def _clone(self, component: Component, *parts: str) -> Path:
        return self.paths.component_dir(component).joinpath(*parts)

    def package(self) -> None:
        """Wipe and regenerate the release directory, then verify it.

        Raises:
            Fail: If a required input is missing or support files are absent
                from the result.
        """
        self.console.info("Generating release directory")
        remove_tree(self.paths.release_dir, log=self._log)

        self._copy_extras()
        self._copy_sources()
        if not self.config.skip_docs:
            self._copy_docs()
        self._copy_libs()
        self._copy_bins()

        result = verify_manifest(self.paths, self.config.bits, self.console)
        if isinstance(result, Err):
            raise Fail(result.error.kind, result.error.message, result.error.hint)

    def _copy_extras(self) -> None:
        # Later layers overwrite earlier ones: bundled, per-OS, then the user's.
        release = self.paths.release_dir
        for extras in (self.paths.all_extras_dir, self.paths.os_extras_dir):
            if extras.exists():
                copy_directory(extras, release, log=self._log)
        if self.paths.custom_extras_dir is not None:
            copy_directory(self.paths.custom_extras_dir, release, log=self._log)
        make_dir(release, log=self._log)

    def _copy_sources(self) -> None:
        dmd2 = self.paths.dmd2_dir
        src = dmd2 / "src"
        log = self._log

        copy_versioned(self.vcs, self._clone(Component.DMD, "src"), src / "dmd", log=log)
        copy_versioned(self.vcs, self._clone(Component.DMD, "ini"), dmd2, log=log)
        copy_versioned(self.vcs, self._clone(Component.DRUNTIME), src / "druntime", log=log)
        copy_versioned(self.vcs, self._clone(Component.PHOBOS), src / "phobos", log=log)

        druntime_doc = self._clone(Component.DRUNTIME, "doc")
        if druntime_doc.exists():
            copy_directory(druntime_doc, src / "druntime" / "doc", log=log)
        copy_directory(
            self._clone(Component.DRUNTIME, "import"), src / "druntime" / "import", log=log
        )
        copy_file(self._clone(Component.DMD, "VERSION"), src / "VERSION", log=log)

    def _copy_docs(self) -> None:
        dmd2 = self.paths.dmd2_dir
        html = dmd2 / "html" / "d"
        generated = self.paths.clone_dir / self.profile.generated_docs
        log = self._log

        copy_directory(generated, html, filter=is_doc_file, log=log)
        if self.profile.dmc_toolchain and self.config.do32:
            copy_file(generated / "d.chm", self.paths.bin_dir(BitWidth.B32) / "d.chm", log=log)

        vcs = self.vcs
        copy_versioned(vcs, self._clone(Component.DMD, "samples"), dmd2 / "samples" / "d", log=log)
        copy_versioned(vcs, self._clone(Component.DMD, "docs", "man"), dmd2 / "man", log=log)
        copy_versioned(vcs, self._clone(Component.TOOLS, "man"), dmd2 / "man", log=log)

        zlib = self._clone(Component.PHOBOS, "etc", "c", "zlib")
        make_dir(html / "zlib", log=log)
        for name in ZLIB_DOCS:
            copy_file(zlib / name, html / "zlib" / name, log=log)

    def _phobos_release_dir(self) -> Path:
        return self._clone(Component.PHOBOS, "generated", self.profile.os_name, "release")

    def _copy_libs(self) -> None:
        profile = self.profile
        release = self._phobos_release_dir()
        log = self._log

        if profile.universal_binaries:
            # One lib directory; the file name records the width it holds.
            lib_dir = self.paths.lib_dir(BitWidth.B32)
            if self.config.do32 and self.config.do64:
                copy_file(release / "libphobos2.a", lib_dir / "libphobos2.a", log=log)
            elif self.config.do32:
                copy_file(release / "32" / "libphobos2.a", lib_dir / "libphobos2_32.a", log=log)
            else:
                copy_file(release / "64" / "libphobos2.a", lib_dir / "libphobos2_64.a", log=log)
            return

        for bits in self.config.bits:
            lib_dir = self.paths.lib_dir(bits)
            base = profile.lib_phobos(bits)
            built = release / str(bits.value)
            copy_file(built / f"{base}{profile.lib}", lib_dir / f"{base}{profile.lib}", log=log)
            copy_file_if_exists(
                built / f"{base}{profile.dll}", lib_dir / f"{base}{profile.dll}", log=log
            )
            if profile.dmc_toolchain:
                gcstub = "gcstub.obj" if bits == BitWidth.B32 else "gcstub64.obj"
                copy_file(self._clone(Component.DRUNTIME, "lib", gcstub), lib_dir / gcstub, log=log)

    def _copy_bins(self) -> None:
        profile = self.profile
        dmd_src = self._clone(Component.DMD, "src")
        tools_generated = self._clone(Component.TOOLS, "generated", profile.os_name)

        def not_object(rel: str) -> bool:
            return not rel.endswith(profile.obj)

        for bits in self.config.bits:
            if not profile.ships_tools(bits):
                continue
            bin_dir = self.paths.bin_dir(bits)
            copy_file(
                dmd_src / profile.exe_name(f"dmd{bits.value}"),
                bin_dir / profile.exe_name("dmd"),
                log=self._log,
            )
            copy_directory(
                tools_generated / str(bits.value), bin_dir, filter=not_object, log=self._log
            )
