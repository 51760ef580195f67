"""Clean and build stages.

The build walks `BUILD_ORDER` once per planned pass. A pass is one bit-width;
on profiles whose 64-bit libraries need a 32-bit compiler, a 64-bit-only
release is preceded by a compiler-only 32-bit pass.

Every make call gets an explicit working directory; a failed call raises
`Fail` naming the command and the directory it ran from.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from cdr.core.config import BitWidth, ReleaseConfig
from cdr.core.errors import Fail
from cdr.core.result import Err
from cdr.output.console import ConsoleProtocol
from cdr.platform.detection import supports_symlinks
from cdr.platform.files import (
    SpanMode,
    copy_directory,
    copy_file,
    make_dir,
    remove_files_matching,
    remove_tree,
)

from .components import BUILD_ORDER, Component, Recipe
from .layout import EXTRAS_SUBDIR, WorkspacePaths
from .make import BuildTool, MakeInvocation
from .preflight import MsvcToolchain, extras_optlink
from .profile import TargetProfile

__all__ = [
    "BuildPass",
    "Builder",
    "build_plan",
    "compiler_config_text",
]

DOCS_OUTPUT = "web/phobos-prerelease"
LEGACY_DOCS_LINK = "d-programming-language.org"


@dataclass(frozen=True, slots=True)
class BuildPass:
    """One walk over the build order.

    Attributes:
        bits: Model the pass builds.
        compiler_only: Stop after dmd and its config file.
    """

    bits: BitWidth
    compiler_only: bool = False


def build_plan(bits: tuple[BitWidth, ...], profile: TargetProfile) -> tuple[BuildPass, ...]:
    """Passes needed to build the requested widths, in order."""
    passes: list[BuildPass] = []
    if BitWidth.B32 in bits:
        passes.append(BuildPass(BitWidth.B32))
    if BitWidth.B64 in bits:
        if BitWidth.B32 not in bits and profile.lib64_requires_dmd32:
            passes.append(BuildPass(BitWidth.B32, compiler_only=True))
        passes.append(BuildPass(BitWidth.B64))
    return tuple(passes)


def compiler_config_text(paths: WorkspacePaths, bits: BitWidth) -> str:
    """Content of the temporary sc.ini/dmd.conf written next to the built dmd.

    It points the freshly built compiler at the checked out druntime and
    phobos so the later components compile against them.
    """
    profile = paths.profile
    if profile.dmc_toolchain:
        user_lib = (paths.custom_extras_dir or paths.origin_dir) / "dmd2" / "windows" / "lib"
        bundled_lib = EXTRAS_SUBDIR.replace("/", "\\") + r"\windows\dmd2\windows\lib"
        return (
            "[Environment]\n"
            f'LIB="%@P%\\..\\..\\phobos" "{user_lib}" "%@P%\\..\\..\\{bundled_lib}"\n'
            'DFLAGS="-I%@P%\\..\\..\\phobos" "-I%@P%\\..\\..\\druntime\\import"'
        )

    flags = " -L--export-dynamic" if profile.export_dynamic else ""
    return (
        "[Environment]\n"
        "DFLAGS=-I%@P%/../../phobos -I%@P%/../../druntime/src"
        f" -L-L%@P%/../../phobos/generated/{profile.os_name}/release/{bits.value}"
        f" -L-L%@P%/../../druntime/lib{flags}"
    )


class Builder:
    """Runs make for every component of the release.

    Attributes:
        config: Release configuration.
        paths: Workspace layout.
        profile: Target conventions.
        make: Build tool adapter.
        msvc: MSVC toolchain for 64-bit DMC builds.
        jobs: Parallel make jobs (None: profile default).
    """

    def __init__(
        self,
        config: ReleaseConfig,
        paths: WorkspacePaths,
        console: ConsoleProtocol,
        make: BuildTool,
        *,
        msvc: MsvcToolchain | None = None,
        jobs: int | None = None,
    ) -> None:
        self.config = config
        self.paths = paths
        self.profile = paths.profile
        self.console = console
        self.make = make
        self.msvc = msvc
        self.jobs = jobs if jobs is not None else self.profile.jobs
        self._docs_built = False

    # -------------------------------------------------------------------------
    # Make calls
    # -------------------------------------------------------------------------

    def _invocation(
        self,
        cwd: Path,
        bits: BitWidth,
        targets: tuple[str, ...] = (),
        variables: tuple[str, ...] = (),
        *,
        makefile: str | None = None,
        clean: bool = False,
    ) -> MakeInvocation:
        return MakeInvocation(
            cwd=cwd,
            makefile=makefile or self.profile.makefile(bits),
            model=bits,
            latest=self.config.tag,
            targets=targets,
            variables=variables,
            dmd=None if clean else self.paths.dmd_exe,
            jobs=None if clean else self.jobs,
            release=not clean,
        )

    def _run(self, invocation: MakeInvocation) -> None:
        self.console.debug(f"Running: {' '.join(invocation.command(self.profile.make))}")
        result = self.make.run(invocation)
        if isinstance(result, Err):
            raise Fail("command_failed", result.error.describe(self.paths.display))

    def _log(self, message: str) -> None:
        self.console.debug(message)

    # -------------------------------------------------------------------------
    # Clean
    # -------------------------------------------------------------------------

    def clean(self) -> None:
        """Run `make clean` in every component for the requested widths.

        The documentation site is bit-independent and is cleaned once.
        """
        for index, bits in enumerate(self.config.bits):
            for recipe in BUILD_ORDER:
                if recipe.docs and index > 0:
                    continue
                if recipe.host_tool and not self.profile.builds_host_tools(bits):
                    continue
                suffix = "" if recipe.docs else f" {bits.display}"
                self.console.info(f"Cleaning {recipe.label}{suffix}")
                cwd = recipe.build_dir(self.paths.clone_dir)
                makefile = self.profile.makefile32 if recipe.docs else None
                self._run(
                    self._invocation(
                        cwd, bits, ("clean",), recipe.clean_vars, makefile=makefile, clean=True
                    )
                )
                if recipe.component == Component.PHOBOS and self.profile.dmc_toolchain:
                    remove_tree(cwd / "generated", log=self._log)

    # -------------------------------------------------------------------------
    # Build
    # -------------------------------------------------------------------------

    def build(self) -> None:
        for build_pass in build_plan(self.config.bits, self.profile):
            self.build_pass(build_pass)

    def build_pass(self, build_pass: BuildPass) -> None:
        bits = build_pass.bits
        for recipe in BUILD_ORDER:
            if recipe.docs:
                if not self.config.skip_docs and not self._docs_built:
                    self._build_docs(bits)
                    self._docs_built = True
                continue

            if recipe.applies_to(bits, self.profile):
                self._build_component(recipe, bits)

            if recipe.component == Component.DMD:
                self._write_compiler_config(bits)
                if build_pass.compiler_only:
                    return

    def _build_component(self, recipe: Recipe, bits: BitWidth) -> None:
        clone_dir = self.paths.clone_dir
        cwd = recipe.build_dir(clone_dir)
        variables: tuple[str, ...] = ()
        if recipe.msvc and bits == BitWidth.B64 and self.msvc is not None:
            variables = self.msvc.make_variables()

        self.console.info(f"Building {recipe.label} {bits.display}")
        invocations = recipe.invocations
        if not self.config.skip_docs:
            invocations += recipe.doc_invocations
        for targets in invocations:
            self._run(self._invocation(cwd, bits, targets, variables))

        match recipe.component:
            case Component.DMD:
                exe = self.paths.dmd_exe
                copy_file(exe, exe.with_name(self.profile.exe_name(f"dmd{bits.value}")))
            case Component.PHOBOS:
                self._after_phobos(cwd, bits)
            case _:
                pass

        patterns = recipe.residue_patterns(self.profile)
        if patterns:
            remove_files_matching(
                cwd, patterns, SpanMode.DEPTH, filter=recipe.removable, log=self._log
            )

    def _after_phobos(self, phobos: Path, bits: BitWidth) -> None:
        if self.profile.universal_binaries and bits == BitWidth.B64:
            self.console.info("Building Phobos Universal Binary")
            self._run(self._invocation(phobos, bits, ("libphobos2.a",)))

        if self.profile.dmc_toolchain:
            name = f"{self.profile.lib_phobos(bits)}{self.profile.lib}"
            staged = phobos / "generated" / self.profile.os_name / "release" / str(bits.value)
            make_dir(staged, log=self._log)
            copy_file(phobos / name, staged / name, log=self._log)

    def _write_compiler_config(self, bits: BitWidth) -> None:
        dmd_dir = self.paths.dmd_exe.parent
        conf = dmd_dir / self.profile.compiler_conf
        self._log(f"Writing {self.paths.display(conf)}")
        conf.write_text(compiler_config_text(self.paths, bits), encoding="utf-8")

        # dmd looks for OPTLINK next to the sc.ini it reads.
        if self.profile.dmc_toolchain:
            copy_file(extras_optlink(self.paths), dmd_dir / "link.exe", log=self._log)

    def _build_docs(self, bits: BitWidth) -> None:
        clone_dir = self.paths.clone_dir
        druntime = clone_dir / Component.DRUNTIME.value
        phobos = clone_dir / Component.PHOBOS.value
        dlang_org = clone_dir / Component.DLANG_ORG.value
        web_docs = clone_dir / DOCS_OUTPUT

        self.console.info("Building Druntime Docs")
        self._run(
            self._invocation(
                druntime, bits, ("doc",), ("DOCSRC=../dlang.org", f"DOCDIR=../{DOCS_OUTPUT}")
            )
        )

        self.console.info("Building Phobos Docs")
        self._run(
            self._invocation(
                phobos, bits, ("html",), ("DOCSRC=../dlang.org", f"DOC=../{DOCS_OUTPUT}")
            )
        )

        self.console.info("Building dlang.org")
        if supports_symlinks():
            # Older makefiles still refer to the site by its former name.
            legacy = clone_dir / LEGACY_DOCS_LINK
            if not os.path.lexists(legacy):
                legacy.symlink_to(dlang_org, target_is_directory=True)
        make_dir(dlang_org / "doc", log=self._log)

        targets = (self.profile.dlang_org_target,) if self.profile.dlang_org_target else ()
        # dlang.org ships no 64-bit Windows makefile.
        self._run(self._invocation(dlang_org, bits, targets, makefile=self.profile.makefile32))

        if self.profile.dmc_toolchain:
            copy_directory(web_docs, dlang_org / "phobos", log=self._log)
            if bits == BitWidth.B32:
                self._run(
                    self._invocation(
                        dlang_org,
                        bits,
                        ("chm",),
                        ("DOCSRC=../dlang.org", f"DOCDIR=../{DOCS_OUTPUT}"),
                        makefile=self.profile.makefile32,
                    )
                )

        # dman's makefile reads the phobos docs from the generated site.
        copy_directory(web_docs, clone_dir / self.profile.generated_docs / "phobos", log=self._log)
