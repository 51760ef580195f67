"""Release pipeline orchestrator.

Stages run in a fixed order and each can be skipped:

    [preflight] -> CLONE -> CLEAN -> BUILD -> PACKAGE -> ARCHIVE

The plan is a pure function of `ReleaseConfig`. Every stage starts from what
is on disk (a checkout, a built checkout, a release directory), never from
what an earlier stage did in this process, so a run that died halfway can be
resumed with the --skip-* flags.
"""

from __future__ import annotations

from enum import StrEnum

from cdr.core.config import ReleaseConfig
from cdr.core.errors import Fail, ReleaseError
from cdr.core.result import Err, Ok, Result
from cdr.core.settings import Settings
from cdr.git.repository import VcsClient
from cdr.output.console import ConsoleProtocol
from cdr.platform.files import ensure_dir, ensure_not_file, make_dir, remove_tree

from .archive import build_archive
from .builder import Builder
from .components import RECIPES
from .layout import WorkspacePaths, default_work_dir
from .make import BuildTool
from .packager import Packager
from .preflight import MsvcToolchain, run_preflight

__all__ = ["ReleasePipeline", "Stage", "plan_stages"]


class Stage(StrEnum):
    CLONE = "clone"
    CLEAN = "clean"
    BUILD = "build"
    PACKAGE = "package"
    ARCHIVE = "archive"


def plan_stages(config: ReleaseConfig) -> tuple[Stage, ...]:
    """Stages a run executes, in order.

    CLEAN only runs when building in an existing checkout, so a reused clone
    never mixes old and new build products.
    """
    if config.clean:
        return ()
    stages: list[Stage] = []
    if not config.skip_clone:
        stages.append(Stage.CLONE)
    if config.skip_clone and not config.skip_build:
        stages.append(Stage.CLEAN)
    if not config.skip_build:
        stages.append(Stage.BUILD)
    if not config.skip_package:
        stages.append(Stage.PACKAGE)
    if config.archive:
        stages.append(Stage.ARCHIVE)
    return tuple(stages)


class ReleasePipeline:
    """Runs the planned stages for one release.

    Collaborators are injected so tests can replace git and make.
    """

    def __init__(
        self,
        config: ReleaseConfig,
        paths: WorkspacePaths,
        console: ConsoleProtocol,
        vcs: VcsClient,
        make: BuildTool,
        settings: Settings | None = None,
    ) -> None:
        self.config = config
        self.paths = paths
        self.profile = paths.profile
        self.console = console
        self.vcs = vcs
        self.make = make
        self.settings = settings or Settings()
        self._msvc: MsvcToolchain | None = None

    def run(self) -> Result[None, ReleaseError]:
        """Execute the run; expected failures come back as Err."""
        try:
            self._run()
        except Fail as e:
            return Err(e.error)
        return Ok(None)

    def _log(self, message: str) -> None:
        self.console.debug(message)

    def _run(self) -> None:
        if self.config.clean:
            work_dir = default_work_dir(self.profile, self.settings.work_dir)
            self.console.info(f"Removing {work_dir}")
            remove_tree(work_dir, log=self._log)
            self.console.success("Done!")
            return

        self.console.debug(f"Release dir: {self.paths.release_dir}")
        self.console.debug(f"Clone dir:   {self.paths.clone_dir}")
        self._msvc = run_preflight(
            self.config, self.paths, self.profile, self.console, self.vcs, self.make
        )

        stages = plan_stages(self.config)
        for stage in stages:
            if stage in (Stage.CLEAN, Stage.BUILD, Stage.PACKAGE):
                self.ensure_sources()
            match stage:
                case Stage.CLONE:
                    self.clone_sources()
                case Stage.CLEAN:
                    self._builder().clean()
                case Stage.BUILD:
                    self._builder().build()
                case Stage.PACKAGE:
                    Packager(self.config, self.paths, self.console, self.vcs).package()
                case Stage.ARCHIVE:
                    self.create_archive()

        self.console.success("Done!")

    def _builder(self) -> Builder:
        return Builder(
            self.config,
            self.paths,
            self.console,
            self.make,
            msvc=self._msvc,
            jobs=self.settings.jobs,
        )

    def clone_sources(self) -> None:
        """Replace the clone root with fresh shallow clones of every component."""
        clone_dir = self.paths.clone_dir
        ensure_not_file(clone_dir)
        remove_tree(clone_dir, log=self._log)
        make_dir(clone_dir, log=self._log)

        for recipe in RECIPES:
            component = recipe.component
            self.console.info(f"Cloning {component.value}")
            url = component.repo_url(self.settings.repo_url_prefix)
            result = self.vcs.clone(url, self.paths.component_dir(component), self.config.tag)
            if isinstance(result, Err):
                e = result.error
                raise Fail(
                    "command_failed",
                    f"Command failed (ran from dir '{self.paths.display(e.cwd)}'): "
                    f"{e.command_line or 'git ' + e.command}",
                    hint=e.message,
                )

    def ensure_sources(self) -> None:
        """Fail unless every component checkout exists."""
        ensure_dir(self.paths.clone_dir)
        for recipe in RECIPES:
            ensure_dir(self.paths.component_dir(recipe.component))

    def create_archive(self) -> None:
        archive = self.paths.archive_path
        self.console.info(f"Creating release archive: {self.paths.display(archive)}")
        ensure_dir(self.paths.dmd2_dir)
        count = build_archive(self.paths.dmd2_dir, archive)
        self.console.debug(f"{count} files archived")
