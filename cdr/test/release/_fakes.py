"""In-memory stand-ins for git and make used by the release tests.

`FakeVcs` "clones" by writing a small tree per component and remembers which
files it created, so `tracked_files` behaves like `git ls-files`. `FakeMake`
writes the outputs a real build would leave behind (plus some object-file
residue) for the Posix makefiles, and the Windows makefiles' library layout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from cdr.core.config import BitWidth, ReleaseConfig
from cdr.core.result import Err, Ok, Result
from cdr.git.repository import GitError
from cdr.platform.detection import TargetOS
from cdr.platform.process import ProcessError
from cdr.release.components import Component
from cdr.release.layout import WorkspacePaths
from cdr.release.make import MakeInvocation
from cdr.release.manifest import EXPECTED_EXTRAS
from cdr.release.profile import PROFILES, TargetProfile

LINUX = PROFILES[TargetOS.LINUX]

SOURCES: dict[str, tuple[str, ...]] = {
    Component.DMD.value: (
        "VERSION",
        "src/mars.c",
        "src/posix.mak",
        "ini/linux/bin32/dmd.conf",
        "ini/linux/bin64/dmd.conf",
        "samples/hello.d",
        "docs/man/man1/dmd.1",
    ),
    Component.DRUNTIME.value: (
        "posix.mak",
        "src/object_.d",
        "import/object.di",
        "import/core/memory.d",
    ),
    Component.PHOBOS.value: (
        "posix.mak",
        "std/array.d",
        "etc/c/zlib/ChangeLog",
        "etc/c/zlib/README",
        "etc/c/zlib/zlib.3",
    ),
    Component.TOOLS.value: ("posix.mak", "rdmd.d", "man/man1/rdmd.1"),
    Component.DLANG_ORG.value: ("posix.mak", "index.dd"),
    Component.INSTALLER.value: (
        "create_dmd_release/extras/all/dmd2/README.TXT",
        "create_dmd_release/extras/linux/dmd2/linux/bin64/dmd.conf",
    ),
}


def _write(path: Path, content: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content or path.name, encoding="utf-8")


@dataclass
class FakeVcs:
    available: bool = True
    fail_on: str | None = None
    tracked: set[Path] = field(default_factory=set)
    clones: list[tuple[str, Path, str | None]] = field(default_factory=list)

    def probe(self, cwd: Path) -> bool:
        return self.available

    def clone(
        self, url: str, dest: Path, branch: str | None = None, *, shallow: bool = True
    ) -> Result[None, GitError]:
        self.clones.append((url, dest, branch))
        if self.fail_on is not None and dest.name == self.fail_on:
            return Err(
                GitError(
                    command="clone",
                    message="fatal: Remote branch not found",
                    cwd=dest.parent,
                    command_line=f"git clone {url} {dest}",
                    returncode=128,
                )
            )
        for rel in SOURCES[dest.name]:
            _write(dest / rel)
            self.tracked.add(dest / rel)
        return Ok(None)

    def tracked_files(self, directory: Path) -> Result[list[str], GitError]:
        files = [p for p in self.tracked if p.is_relative_to(directory)]
        return Ok(sorted(p.relative_to(directory).as_posix() for p in files))

    def clone_all(self, clone_dir: Path) -> None:
        """Populate `clone_dir` as if the clone stage had run."""
        for component in Component:
            self.clone(component.repo_url("https://example.invalid/"), clone_dir / component.value)


@dataclass
class FakeMake:
    os_name: str = "linux"
    fail_on: str | None = None
    available: bool = True
    invocations: list[MakeInvocation] = field(default_factory=list)

    def probe(self, cwd: Path) -> bool:
        return self.available

    def run(self, invocation: MakeInvocation) -> Result[None, ProcessError]:
        self.invocations.append(invocation)
        component = self.component_of(invocation)
        if component == self.fail_on and not invocation.is_clean:
            return Err(
                ProcessError(
                    command=tuple(invocation.command()), cwd=invocation.cwd, returncode=2
                )
            )
        if not invocation.is_clean:
            self._produce(component, invocation)
        return Ok(None)

    @staticmethod
    def component_of(invocation: MakeInvocation) -> str:
        cwd = invocation.cwd
        return cwd.parent.name if cwd.name == "src" else cwd.name

    def calls(self, component: str) -> list[MakeInvocation]:
        return [i for i in self.invocations if self.component_of(i) == component]

    def _produce(self, component: str, inv: MakeInvocation) -> None:
        cwd = inv.cwd
        clone = cwd.parent.parent if cwd.name == "src" else cwd.parent
        bits = str(inv.model.value)
        web = clone / "web" / "phobos-prerelease"

        windows = self.os_name == "windows"

        match component, inv.targets:
            case "dmd", ("dmd",):
                _write(cwd / ("dmd.exe" if windows else "dmd"), "dmd binary")
                _write(cwd / "mars.o")
                _write(cwd / "backend.a")
            case "druntime", ():
                _write(cwd / "lib" / "libdruntime.a")
                _write(cwd / "src" / "gc.o")
                _write(cwd / "lib" / "gcstub.o")
            case "druntime", ("doc",):
                _write(web / "core_memory.html")
            case "phobos", () if windows:
                # win32.mak/win64.mak leave the library in the checkout root.
                _write(cwd / ("phobos64.lib" if bits == "64" else "phobos.lib"))
            case "phobos", ():
                release = cwd / "generated" / self.os_name / "release" / bits
                _write(release / "libphobos2.a")
                _write(release / "libphobos2.so")
                _write(cwd / "std" / "array.o")
            case "phobos", ("libphobos2.a",):
                _write(cwd / "generated" / self.os_name / "release" / "libphobos2.a")
            case "phobos", ("html",):
                _write(web / "std_array.html")
            case "dlang.org", _:
                site = cwd / "web"
                _write(site / "index.html")
                _write(site / "css" / "style.css")
                _write(site / "images" / "logo.png")
                _write(site / "images" / "original" / "logo.svg")
                _write(site / "chm" / "d.hhp")
                _write(site / "index.dd.tmp")
            case "tools", (target,):
                out = cwd / "generated" / self.os_name / bits
                _write(out / target)
                _write(out / f"{target}.o")
            case _:
                pass


def complete_extras(root: Path, profile: TargetProfile = LINUX) -> Path:
    """User extras tree holding every support file the manifest requires."""
    os_dir = root / "dmd2" / profile.os_name
    for entry in EXPECTED_EXTRAS[profile.os]:
        widths = (BitWidth.B32, BitWidth.B64) if entry.bits is None else (entry.bits,)
        for bits in widths:
            sub = f"{entry.kind}{profile.suffix(bits)}"
            _write(os_dir / sub / entry.name)
    return root


def make_workspace(
    tmp_path: Path,
    *,
    profile: TargetProfile = LINUX,
    **options: object,
) -> tuple[ReleaseConfig, WorkspacePaths]:
    """Config and paths rooted under `tmp_path` (origin/, work/, extras/)."""
    opts: dict[str, object] = {"tag": "v1.0", "extras": tmp_path / "extras"}
    opts.update(options)
    result = ReleaseConfig.from_options(**opts)  # type: ignore[arg-type]
    assert isinstance(result, Ok), result
    config = result.value

    origin = tmp_path / "origin"
    origin.mkdir(exist_ok=True)
    paths = WorkspacePaths.create(config, profile, origin_dir=origin, work_dir=tmp_path / "work")
    return config, paths
