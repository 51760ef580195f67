"""Tests for the clean and build stages."""

from __future__ import annotations

from pathlib import Path

import pytest

from cdr.core.config import BitWidth
from cdr.core.errors import Fail
from cdr.output.console import MockConsole
from cdr.platform.detection import TargetOS
from cdr.release.builder import BuildPass, Builder, build_plan, compiler_config_text
from cdr.release.preflight import MsvcToolchain
from cdr.release.profile import PROFILES
from cdr.test.release._fakes import LINUX, FakeMake, FakeVcs, make_workspace

WINDOWS = PROFILES[TargetOS.WINDOWS]


def _builder(tmp_path: Path, **options: object) -> tuple[Builder, FakeMake, Path]:
    config, paths = make_workspace(tmp_path, **options)
    FakeVcs().clone_all(paths.clone_dir)
    make = FakeMake()
    return Builder(config, paths, MockConsole(), make), make, paths.clone_dir


# =============================================================================
# Plan and config file
# =============================================================================


class TestBuildPlan:
    def test_both_widths(self) -> None:
        assert build_plan((BitWidth.B32, BitWidth.B64), LINUX) == (
            BuildPass(BitWidth.B32),
            BuildPass(BitWidth.B64),
        )

    def test_posix_64_only(self) -> None:
        assert build_plan((BitWidth.B64,), LINUX) == (BuildPass(BitWidth.B64),)

    def test_windows_64_only_builds_helper_compiler(self) -> None:
        assert build_plan((BitWidth.B64,), WINDOWS) == (
            BuildPass(BitWidth.B32, compiler_only=True),
            BuildPass(BitWidth.B64),
        )


class TestCompilerConfig:
    def test_dmd_conf_points_at_checkout(self, tmp_path: Path) -> None:
        _, paths = make_workspace(tmp_path)
        text = compiler_config_text(paths, BitWidth.B64)

        assert text.startswith("[Environment]\nDFLAGS=")
        assert "-I%@P%/../../phobos" in text
        assert "-L-L%@P%/../../phobos/generated/linux/release/64" in text
        assert text.endswith("-L--export-dynamic")

    def test_sc_ini(self, tmp_path: Path) -> None:
        _, paths = make_workspace(tmp_path, profile=WINDOWS)
        text = compiler_config_text(paths, BitWidth.B32)

        assert "LIB=" in text
        assert str(tmp_path / "extras" / "dmd2" / "windows" / "lib") in text
        assert '"-I%@P%\\..\\..\\druntime\\import"' in text


# =============================================================================
# Build
# =============================================================================


class TestBuild:
    def test_call_order(self, tmp_path: Path) -> None:
        builder, make, _ = _builder(tmp_path, only_64=True)

        builder.build()

        calls = [(make.component_of(i), i.targets) for i in make.invocations]
        assert calls == [
            ("dmd", ("dmd",)),
            ("druntime", ()),
            ("phobos", ()),
            ("druntime", ("doc",)),
            ("phobos", ("html",)),
            ("dlang.org", ("html",)),
            ("tools", ("rdmd",)),
            ("tools", ("ddemangle",)),
            ("tools", ("dustmite",)),
            ("tools", ("dman",)),
        ]
        assert all(i.model == BitWidth.B64 for i in make.invocations)

    def test_every_call_uses_fresh_dmd(self, tmp_path: Path) -> None:
        builder, make, clone = _builder(tmp_path, only_32=True)

        builder.build()

        assert {i.dmd for i in make.invocations} == {clone / "dmd" / "src" / "dmd"}
        assert all(i.latest == "v1.0" and i.release for i in make.invocations)

    def test_docs_built_once(self, tmp_path: Path) -> None:
        builder, make, _ = _builder(tmp_path)

        builder.build()

        assert len(make.calls("dlang.org")) == 1
        assert make.calls("dlang.org")[0].model == BitWidth.B32
        assert len(make.calls("tools")) == 8

    def test_skip_docs(self, tmp_path: Path) -> None:
        builder, make, _ = _builder(tmp_path, skip_docs=True)

        builder.build()

        assert make.calls("dlang.org") == []
        assert ("doc",) not in [i.targets for i in make.calls("druntime")]
        assert ("dman",) not in [i.targets for i in make.calls("tools")]

    def test_outputs_and_residue(self, tmp_path: Path) -> None:
        builder, _, clone = _builder(tmp_path)

        builder.build()

        dmd_src = clone / "dmd" / "src"
        assert (dmd_src / "dmd32").is_file()
        assert (dmd_src / "dmd64").is_file()
        assert (dmd_src / "dmd.conf").read_text(encoding="utf-8").startswith("[Environment]")
        assert not (dmd_src / "mars.o").exists()
        assert not (dmd_src / "backend.a").exists()
        # Sources survive.
        assert (dmd_src / "mars.c").is_file()

        druntime = clone / "druntime"
        assert not (druntime / "src" / "gc.o").exists()
        assert (druntime / "lib" / "gcstub.o").is_file()

        phobos = clone / "phobos"
        assert not (phobos / "std" / "array.o").exists()
        assert (phobos / "generated" / "linux" / "release" / "64" / "libphobos2.a").is_file()
        assert not (clone / "tools" / "generated" / "linux" / "32" / "rdmd.o").exists()

    def test_phobos_docs_copied_into_site(self, tmp_path: Path) -> None:
        builder, _, clone = _builder(tmp_path)

        builder.build()

        assert (clone / "dlang.org" / "web" / "phobos" / "std_array.html").is_file()
        assert (clone / "dlang.org" / "doc").is_dir()

    def test_failure_names_command_and_directory(self, tmp_path: Path) -> None:
        builder, make, _ = _builder(tmp_path)
        make.fail_on = "phobos"

        with pytest.raises(Fail) as exc_info:
            builder.build()

        error = exc_info.value.error
        assert error.kind == "command_failed"
        assert "ran from dir" in error.message
        assert "phobos" in error.message
        # Nothing after the failing call ran.
        assert make.calls("tools") == []

    def test_compiler_only_pass_stops_after_dmd(self, tmp_path: Path) -> None:
        builder, make, clone = _builder(tmp_path)

        builder.build_pass(BuildPass(BitWidth.B32, compiler_only=True))

        assert [make.component_of(i) for i in make.invocations] == ["dmd"]
        assert (clone / "dmd" / "src" / "dmd.conf").is_file()


# =============================================================================
# Clean
# =============================================================================


class TestClean:
    def test_clean_order(self, tmp_path: Path) -> None:
        builder, make, _ = _builder(tmp_path)

        builder.clean()

        calls = [(make.component_of(i), i.model) for i in make.invocations]
        assert calls == [
            ("dmd", BitWidth.B32),
            ("druntime", BitWidth.B32),
            ("phobos", BitWidth.B32),
            ("dlang.org", BitWidth.B32),
            ("tools", BitWidth.B32),
            ("dmd", BitWidth.B64),
            ("druntime", BitWidth.B64),
            ("phobos", BitWidth.B64),
            ("tools", BitWidth.B64),
        ]
        assert all(i.is_clean and i.dmd is None for i in make.invocations)

    def test_phobos_clean_variables(self, tmp_path: Path) -> None:
        builder, make, _ = _builder(tmp_path, only_64=True)

        builder.clean()

        (phobos,) = make.calls("phobos")
        assert phobos.variables == ("DOCSRC=../dlang.org", "DOC=doc")


# =============================================================================
# Windows (DMC) profile
# =============================================================================


class TestWindowsBuild:
    def _windows_64(self, tmp_path: Path) -> tuple[Builder, FakeMake, Path, MsvcToolchain]:
        config, paths = make_workspace(tmp_path, profile=WINDOWS, only_64=True, skip_docs=True)
        FakeVcs().clone_all(paths.clone_dir)
        optlink = tmp_path / "extras" / "dmd2" / "windows" / "bin" / "link.exe"
        optlink.parent.mkdir(parents=True)
        optlink.write_bytes(b"OPTLINK")
        vc = tmp_path / "VC"
        msvc = MsvcToolchain(vc_dir=vc, sdk_dir=tmp_path / "SDK", bin_dir=vc / "bin" / "amd64")
        make = FakeMake(os_name="windows")
        builder = Builder(config, paths, MockConsole(), make, msvc=msvc)
        return builder, make, paths.clone_dir, msvc

    def test_helper_compiler_then_64bit_libraries(self, tmp_path: Path) -> None:
        builder, make, _, _ = self._windows_64(tmp_path)

        builder.build()

        calls = [(make.component_of(i), i.model, i.makefile) for i in make.invocations]
        assert calls == [
            ("dmd", BitWidth.B32, "win32.mak"),
            ("druntime", BitWidth.B64, "win64.mak"),
            ("phobos", BitWidth.B64, "win64.mak"),
        ]
        assert all(i.jobs is None for i in make.invocations)

    def test_msvc_variables_on_64bit_libraries(self, tmp_path: Path) -> None:
        builder, make, _, msvc = self._windows_64(tmp_path)

        builder.build()

        (dmd,) = make.calls("dmd")
        assert dmd.variables == ()
        for component in ("druntime", "phobos"):
            (inv,) = make.calls(component)
            assert inv.variables == msvc.make_variables()
            assert any(v.startswith("VCDIR=") for v in inv.variables)
            assert any(v.startswith("AR=") for v in inv.variables)

    def test_outputs(self, tmp_path: Path) -> None:
        builder, _, clone, _ = self._windows_64(tmp_path)

        builder.build()

        dmd_src = clone / "dmd" / "src"
        assert (dmd_src / "dmd32.exe").is_file()
        assert not (dmd_src / "dmd64.exe").exists()
        assert (dmd_src / "sc.ini").read_text(encoding="utf-8").startswith("[Environment]")
        assert (dmd_src / "link.exe").read_bytes() == b"OPTLINK"

        staged = clone / "phobos" / "generated" / "windows" / "release" / "64" / "phobos64.lib"
        assert staged.is_file()

    def test_clean_removes_generated_phobos(self, tmp_path: Path) -> None:
        builder, make, clone, _ = self._windows_64(tmp_path)
        (clone / "phobos" / "generated" / "windows").mkdir(parents=True)

        builder.clean()

        assert not (clone / "phobos" / "generated").exists()
        # Host tools are not built for 64-bit on this profile.
        assert [make.component_of(i) for i in make.invocations] == [
            "druntime",
            "phobos",
            "dlang.org",
        ]
