"""Tests for cdr.platform.process module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from cdr.core.result import Err, Ok
from cdr.platform.process import ProcessError, merged_env, probe_tool, run, run_silent

PY = sys.executable


class TestProcessError:
    """Test ProcessError dataclass."""

    def test_str(self) -> None:
        error = ProcessError(command=("make", "clean"), cwd=Path("/tmp"), returncode=2)
        assert str(error) == "make clean failed (exit 2)"

    def test_describe_names_directory(self, tmp_path: Path) -> None:
        error = ProcessError(
            command=("make", "-f", "posix.mak"), cwd=tmp_path / "phobos", returncode=2
        )
        assert error.describe() == (
            f"Command failed (ran from dir '{tmp_path / 'phobos'}'): make -f posix.mak"
        )

    def test_describe_with_display(self, tmp_path: Path) -> None:
        error = ProcessError(command=("make",), cwd=tmp_path / "dmd" / "src", returncode=1)
        shown = error.describe(lambda p: p.relative_to(tmp_path).as_posix())
        assert "ran from dir 'dmd/src'" in shown

    def test_frozen(self) -> None:
        error = ProcessError(("cmd",), Path("."), 1)
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


class TestMergedEnv:
    def test_none_inherits(self) -> None:
        assert merged_env(None) is None
        assert merged_env({}) is None

    def test_overrides_applied(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CDR_TEST_BASE", "base")
        env = merged_env({"CDR_TEST_EXTRA": "x"})
        assert env is not None
        assert env["CDR_TEST_BASE"] == "base"
        assert env["CDR_TEST_EXTRA"] == "x"


class TestRun:
    """Test run function."""

    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "print('hello')"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert "hello" in result.value

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "import sys; sys.exit(42)"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == 42
        assert result.error.cwd == tmp_path

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert len(result.error.stderr) > 0

    def test_captures_stderr(self, tmp_path: Path) -> None:
        result = run(
            [PY, "-c", "import sys; sys.stderr.write('error msg'); sys.exit(1)"],
            cwd=tmp_path,
        )

        assert isinstance(result, Err)
        assert "error msg" in result.error.stderr

    def test_uses_cwd(self, tmp_path: Path) -> None:
        (tmp_path / "marker.txt").write_text("content")

        result = run([PY, "-c", "import os; print(os.listdir('.'))"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert "marker.txt" in result.value

    def test_env_passed(self, tmp_path: Path) -> None:
        result = run(
            [PY, "-c", "import os; print(os.environ['CDR_PROBE'])"],
            cwd=tmp_path,
            env={"CDR_PROBE": "42"},
        )

        assert isinstance(result, Ok)
        assert result.value.strip() == "42"

    def test_timeout(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "import time; time.sleep(5)"], cwd=tmp_path, timeout=0.2)

        assert isinstance(result, Err)
        assert "timed out" in result.error.stderr


class TestRunSilent:
    def test_success(self, tmp_path: Path) -> None:
        assert isinstance(run_silent([PY, "-c", "pass"], cwd=tmp_path), Ok)

    def test_failure_keeps_cwd(self, tmp_path: Path) -> None:
        result = run_silent([PY, "-c", "raise SystemExit(3)"], cwd=tmp_path, hide_stdout=True)

        assert isinstance(result, Err)
        assert result.error.returncode == 3
        assert result.error.cwd == tmp_path

    def test_missing_command(self, tmp_path: Path) -> None:
        result = run_silent(["nonexistent_command_12345"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1


class TestProbeTool:
    def test_exit_code_ignored(self, tmp_path: Path) -> None:
        assert probe_tool([PY, "-c", "raise SystemExit(1)"], cwd=tmp_path)

    def test_missing_tool(self, tmp_path: Path) -> None:
        assert not probe_tool(["nonexistent_command_12345", "--help"], cwd=tmp_path)

    def test_pattern_matches_across_lines(self, tmp_path: Path) -> None:
        cmd = [PY, "-c", "print('OPTLINK (R) for Win32'); print('/LA[RGEADDRESSAWARE]')"]
        assert probe_tool(cmd, cwd=tmp_path, pattern=r"OPTLINK \(R\) for Win32.*LA\[RGE")

    def test_pattern_mismatch(self, tmp_path: Path) -> None:
        assert not probe_tool([PY, "-c", "print('GNU ld')"], cwd=tmp_path, pattern="OPTLINK")

    def test_stderr_not_matched(self, tmp_path: Path) -> None:
        cmd = [PY, "-c", "import sys; sys.stderr.write('OPTLINK')"]
        assert not probe_tool(cmd, cwd=tmp_path, pattern="OPTLINK")
