"""Tests for cdr.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from cdr.core.config import BitWidth, ConfigError, ReleaseConfig, Verbosity
from cdr.core.result import Err, Ok


def _options(**overrides: object) -> dict[str, object]:
    options: dict[str, object] = {"tag": "v2.064", "extras": Path("extras")}
    options.update(overrides)
    return options


def _ok(**overrides: object) -> ReleaseConfig:
    result = ReleaseConfig.from_options(**_options(**overrides))  # type: ignore[arg-type]
    assert isinstance(result, Ok)
    return result.value


def _err(**overrides: object) -> ConfigError:
    result = ReleaseConfig.from_options(**_options(**overrides))  # type: ignore[arg-type]
    assert isinstance(result, Err)
    return result.error


class TestBitWidth:
    def test_display(self) -> None:
        assert BitWidth.B32.display == "32-bit"
        assert BitWidth.B64.display == "64-bit"

    def test_str_is_number(self) -> None:
        assert str(BitWidth.B64) == "64"


class TestBitSelection:
    """Exactly one of 32-only, 64-only or both holds."""

    def test_default_is_both(self) -> None:
        config = _ok()
        assert config.bits == (BitWidth.B32, BitWidth.B64)
        assert config.do32 and config.do64

    def test_only_32(self) -> None:
        config = _ok(only_32=True)
        assert config.bits == (BitWidth.B32,)
        assert not config.do64

    def test_only_64(self) -> None:
        config = _ok(only_64=True)
        assert config.bits == (BitWidth.B64,)
        assert not config.do32

    def test_both_only_flags_rejected(self) -> None:
        error = _err(only_32=True, only_64=True)
        assert "--only-32" in error.message
        assert "--only-64" in error.message

    @pytest.mark.parametrize("flag", ["only_32", "only_64"])
    def test_single_width_rejected_for_universal_binaries(self, flag: str) -> None:
        error = _err(universal_binaries=True, **{flag: True})
        assert "universal binaries" in error.message

    def test_universal_binaries_allows_both(self) -> None:
        assert _ok(universal_binaries=True).bits == (BitWidth.B32, BitWidth.B64)


class TestSkipCascade:
    """skip-package implies skip-build implies skip-clone."""

    def test_defaults_run_everything(self) -> None:
        config = _ok()
        assert not config.skip_clone
        assert not config.skip_build
        assert not config.skip_package
        assert not config.archive

    def test_skip_build_implies_skip_clone(self) -> None:
        config = _ok(skip_build=True)
        assert config.skip_build
        assert config.skip_clone

    def test_skip_package_implies_skip_build_and_clone(self) -> None:
        config = _ok(skip_package=True, archive=True)
        assert config.skip_package
        assert config.skip_build
        assert config.skip_clone

    def test_use_clone_implies_skip_clone(self, tmp_path: Path) -> None:
        config = _ok(use_clone=tmp_path)
        assert config.skip_clone
        assert config.clone_dir == tmp_path.absolute()
        assert not config.skip_build

    def test_skip_package_without_archive_is_nothing_to_do(self) -> None:
        error = _err(skip_package=True)
        assert error.message.startswith("Nothing to do!")


class TestRequiredOptions:
    def test_missing_tag(self) -> None:
        error = _err(tag=None)
        assert error.message == "Missing TAG_OR_BRANCH."
        assert error.hint is not None

    def test_missing_extras(self) -> None:
        error = _err(extras=None)
        assert "--extras" in error.message

    def test_extras_made_absolute(self) -> None:
        config = _ok(extras=Path("relative/extras"))
        assert config.extras_dir is not None
        assert config.extras_dir.is_absolute()
        assert config.extras_dir.parts[-2:] == ("relative", "extras")

    def test_clean_needs_neither_tag_nor_extras(self) -> None:
        config = _ok(tag=None, extras=None, clean=True)
        assert config.clean
        assert config.tag == ""
        assert config.extras_dir is None


class TestVerbosity:
    def test_default_normal(self) -> None:
        assert _ok().verbosity == Verbosity.NORMAL

    def test_quiet(self) -> None:
        assert _ok(quiet=True).verbosity == Verbosity.QUIET

    def test_verbose(self) -> None:
        config = _ok(verbose=True)
        assert config.verbosity == Verbosity.VERBOSE
        assert config.verbose

    def test_quiet_and_verbose_rejected(self) -> None:
        error = _err(quiet=True, verbose=True)
        assert "--quiet" in error.message


class TestReleaseConfigFrozen:
    def test_frozen(self) -> None:
        config = _ok()
        with pytest.raises(AttributeError):
            config.tag = "other"  # type: ignore[misc]
