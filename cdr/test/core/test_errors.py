"""Tests for cdr.core.errors and cdr.core.result."""

from __future__ import annotations

import pytest

from cdr.core.errors import ErrorCode, Fail, ReleaseError
from cdr.core.result import Err, Ok, is_err, is_ok


class TestErrorCode:
    def test_values(self) -> None:
        assert int(ErrorCode.OK) == 0
        assert int(ErrorCode.FAILURE) == 1

    def test_is_success(self) -> None:
        assert ErrorCode.OK.is_success
        assert not ErrorCode.FAILURE.is_success


class TestFail:
    def test_carries_release_error(self) -> None:
        with pytest.raises(Fail) as exc_info:
            raise Fail("tool_missing", "Problem running 'git'.", hint="install git")

        error = exc_info.value.error
        assert error == ReleaseError("tool_missing", "Problem running 'git'.", "install git")
        assert str(exc_info.value) == "Problem running 'git'."

    def test_release_error_str_is_message(self) -> None:
        assert str(ReleaseError("path_missing", "Directory not found: x")) == (
            "Directory not found: x"
        )


class TestResult:
    def test_ok(self) -> None:
        result = Ok(3)
        assert is_ok(result)
        assert not is_err(result)
        assert result.unwrap() == 3
        assert result.map(lambda v: v * 2) == Ok(6)

    def test_err(self) -> None:
        result: Err[str] = Err("boom")
        assert is_err(result)
        assert result.map(lambda v: v) is result
        with pytest.raises(ValueError, match="boom"):
            result.unwrap()

    def test_pattern_matching(self) -> None:
        match Ok("out"):
            case Ok(value):
                assert value == "out"
            case Err(_):
                pytest.fail("expected Ok")
