"""Tests for core/result.py - Ok/Err result type."""

import pytest

from artipack.core.result import Err, Ok, Result


def _describe(result: Result[int, str]) -> str:
    match result:
        case Ok(value):
            return f"ok {value}"
        case Err(error):
            return f"err {error}"


class TestResult:
    def test_ok(self) -> None:
        result = Ok(42)
        assert result.value == 42
        assert result.unwrap_or(0) == 42
        assert repr(result) == "Ok(42)"

    def test_err(self) -> None:
        result = Err("boom")
        assert result.error == "boom"
        assert result.unwrap_or(5) == 5
        assert repr(result) == "Err('boom')"

    def test_frozen(self) -> None:
        result = Ok(1)
        with pytest.raises(AttributeError):
            result.value = 2  # type: ignore[misc]

    def test_pattern_matching(self) -> None:
        assert _describe(Ok(3)) == "ok 3"
        assert _describe(Err("no")) == "err no"
