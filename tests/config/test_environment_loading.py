from __future__ import annotations

import os

import pytest

from censorflow.config.env import (
    env_bool,
    env_float,
    env_int,
    optional_env_var,
    require_env_var,
    require_env_vars,
)
from censorflow.domain.errors import (
    ErrorCategory,
    InvalidConfigError,
    MissingConfigError,
    get_error_category,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_raises_when_any_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.delenv("OTHER_MISSING_VAR", raising=False)

    with pytest.raises(MissingConfigError) as exc:
        require_env_vars(["OTHER_MISSING_VAR", "MISSING_VAR"])

    assert "MISSING_VAR, OTHER_MISSING_VAR" in str(exc.value)
    assert get_error_category(exc.value) == ErrorCategory.CONFIG


def test_require_env_var_handles_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")

    with pytest.raises(MissingConfigError):
        require_env_var("EXAMPLE_VAR")


def test_require_env_vars_restores_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEMP_VAR", "123")

    assert os.getenv("TEMP_VAR") == "123"
    result = require_env_var("TEMP_VAR")
    assert result == "123"


def test_optional_env_var_strips_and_ignores_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PADDED_VAR", "  x  ")
    monkeypatch.setenv("BLANK_VAR", " ")

    assert optional_env_var("PADDED_VAR") == "x"
    assert optional_env_var("BLANK_VAR") is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("YES", True), ("on", True), ("0", False), ("False", False), ("off", False)],
)
def test_env_bool_accepts_flags(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("FLAG_VAR", raw)

    assert env_bool("FLAG_VAR", not expected) is expected


def test_typed_readers_fall_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("UNSET_VAR", raising=False)

    assert env_bool("UNSET_VAR", True) is True
    assert env_int("UNSET_VAR", 7) == 7
    assert env_float("UNSET_VAR", 0.5) == 0.5


def test_typed_readers_reject_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GARBAGE_VAR", "maybe")

    with pytest.raises(InvalidConfigError, match="boolean"):
        env_bool("GARBAGE_VAR", False)
    with pytest.raises(InvalidConfigError, match="integer"):
        env_int("GARBAGE_VAR", 1)
    with pytest.raises(InvalidConfigError, match="number"):
        env_float("GARBAGE_VAR", 1.0)
