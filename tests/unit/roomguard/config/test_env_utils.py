"""Tests for environment variable parsing helpers."""

import pytest

from roomguard.config.env_utils import (
    EnvVarError,
    coerce_env_value,
    first_env_value,
    get_env_bool,
    get_env_int,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("TRUE", True), (" yes ", True), ("on", True), ("0", False), ("Off", False)],
)
def test_get_env_bool(monkeypatch, raw, expected):
    monkeypatch.setenv("ROOMGUARD_FLAG", raw)
    assert get_env_bool("ROOMGUARD_FLAG") is expected


def test_get_env_bool_default_and_invalid(monkeypatch):
    monkeypatch.delenv("ROOMGUARD_FLAG", raising=False)
    assert get_env_bool("ROOMGUARD_FLAG", default=True) is True

    monkeypatch.setenv("ROOMGUARD_FLAG", "maybe")
    with pytest.raises(EnvVarError) as excinfo:
        get_env_bool("ROOMGUARD_FLAG")
    assert excinfo.value.var_name == "ROOMGUARD_FLAG"
    assert excinfo.value.value == "maybe"


def test_get_env_int(monkeypatch):
    monkeypatch.setenv("ROOMGUARD_COUNT", "42")
    assert get_env_int("ROOMGUARD_COUNT") == 42

    monkeypatch.setenv("ROOMGUARD_COUNT", "forty")
    with pytest.raises(EnvVarError):
        get_env_int("ROOMGUARD_COUNT")


def test_blank_counts_as_unset(monkeypatch):
    monkeypatch.setenv("ROOMGUARD_COUNT", "   ")
    assert get_env_int("ROOMGUARD_COUNT", default=7) == 7
    with pytest.raises(EnvVarError):
        coerce_env_value("ROOMGUARD_COUNT", int, required=True)


def test_first_env_value(monkeypatch):
    monkeypatch.delenv("ROOMGUARD_A", raising=False)
    monkeypatch.setenv("ROOMGUARD_B", "second")
    assert first_env_value("ROOMGUARD_A", "ROOMGUARD_B") == "second"
    assert first_env_value("ROOMGUARD_A", default="fallback") == "fallback"
