"""Parsing of the few ``ROOMGUARD_*`` variables read outside the settings model.

Logging is configured before :class:`roomguard.settings.MonitoringSettings`
is loaded, so its knobs are read straight from the environment here. Blank
values count as unset.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")

_BOOLEANS = {
    "1": True,
    "true": True,
    "yes": True,
    "on": True,
    "0": False,
    "false": False,
    "no": False,
    "off": False,
}


class EnvVarError(ValueError):
    """An environment variable is missing or malformed."""

    def __init__(self, var_name: str, message: str, value: str | None = None) -> None:
        super().__init__(f"{var_name}: {message}")
        self.var_name = var_name
        self.value = value


def read_env(var_name: str) -> str | None:
    value = (os.environ.get(var_name) or "").strip()
    return value or None


def coerce_env_value(
    var_name: str,
    cast: Callable[[str], T],
    *,
    default: T | None = None,
    required: bool = False,
) -> T | None:
    """Apply ``cast`` to the variable, or fall back to ``default`` when unset."""
    value = read_env(var_name)
    if value is None:
        if required:
            raise EnvVarError(var_name, "is required but was not set")
        return default
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise EnvVarError(var_name, f"could not be parsed: {value!r}", value) from exc


def _parse_flag(value: str) -> bool:
    try:
        return _BOOLEANS[value.lower()]
    except KeyError:
        raise ValueError(value) from None


def get_env_bool(var_name: str, *, default: bool = False) -> bool:
    parsed = coerce_env_value(var_name, _parse_flag, default=default)
    return bool(parsed)


def get_env_int(var_name: str, *, default: int | None = None, required: bool = False) -> int | None:
    return coerce_env_value(var_name, int, default=default, required=required)


def first_env_value(*var_names: str, default: str | None = None) -> str | None:
    """Value of the first variable in ``var_names`` that is set."""
    return next(
        (value for value in map(read_env, var_names) if value is not None),
        default,
    )


__all__ = [
    "EnvVarError",
    "read_env",
    "coerce_env_value",
    "get_env_bool",
    "get_env_int",
    "first_env_value",
]
