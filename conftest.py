"""Top-level pytest plugin registration."""

from __future__ import annotations

pytest_plugins = [
    "tests.fixtures.monitoring",
]
