# tests/conftest.py

"""Shared pytest fixtures for all schoolscope tests."""

from collections.abc import Generator
from pathlib import Path

import pytest

from schoolscope.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_paths(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Point the durable store and log directory at a temp dir."""
    monkeypatch.setattr(Settings, "STORE_PATH", tmp_path / "store.db")
    monkeypatch.setattr(Settings, "LOGS_DIR", tmp_path / "logs")
    monkeypatch.setattr(Settings, "LOG_LEVEL", "WARNING")
    yield
