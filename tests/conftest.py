"""Shared pytest fixtures."""

from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("SOCRATES_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SOCRATES_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def sample_text() -> str:
    return "\n".join(f"Sentence number {index}." for index in range(10))
