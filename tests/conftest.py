from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable project builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def project_builder(tmp_path: Path) -> Callable[[str], RepoBuilder]:
    """Return a factory creating one named project per call, for multi-service tests."""

    def _factory(name: str) -> RepoBuilder:
        return RepoBuilder(tmp_path, name)

    return _factory
