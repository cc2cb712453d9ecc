"""Shared fixtures for toolsync tests."""

from pathlib import Path

import pytest


@pytest.fixture
def tool_dir(tmp_path: Path) -> Path:
    """Deployment root standing in for ~/.claude. Not created up front."""
    return tmp_path / ".claude"


@pytest.fixture
def checkout(tmp_path: Path) -> Path:
    """Empty directory standing in for a source checkout."""
    path = tmp_path / "checkout"
    path.mkdir()
    return path
