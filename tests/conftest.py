"""Test configuration and fixtures."""
import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "tests"))

from shared.config import Config  # noqa: E402


@pytest.fixture
def config(tmp_path):
    return Config(
        DB_PATH=str(tmp_path / "council.db"),
        RATE_LIMIT_INTERVAL=0.0,
        DEBATE_SEED=7,
    )
