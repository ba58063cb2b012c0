"""Global pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from kopfolio.config import BackupConfig, DatabaseConfig, KopfolioConfig
from tests.utils import FakeInvoker, seeded_store


@pytest.fixture
def kopfolio_config(tmp_path):
    """Config pointing uploads and temp files into a per-test directory."""
    return KopfolioConfig(
        database=DatabaseConfig(password="secret"),
        backup=BackupConfig(
            uploads_dir=tmp_path / "uploads",
            temp_dir=tmp_path / "temp",
        ),
    )


@pytest.fixture
def store():
    return seeded_store()


@pytest.fixture
def invoker(store):
    return FakeInvoker(store)
