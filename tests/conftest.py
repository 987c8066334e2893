"""
Pytest configuration and shared fixtures

Fun fact: The name "conftest" comes from pytest's configuration testing
framework. Files named conftest.py are automatically discovered and their
fixtures are available to all tests in the same directory and subdirectories!
"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

import pytest

from design_pipeline.kernel.database import Database
from design_pipeline.kernel.policy import WorkflowPolicy
from design_pipeline.kernel.time import FixedTimeProvider
from design_pipeline.pipeline import Pipeline


@pytest.fixture
def temp_db() -> Iterator[Path]:
    """Provide a temporary database file that's cleaned up after test"""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup, including the WAL side files
    for path in (db_path, Path(f"{db_path}-wal"), Path(f"{db_path}-shm")):
        if path.exists():
            path.unlink()


@pytest.fixture
def database(temp_db: Path) -> Database:
    """Provide a fresh database with the full schema"""
    return Database(temp_db)


@pytest.fixture
def test_time() -> FixedTimeProvider:
    """
    Provide a controllable time provider for deterministic tests

    Default time: 2025-01-15 12:00:00 UTC. Bids created at this time expire
    after 2025-01-16 12:00:00 UTC.
    """
    return FixedTimeProvider(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def policy() -> WorkflowPolicy:
    """Provide the default workflow policy (24h bids, 14 day cost inputs)"""
    return WorkflowPolicy()


@pytest.fixture
def pipeline(temp_db: Path, test_time: FixedTimeProvider, policy: WorkflowPolicy) -> Pipeline:
    """Provide a pipeline on a fresh database with deterministic time"""
    return Pipeline(temp_db, policy=policy, time_provider=test_time)
