"""Pytest configuration for notevault tests.

Ensures the project root is in sys.path so imports work correctly.
"""

import sys
from pathlib import Path

import pytest_asyncio

# Add project root to sys.path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from core.filesystem import FileSystemAPI  # noqa: E402
from storage.providers.sqlite import SQLiteRecordStore  # noqa: E402


class StepClock:
    """Deterministic millisecond clock advancing by ``step`` per call."""

    def __init__(self, start: int = 1_714_566_645_123, step: int = 1):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


@pytest_asyncio.fixture
async def store(tmp_path):
    s = SQLiteRecordStore(tmp_path / "vault.db")
    await s.open()
    yield s
    await s.close()


@pytest_asyncio.fixture
async def empty_store(tmp_path):
    s = SQLiteRecordStore(tmp_path / "empty.db", seed_factory=None)
    await s.open()
    yield s
    await s.close()


@pytest_asyncio.fixture
async def fs(store):
    return FileSystemAPI(store, clock=StepClock())


@pytest_asyncio.fixture
async def empty_fs(empty_store):
    return FileSystemAPI(empty_store, clock=StepClock())
