"""
Pytest configuration and fixtures for LootGoblin tests.
"""

import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from lootgoblin.database.db_cache import SettingsCache  # noqa: E402
from lootgoblin.database.db_connection import ConnectionManager  # noqa: E402
from lootgoblin.database.db_schema import SchemaManager  # noqa: E402


@pytest_asyncio.fixture
async def connection(tmp_path):
    """An open connection to a fresh database with the schema applied."""
    manager = ConnectionManager()
    await manager.open(tmp_path / "test.db")
    async with manager.transaction() as conn:
        await SchemaManager.initialize_schema(conn)
    yield manager
    await manager.close()


@pytest.fixture
def settings_cache():
    return SettingsCache(ttl_seconds=600)
