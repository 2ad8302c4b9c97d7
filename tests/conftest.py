import pytest

from migrator.core.managers.database_manager import DatabaseManager
from migrator.core.managers.fragment_store import FragmentStore


class FakeConfig:
    """Dict-backed stand-in for ConfigManager.get_nested."""

    def __init__(self, values=None):
        self.values = values or {}

    def get_nested(self, key_path, default=None):
        value = self.values.get(key_path)
        return value if value is not None else default


@pytest.fixture
def db_manager(tmp_path):
    manager = DatabaseManager(tmp_path / "test_migration.db")
    manager.init_schema()
    yield manager
    manager.close()


@pytest.fixture
def store(db_manager) -> FragmentStore:
    return FragmentStore(db_manager)


@pytest.fixture
def fake_config():
    return FakeConfig
