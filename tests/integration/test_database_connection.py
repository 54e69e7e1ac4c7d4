import sqlite3

import pytest

from simple_ledger.database.connection import DatabaseConfig, DatabaseManager
from simple_ledger.domain.errors import PersistenceError


@pytest.fixture
def db_manager(tmp_path):
    manager = DatabaseManager(DatabaseConfig(tmp_path / "nested" / "ledger.db"))
    yield manager
    manager.close()


@pytest.mark.integration
class TestDatabaseManager:

    def test_config_creates_parent_directory(self, tmp_path):
        config = DatabaseConfig(tmp_path / "a" / "b" / "ledger.db")

        assert (tmp_path / "a" / "b").is_dir()
        assert config.connection_string.endswith("ledger.db")

    def test_in_memory_config(self):
        config = DatabaseConfig(":memory:")

        assert config.in_memory
        assert config.connection_string == ":memory:"

    def test_empty_database_has_no_schema_version(self, db_manager):
        assert db_manager.schema_version() is None

    def test_initialize_is_idempotent(self, db_manager):
        # Act
        first = db_manager.initialize()
        second = db_manager.initialize()

        # Assert
        assert first == second == 1
        assert db_manager.schema_version() == 1

    def test_foreign_keys_are_enforced(self, db_manager):
        db_manager.initialize()

        with pytest.raises(sqlite3.IntegrityError):
            with db_manager.transaction() as conn:
                conn.execute(
                    "INSERT INTO journal_entries (transaction_id, position, account_id, side, amount) "
                    "VALUES (999, 0, 999, 'debit', 5)"
                )

    def test_transaction_rolls_back_on_error(self, db_manager):
        # Arrange
        db_manager.initialize()

        # Act
        with pytest.raises(RuntimeError):
            with db_manager.transaction() as conn:
                conn.execute(
                    "INSERT INTO accounts (code, name, type, normal_balance) "
                    "VALUES ('1000', 'Cash', 'asset', 'debit')"
                )
                raise RuntimeError("boom")

        # Assert
        count = db_manager.get_connection().execute("SELECT COUNT(*) FROM accounts").fetchone()[0]
        assert count == 0

    def test_rows_are_addressable_by_column(self, db_manager):
        db_manager.initialize()

        row = db_manager.get_connection().execute("SELECT version FROM schema_version").fetchone()

        assert row["version"] == 1

    def test_unopenable_path_raises_persistence_error(self, tmp_path):
        config = DatabaseConfig(tmp_path / "gone" / "ledger.db")
        (tmp_path / "gone").rmdir()
        manager = DatabaseManager(config)

        with pytest.raises(PersistenceError, match="Cannot open ledger database"):
            manager.get_connection()

    def test_context_manager_closes_connection(self, tmp_path):
        with DatabaseManager(DatabaseConfig(tmp_path / "ledger.db")) as db:
            conn = db.get_connection()

        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")
        db.close()
