"""
SQLite access for the ledger.

One DatabaseManager owns one connection. Every write that touches more than
one row (a transaction with its journal entries, a correction pair) runs in
`DatabaseManager.transaction()` and is committed or rolled back as a unit.
"""
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

import structlog

from simple_ledger.domain.errors import PersistenceError

Connection = sqlite3.Connection

SCHEMA_PATH = Path(__file__).parent / "schema.sql"
IN_MEMORY = ":memory:"

logger = structlog.get_logger(__name__)


class DatabaseConfig:
    """Where the ledger lives, and how long to wait on a locked file."""

    def __init__(self, db_path: Path | str = "data/ledger.db", busy_timeout_ms: int = 5000):
        self.in_memory = str(db_path) == IN_MEMORY
        self.db_path = Path(db_path)
        self.busy_timeout_ms = busy_timeout_ms
        if not self.in_memory:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def connection_string(self) -> str:
        if self.in_memory:
            return IN_MEMORY
        return str(self.db_path.absolute())

    def __repr__(self):
        return f"DatabaseConfig({self.connection_string})"


def configure_connection(conn: Connection, busy_timeout_ms: int = 5000) -> None:
    """
    Turn on the settings the repositories rely on.

    Journal entries are removed with their transaction through ON DELETE
    CASCADE and must point at a real account, so foreign keys are required;
    a SQLite build that ignores the pragma is refused.

    Raises:
        PersistenceError: If foreign key enforcement cannot be enabled
    """
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)}")

    if conn.execute("PRAGMA foreign_keys").fetchone()[0] != 1:
        raise PersistenceError("SQLite foreign key enforcement is unavailable")

    conn.row_factory = sqlite3.Row


class DatabaseManager:
    """
    Lazily opened connection shared by the account and transaction repositories.

    Usage:
        ```
        with DatabaseManager(DatabaseConfig("data/ledger.db")) as db:
            db.initialize()
            repository = SQLiteTransactionRepository(db)
        ```
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._connection: Optional[Connection] = None

    def get_connection(self) -> Connection:
        """
        Raises:
            PersistenceError: If the database file cannot be opened
        """
        if self._connection is None:
            self._connection = self._connect()
        return self._connection

    def _connect(self) -> Connection:
        try:
            conn = sqlite3.connect(
                self.config.connection_string,
                check_same_thread=False,
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open ledger database {self.config.connection_string}: {e}") from e

        try:
            configure_connection(conn, self.config.busy_timeout_ms)
        except sqlite3.Error as e:
            conn.close()
            raise PersistenceError(f"Cannot configure ledger database: {e}") from e
        except PersistenceError:
            conn.close()
            raise

        logger.debug("database_connected", path=self.config.connection_string)
        return conn

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.debug("database_closed", path=self.config.connection_string)

    @contextmanager
    def transaction(self) -> Generator[Connection, None, None]:
        """
        Commit the block's writes together, or none of them.

        Usage:
            with db_manager.transaction() as conn:
                conn.execute("INSERT INTO transactions ...")
                conn.executemany("INSERT INTO journal_entries ...", rows)
        """
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.warning("database_rolled_back", error=str(e))
            raise

    def initialize(self, schema_path: Path = SCHEMA_PATH) -> int:
        """
        Create any missing tables and return the resulting schema version.

        Safe to run against an existing ledger; every statement in the
        schema is idempotent.

        Raises:
            PersistenceError: If the schema cannot be applied
        """
        try:
            execute_schema(self.get_connection(), schema_path)
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to apply schema {schema_path}: {e}") from e

        version = self.schema_version()
        if version is None:
            raise PersistenceError(f"Schema {schema_path} did not record a version")
        logger.info("database_initialized", path=self.config.connection_string, schema_version=version)
        return version

    def schema_version(self) -> Optional[int]:
        """Highest applied schema version, or None for an empty database"""
        conn = self.get_connection()
        try:
            row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        except sqlite3.OperationalError:
            # no schema_version table yet
            return None
        return row[0]

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def execute_schema(conn: Connection, schema_path: Path = SCHEMA_PATH) -> None:
    """Run every statement in a .sql file and commit."""
    conn.executescript(Path(schema_path).read_text())
    conn.commit()
