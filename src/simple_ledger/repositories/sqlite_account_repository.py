import sqlite3
from typing import Iterable, List, Set

from simple_ledger.database.connection import Connection, DatabaseManager
from simple_ledger.domain.enums import AccountType, Side
from simple_ledger.domain.errors import PersistenceError
from simple_ledger.domain.models import Account
from simple_ledger.repositories.base import AccountRepository


class SQLiteAccountRepository(AccountRepository):
    """
    SQLite implementation of the AccountRepository.

    Accounts are matched by their stable code; saving an existing code
    updates the record in place and keeps its id.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def get_by_types(self, types: Set[AccountType]) -> List[Account]:
        """Retrieve accounts of the given types, ordered by code."""
        types = list(types)
        if not types:
            return []

        placeholders = ", ".join("?" for _ in types)
        query = f"SELECT * FROM accounts WHERE type IN ({placeholders}) ORDER BY code"
        try:
            rows = self.db.get_connection().execute(
                query, [t.value for t in types]
            ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to load accounts: {e}") from e

        return [self._row_to_account(row) for row in rows]

    def get_all(self) -> List[Account]:
        try:
            rows = self.db.get_connection().execute(
                "SELECT * FROM accounts ORDER BY code"
            ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to load accounts: {e}") from e

        return [self._row_to_account(row) for row in rows]

    def save(self, account: Account) -> Account:
        """Insert or update a single account."""
        return self.save_many([account])[0]

    def save_many(self, accounts: Iterable[Account]) -> List[Account]:
        """Upsert accounts by code in a single database transaction."""
        saved = []
        try:
            with self.db.transaction() as conn:
                for account in accounts:
                    saved.append(self._upsert(conn, account))
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to save accounts: {e}") from e

        return saved

    def _upsert(self, conn: Connection, account: Account) -> Account:
        conn.execute(
            """
            INSERT INTO accounts (code, name, type, normal_balance, description, active)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(code) DO UPDATE SET
                name = excluded.name,
                type = excluded.type,
                normal_balance = excluded.normal_balance,
                description = excluded.description,
                active = excluded.active
            """,
            (
                account.code,
                account.name,
                account.type.value,
                account.normal_balance.value,
                account.description,
                int(account.active),
            ),
        )
        row = conn.execute(
            "SELECT id FROM accounts WHERE code = ?", (account.code,)
        ).fetchone()
        return account.with_id(row["id"])

    def _row_to_account(self, row: sqlite3.Row) -> Account:
        """Convert database row to Account object."""
        return Account(
            id=row["id"],
            code=row["code"],
            name=row["name"],
            type=AccountType(row["type"]),
            normal_balance=Side(row["normal_balance"]),
            description=row["description"],
            active=bool(row["active"]),
        )
