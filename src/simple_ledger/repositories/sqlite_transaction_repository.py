import sqlite3
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from simple_ledger.database.connection import Connection, DatabaseManager
from simple_ledger.domain.enums import Side
from simple_ledger.domain.errors import PersistenceError
from simple_ledger.domain.models import JournalEntry, ValidatedTransaction
from simple_ledger.repositories.base import TransactionRepository
from simple_ledger.services.models import TransactionPage

logger = structlog.get_logger(__name__)


class SQLiteTransactionRepository(TransactionRepository):
    """
    SQLite implementation of the TransactionRepository.

    A transaction and its journal entries are written inside one database
    transaction; a correction writes both of its transactions inside one.
    sqlite3 errors never leak out: they are wrapped in PersistenceError.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def save(self, transaction: ValidatedTransaction) -> ValidatedTransaction:
        """Save a single transaction with its entries."""
        try:
            with self.db.transaction() as conn:
                saved = self._insert(conn, transaction)
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to save transaction: {e}") from e

        logger.debug("transaction_stored", transaction_id=saved.id)
        return saved

    def save_correction(
        self,
        reversal: ValidatedTransaction,
        replacement: ValidatedTransaction,
    ) -> Tuple[ValidatedTransaction, ValidatedTransaction]:
        """Save a reversal/replacement pair atomically."""
        try:
            with self.db.transaction() as conn:
                saved_reversal = self._insert(conn, reversal)
                saved_replacement = self._insert(conn, replacement)
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to save correction: {e}") from e

        logger.debug(
            "correction_stored",
            reversal_id=saved_reversal.id,
            replacement_id=saved_replacement.id,
        )
        return saved_reversal, saved_replacement

    def get_by_id(self, transaction_id: int) -> Optional[ValidatedTransaction]:
        """Retrieve a transaction by ID, or None if it doesn't exist"""
        try:
            conn = self.db.get_connection()
            row = conn.execute(
                "SELECT * FROM transactions WHERE id = ?",
                (transaction_id,)
            ).fetchone()
            if row is None:
                return None
            entries = self._load_entries(conn, [row["id"]])
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to load transaction {transaction_id}: {e}") from e

        return self._row_to_transaction(row, entries[row["id"]])

    def get_all(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        keyword: Optional[str] = None,
    ) -> List[ValidatedTransaction]:
        """Retrieve transactions with optional filtering."""
        where, params = self._filters(start_date, end_date, keyword)
        query = f"SELECT * FROM transactions {where} ORDER BY date DESC, id DESC"
        return self._fetch(query, params)

    def get_page(
        self,
        page: int = 1,
        page_size: int = 20,
        keyword: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> TransactionPage:
        """Retrieve one page of transactions plus the total match count."""
        if page < 1 or page_size < 1:
            raise ValueError(f"Invalid page {page} / page size {page_size}")

        where, params = self._filters(start_date, end_date, keyword)
        try:
            total = self.db.get_connection().execute(
                f"SELECT COUNT(*) FROM transactions {where}", params
            ).fetchone()[0]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to count transactions: {e}") from e

        query = (
            f"SELECT * FROM transactions {where} "
            f"ORDER BY date DESC, id DESC LIMIT ? OFFSET ?"
        )
        transactions = self._fetch(query, params + [page_size, (page - 1) * page_size])

        return TransactionPage(
            transactions=transactions,
            total=total,
            page=page,
            page_size=page_size,
        )

    def delete(self, transaction_id: int) -> bool:
        """Delete a transaction; its entries go with it (ON DELETE CASCADE)."""
        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    "DELETE FROM transactions WHERE id = ?",
                    (transaction_id,)
                )
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to delete transaction {transaction_id}: {e}") from e

    def _insert(self, conn: Connection, transaction: ValidatedTransaction) -> ValidatedTransaction:
        cursor = conn.execute(
            """
            INSERT INTO transactions (date, memo, debit_total)
            VALUES (?, ?, ?)
            """,
            (
                transaction.date.isoformat(),
                transaction.memo,
                transaction.debit_total,
            ),
        )
        transaction_id = cursor.lastrowid

        conn.executemany(
            """
            INSERT INTO journal_entries (
                transaction_id, position, account_id, side, amount, memo
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    transaction_id,
                    position,
                    entry.account_id,
                    entry.side.value,
                    entry.amount,
                    entry.memo,
                )
                for position, entry in enumerate(transaction.entries)
            ],
        )
        return transaction.with_id(transaction_id)

    def _filters(
        self,
        start_date: Optional[date],
        end_date: Optional[date],
        keyword: Optional[str],
    ) -> Tuple[str, list]:
        """Build the WHERE clause shared by listing and counting."""
        clauses = ["1=1"]
        params: list = []

        if start_date:
            clauses.append("date >= ?")
            params.append(start_date.isoformat())

        if end_date:
            clauses.append("date <= ?")
            params.append(end_date.isoformat())

        if keyword:
            clauses.append("memo LIKE ?")
            params.append(f"%{keyword}%")

        return "WHERE " + " AND ".join(clauses), params

    def _fetch(self, query: str, params: list) -> List[ValidatedTransaction]:
        try:
            conn = self.db.get_connection()
            rows = conn.execute(query, params).fetchall()
            entries = self._load_entries(conn, [row["id"] for row in rows])
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to load transactions: {e}") from e

        return [self._row_to_transaction(row, entries[row["id"]]) for row in rows]

    def _load_entries(
        self,
        conn: Connection,
        transaction_ids: Sequence[int],
    ) -> Dict[int, List[JournalEntry]]:
        """Load entries for several transactions, keeping their original order."""
        grouped: Dict[int, List[JournalEntry]] = defaultdict(list)
        if not transaction_ids:
            return grouped

        placeholders = ", ".join("?" for _ in transaction_ids)
        rows = conn.execute(
            f"""
            SELECT * FROM journal_entries
            WHERE transaction_id IN ({placeholders})
            ORDER BY transaction_id, position
            """,
            list(transaction_ids),
        ).fetchall()

        for row in rows:
            grouped[row["transaction_id"]].append(
                JournalEntry(
                    account_id=row["account_id"],
                    side=Side(row["side"]),
                    amount=row["amount"],
                    memo=row["memo"],
                )
            )
        return grouped

    def _row_to_transaction(
        self,
        row: sqlite3.Row,
        entries: List[JournalEntry],
    ) -> ValidatedTransaction:
        """Convert database row to ValidatedTransaction object."""
        return ValidatedTransaction(
            id=row["id"],
            date=date.fromisoformat(row["date"]),
            memo=row["memo"],
            entries=tuple(entries),
            debit_total=row["debit_total"],
        )
