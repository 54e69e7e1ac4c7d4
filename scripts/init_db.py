#!/usr/bin/env python3
"""
Initialize the ledger database.

Run this script to create the database schema and seed the default
chart of accounts.
"""
from simple_ledger.config.settings import Settings
from simple_ledger.database.connection import DatabaseConfig, DatabaseManager
from simple_ledger.domain.errors import PersistenceError
from simple_ledger.repositories.sqlite_account_repository import SQLiteAccountRepository
from simple_ledger.repositories.sqlite_transaction_repository import SQLiteTransactionRepository
from simple_ledger.services.ledger_service import LedgerService


def main():
    """initialize the database."""

    settings = Settings.load()
    config = DatabaseConfig(settings.database_path)
    print(f"Initializing database at: {config.db_path}")

    with DatabaseManager(config) as db:
        try:
            version = db.initialize()
        except PersistenceError as e:
            print(f"✗ Database initialization failed: {e}")
            return

        service = LedgerService(SQLiteAccountRepository(db), SQLiteTransactionRepository(db))
        accounts = service.seed_chart_of_accounts()

        print("✓ Database initialized successfully!")
        print(f"  Schema version: {version}")
        print(f"  Accounts seeded: {len(accounts)}")


if __name__ == "__main__":
    main()
