import pytest
from datetime import date
from pathlib import Path
from typing import Callable, List

from simple_ledger.database.connection import DatabaseConfig, DatabaseManager
from simple_ledger.domain.enums import AccountType, Side
from simple_ledger.domain.models import Account, JournalEntry, TransactionCandidate
from simple_ledger.registry.chart_of_accounts import ChartOfAccounts
from simple_ledger.validation.validator import TransactionValidator

SALES = 1
CASH = 2
RENT = 3
RETIRED = 4


@pytest.fixture
def accounts() -> List[Account]:
    """A small chart of accounts: revenue, asset, expense and one inactive account"""
    return [
        Account.create(id=SALES, code="4000", name="Sales", type=AccountType.REVENUE),
        Account.create(id=CASH, code="1000", name="Cash", type=AccountType.ASSET),
        Account.create(id=RENT, code="6300", name="Rent", type=AccountType.EXPENSE),
        Account.create(
            id=RETIRED,
            code="4900",
            name="Old Income",
            type=AccountType.REVENUE,
            active=False,
        ),
    ]


@pytest.fixture
def registry(accounts) -> ChartOfAccounts:
    return ChartOfAccounts(accounts)


@pytest.fixture
def validator(registry) -> TransactionValidator:
    return TransactionValidator(registry)


@pytest.fixture
def debit() -> Callable[..., JournalEntry]:
    def make(account_id: int, amount: int, memo: str = "") -> JournalEntry:
        return JournalEntry(account_id=account_id, side=Side.DEBIT, amount=amount, memo=memo)
    return make


@pytest.fixture
def credit() -> Callable[..., JournalEntry]:
    def make(account_id: int, amount: int, memo: str = "") -> JournalEntry:
        return JournalEntry(account_id=account_id, side=Side.CREDIT, amount=amount, memo=memo)
    return make


@pytest.fixture
def candidate(debit, credit) -> Callable[..., TransactionCandidate]:
    """Build candidates; defaults to a balanced 1000 cash sale"""
    def make(entries=None, memo: str = "Cash sale", on=date(2025, 1, 15)) -> TransactionCandidate:
        if entries is None:
            entries = [debit(CASH, 1000), credit(SALES, 1000)]
        return TransactionCandidate.of(date=on, memo=memo, entries=entries)
    return make


@pytest.fixture
def test_db(tmp_path):
    """
    Create a real test database.

    Use pytest's tmp_path fixture to create a temporary directory.
    Database is automatically cleaned up after each test.
    """
    db_manager = DatabaseManager(DatabaseConfig(tmp_path / "test.db"))
    db_manager.initialize()

    yield db_manager

    db_manager.close()


@pytest.fixture
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"
