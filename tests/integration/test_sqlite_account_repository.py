import pytest

from simple_ledger.domain.enums import AccountType
from simple_ledger.domain.models import Account
from simple_ledger.registry.chart_of_accounts import ChartOfAccounts
from simple_ledger.repositories.sqlite_account_repository import SQLiteAccountRepository


@pytest.fixture
def repo(test_db) -> SQLiteAccountRepository:
    return SQLiteAccountRepository(test_db)


@pytest.mark.integration
class TestSQLiteAccountRepository:

    def test_save_assigns_id(self, repo: SQLiteAccountRepository):
        saved = repo.save(Account.create(code="1000", name="Cash", type=AccountType.ASSET))

        assert saved.id is not None
        assert repo.get_all() == [saved]

    def test_save_same_code_updates_in_place(self, repo: SQLiteAccountRepository):
        # Arrange
        first = repo.save(Account.create(code="1000", name="Cash", type=AccountType.ASSET))

        # Act
        second = repo.save(Account.create(
            code="1000", name="Petty Cash", type=AccountType.ASSET, active=False
        ))

        # Assert
        assert second.id == first.id
        stored = repo.get_all()
        assert len(stored) == 1
        assert stored[0].name == "Petty Cash"
        assert stored[0].active is False

    def test_get_by_types(self, repo: SQLiteAccountRepository):
        repo.save_many([
            Account.create(code="6300", name="Rent", type=AccountType.EXPENSE),
            Account.create(code="1000", name="Cash", type=AccountType.ASSET),
            Account.create(code="4000", name="Sales", type=AccountType.REVENUE),
        ])

        result = repo.get_by_types({AccountType.EXPENSE, AccountType.REVENUE})

        assert [a.code for a in result] == ["4000", "6300"]
        assert repo.get_by_types(set()) == []

    def test_round_trip_into_registry(self, repo: SQLiteAccountRepository):
        repo.save_many([
            Account.create(code="1000", name="Cash", type=AccountType.ASSET, description="On hand"),
            Account.create(code="2000", name="Payables", type=AccountType.LIABILITY),
        ])

        registry = ChartOfAccounts.from_repository(repo)

        assert registry.by_code("1000").description == "On hand"
        assert registry.by_code("2000").normal_balance == AccountType.LIABILITY.normal_balance
