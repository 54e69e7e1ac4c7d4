import pytest

from simple_ledger.domain.enums import AccountType, Side
from simple_ledger.domain.errors import AccountNotFoundError
from simple_ledger.domain.models import Account
from simple_ledger.registry.chart_of_accounts import ChartOfAccounts


@pytest.mark.unit
class TestChartOfAccountsLookup:

    def test_lookup_returns_active_account(self, registry: ChartOfAccounts):
        account = registry.lookup(2)

        assert account.code == "1000"
        assert account.normal_balance == Side.DEBIT

    def test_lookup_unknown_id_raises(self, registry: ChartOfAccounts):
        with pytest.raises(AccountNotFoundError) as exc_info:
            registry.lookup(42)

        assert exc_info.value.account_id == 42

    def test_lookup_inactive_account_raises(self, registry: ChartOfAccounts):
        with pytest.raises(AccountNotFoundError, match="inactive"):
            registry.lookup(4)

    def test_get_returns_inactive_account(self, registry: ChartOfAccounts):
        """Historical transactions can still be described after an account is retired"""
        account = registry.get(4)

        assert account is not None
        assert account.active is False
        assert registry.get(42) is None

    def test_by_code(self, registry: ChartOfAccounts):
        assert registry.by_code("6300").name == "Rent"

        with pytest.raises(AccountNotFoundError):
            registry.by_code("9999")
        with pytest.raises(AccountNotFoundError):
            registry.by_code("4900")

    def test_get_by_code_ignores_active_flag(self, registry: ChartOfAccounts):
        assert registry.get_by_code("4900").id == 4
        assert registry.get_by_code("9999") is None


@pytest.mark.unit
class TestChartOfAccountsListing:

    def test_list_by_type_filters_and_sorts_by_code(self, registry: ChartOfAccounts):
        # Act
        accounts = registry.list_by_type({AccountType.REVENUE, AccountType.ASSET})

        # Assert
        assert [a.code for a in accounts] == ["1000", "4000"]

    def test_list_by_type_excludes_inactive(self, registry: ChartOfAccounts):
        revenue = registry.list_by_type({AccountType.REVENUE})

        assert [a.code for a in revenue] == ["4000"]

    def test_list_by_type_with_no_matches(self, registry: ChartOfAccounts):
        assert registry.list_by_type({AccountType.LIABILITY}) == []

    def test_iteration_and_membership(self, registry: ChartOfAccounts):
        assert [a.code for a in registry] == ["1000", "4000", "4900", "6300"]
        assert len(registry) == 4
        assert 3 in registry
        assert 42 not in registry


@pytest.mark.unit
class TestChartOfAccountsConstruction:

    def test_unsaved_account_is_rejected(self):
        with pytest.raises(ValueError, match="no id"):
            ChartOfAccounts([Account.create(code="1000", name="Cash", type=AccountType.ASSET)])

    def test_duplicate_id_is_rejected(self):
        accounts = [
            Account.create(id=1, code="1000", name="Cash", type=AccountType.ASSET),
            Account.create(id=1, code="1010", name="Bank", type=AccountType.ASSET),
        ]
        with pytest.raises(ValueError, match="Duplicate account id"):
            ChartOfAccounts(accounts)

    def test_duplicate_code_is_rejected(self):
        accounts = [
            Account.create(id=1, code="1000", name="Cash", type=AccountType.ASSET),
            Account.create(id=2, code="1000", name="Bank", type=AccountType.ASSET),
        ]
        with pytest.raises(ValueError, match="Duplicate account code"):
            ChartOfAccounts(accounts)

    def test_from_repository_uses_types_when_given(self, mocker, accounts):
        # Arrange
        repository = mocker.Mock()
        repository.get_by_types.return_value = accounts[:1]

        # Act
        registry = ChartOfAccounts.from_repository(repository, types={AccountType.REVENUE})

        # Assert
        repository.get_by_types.assert_called_once_with({AccountType.REVENUE})
        repository.get_all.assert_not_called()
        assert len(registry) == 1

    def test_from_repository_loads_everything_by_default(self, mocker, accounts):
        repository = mocker.Mock()
        repository.get_all.return_value = accounts

        registry = ChartOfAccounts.from_repository(repository)

        assert len(registry) == len(accounts)
