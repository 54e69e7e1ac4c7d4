from typing import Dict, Iterable, List, Optional, Set

from simple_ledger.domain.enums import AccountType
from simple_ledger.domain.errors import AccountNotFoundError
from simple_ledger.domain.models import Account


class ChartOfAccounts:
    """
    Read-only snapshot of the chart of accounts.

    Built from records supplied by an account collaborator (usually an
    AccountRepository). The snapshot never changes after construction, so
    one instance can be shared by validators and aggregators across threads.

    Usage:
        ```
        registry = ChartOfAccounts(accounts)
        cash = registry.lookup(1)
        revenue_accounts = registry.list_by_type({AccountType.REVENUE})
        ```
    """

    def __init__(self, accounts: Iterable[Account]):
        by_id: Dict[int, Account] = {}
        by_code: Dict[str, Account] = {}

        for account in accounts:
            if account.id is None:
                raise ValueError(f"Account {account.code} has not been saved (no id)")
            if account.id in by_id:
                raise ValueError(f"Duplicate account id {account.id}")
            if account.code in by_code:
                raise ValueError(f"Duplicate account code '{account.code}'")
            by_id[account.id] = account
            by_code[account.code] = account

        self._by_id = by_id
        self._by_code = by_code

    @classmethod
    def from_repository(
        cls,
        repository,
        types: Optional[Set[AccountType]] = None,
    ) -> "ChartOfAccounts":
        """
        Load a snapshot from an AccountRepository.

        Args:
            repository: Source of account records
            types: Restrict the snapshot to these types. None loads every type.
        """
        if types is None:
            return cls(repository.get_all())
        return cls(repository.get_by_types(types))

    def lookup(self, account_id: int) -> Account:
        """
        Resolve an account that postings may reference.

        Raises:
            AccountNotFoundError: If the id is absent or the account is inactive
        """
        account = self._by_id.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        if not account.active:
            raise AccountNotFoundError(
                account_id, f"Account {account.code} ({account.name}) is inactive"
            )
        return account

    def get(self, account_id: int) -> Optional[Account]:
        """Return the account regardless of its active flag, or None"""
        return self._by_id.get(account_id)

    def get_by_code(self, code: str) -> Optional[Account]:
        """Return the account with `code` regardless of its active flag, or None"""
        return self._by_code.get(code)

    def by_code(self, code: str) -> Account:
        """
        Resolve an active account by its user-facing code.

        Raises:
            AccountNotFoundError: If the code is absent or the account is inactive
        """
        account = self._by_code.get(code)
        if account is None:
            raise AccountNotFoundError(code, f"Account code '{code}' not found")
        return self.lookup(account.id)

    def list_by_type(self, types: Iterable[AccountType]) -> List[Account]:
        """Active accounts of the given types, ascending by code"""
        wanted = set(types)
        return sorted(
            (a for a in self._by_id.values() if a.active and a.type in wanted),
            key=lambda a: a.code,
        )

    def __contains__(self, account_id) -> bool:
        return account_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self):
        return iter(sorted(self._by_id.values(), key=lambda a: a.code))

    def __repr__(self) -> str:
        active = sum(1 for a in self._by_id.values() if a.active)
        return f"ChartOfAccounts({len(self._by_id)} accounts, {active} active)"
