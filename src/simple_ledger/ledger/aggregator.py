from collections import defaultdict
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from simple_ledger.domain.enums import AccountType, CategoryGranularity, Side
from simple_ledger.domain.models import Account, JournalEntry, ValidatedTransaction
from simple_ledger.registry.chart_of_accounts import ChartOfAccounts
from simple_ledger.services.models import LedgerSummary, MonthlyBalance

logger = structlog.get_logger(__name__)


class Flow(Enum):
    """Which total an entry contributes to"""
    INCOME = "income"
    EXPENSE = "expense"


# Account type -> (contributing side, flow). Balance-sheet types contribute nothing.
_CLASSIFICATION: Dict[AccountType, Optional[Tuple[Side, Flow]]] = {
    AccountType.REVENUE: (Side.CREDIT, Flow.INCOME),
    AccountType.EXPENSE: (Side.DEBIT, Flow.EXPENSE),
    AccountType.ASSET: None,
    AccountType.LIABILITY: None,
    AccountType.EQUITY: None,
}

assert set(_CLASSIFICATION) == set(AccountType), "classification missing for an account type"


def classify(entry: JournalEntry, account: Account) -> Optional[Flow]:
    """
    Decide whether an entry is income, expense or neither.

    - credit against a revenue account -> income
    - debit against an expense account -> expense
    - anything else (including every asset/liability/equity posting) -> None
    """
    rule = _CLASSIFICATION[account.type]
    if rule is None:
        return None
    side, flow = rule
    return flow if entry.side == side else None


class LedgerAggregator:
    """
    Derives income/expense/balance figures from validated transactions.

    Pure computation over immutable inputs: nothing is mutated, nothing is
    cached, and repeated or concurrent calls return identical results.

    Usage:
        ```
        aggregator = LedgerAggregator(registry)
        summary = aggregator.aggregate(transactions)
        print(summary.total_income, summary.total_expense, summary.balance)
        ```
    """

    def __init__(self, registry: ChartOfAccounts):
        self.registry = registry

    def aggregate(
        self,
        transactions: Iterable[ValidatedTransaction],
        granularity: CategoryGranularity = CategoryGranularity.ACCOUNT,
    ) -> LedgerSummary:
        """
        Summarize income and expense by category.

        Args:
            transactions: Any finite sequence of validated transactions
            granularity: Group by individual account or by account type

        Returns:
            LedgerSummary with category mappings in ascending account code
        """
        totals: Dict[Flow, Dict[str, int]] = {
            Flow.INCOME: defaultdict(int),
            Flow.EXPENSE: defaultdict(int),
        }
        order: Dict[str, str] = {}   # category key -> lowest account code seen
        labels: Dict[str, str] = {}
        count = 0

        for txn in transactions:
            count += 1
            for entry, account in self._resolved_entries(txn):
                flow = classify(entry, account)
                if flow is None:
                    continue

                key, label = self._category_of(account, granularity)
                totals[flow][key] += entry.amount
                labels[key] = label
                if key not in order or account.code < order[key]:
                    order[key] = account.code

        def ordered(mapping: Dict[str, int]) -> Dict[str, int]:
            return {k: mapping[k] for k in sorted(mapping, key=lambda k: (order[k], k))}

        return LedgerSummary(
            income_by_category=ordered(totals[Flow.INCOME]),
            expense_by_category=ordered(totals[Flow.EXPENSE]),
            category_labels=labels,
            transaction_count=count,
        )

    def monthly_balances(
        self,
        transactions: Iterable[ValidatedTransaction],
    ) -> List[MonthlyBalance]:
        """Income, expense and balance per calendar month, oldest first"""
        months: Dict[Tuple[int, int], Dict[Flow, int]] = defaultdict(
            lambda: {Flow.INCOME: 0, Flow.EXPENSE: 0}
        )

        for txn in transactions:
            bucket = months[(txn.date.year, txn.date.month)]
            for entry, account in self._resolved_entries(txn):
                flow = classify(entry, account)
                if flow is not None:
                    bucket[flow] += entry.amount

        return [
            MonthlyBalance(
                year=year,
                month=month,
                income=months[(year, month)][Flow.INCOME],
                expense=months[(year, month)][Flow.EXPENSE],
            )
            for year, month in sorted(months)
        ]

    def account_balance(
        self,
        account_id: int,
        transactions: Iterable[ValidatedTransaction],
    ) -> int:
        """
        Signed balance of one account, positive on its normal-balance side.

        A cash account (debit normal) that received 1000 and paid out 300
        has a balance of 700; a revenue account credited 1000 has 1000.

        Raises:
            AccountNotFoundError: If the account is unknown to the registry
        """
        account = self.registry.get(account_id)
        if account is None:
            # Reuse the registry's failure for a consistent error
            account = self.registry.lookup(account_id)

        balance = 0
        for txn in transactions:
            for entry in txn.entries:
                if entry.account_id != account_id:
                    continue
                if entry.side == account.normal_balance:
                    balance += entry.amount
                else:
                    balance -= entry.amount
        return balance

    def trial_balance(
        self,
        transactions: Iterable[ValidatedTransaction],
    ) -> Dict[str, int]:
        """Balance of every account with postings, keyed by code (ascending)"""
        transactions = list(transactions)
        account_ids = set()
        for txn in transactions:
            account_ids.update(txn.account_ids)

        accounts = sorted(
            (self.registry.get(i) for i in account_ids if i in self.registry),
            key=lambda a: a.code,
        )
        return {
            account.code: self.account_balance(account.id, transactions)
            for account in accounts
        }

    def _resolved_entries(self, txn: ValidatedTransaction):
        """Yield (entry, account) pairs, skipping accounts the snapshot does not know"""
        for entry in txn.entries:
            account = self.registry.get(entry.account_id)
            if account is None:
                logger.warning(
                    "unknown_account_in_aggregate",
                    transaction_id=txn.id,
                    account_id=entry.account_id,
                )
                continue
            yield entry, account

    def _category_of(
        self,
        account: Account,
        granularity: CategoryGranularity,
    ) -> Tuple[str, str]:
        """Category key and display label for an account"""
        if granularity == CategoryGranularity.ACCOUNT_TYPE:
            return account.type.value, account.type.label
        return account.code, account.name
