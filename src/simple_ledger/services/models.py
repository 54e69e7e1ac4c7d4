"""
Service layer models - DTOs for service and aggregation results.

These models are derived, ephemeral views over validated transactions;
none of them is persisted.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Tuple

from simple_ledger.domain.models import ValidatedTransaction


@dataclass(frozen=True)
class CategoryTotal:
    """Summed amount for one category key (account code or account type)"""
    key: str
    label: str
    total: int


@dataclass(frozen=True)
class LedgerSummary:
    """
    Income, expense and balance figures for a set of transactions.

    Category mappings iterate in ascending account code so reports and
    tests are deterministic.
    """
    income_by_category: Dict[str, int] = field(default_factory=dict)
    expense_by_category: Dict[str, int] = field(default_factory=dict)
    category_labels: Dict[str, str] = field(default_factory=dict)
    transaction_count: int = 0

    @property
    def total_income(self) -> int:
        return sum(self.income_by_category.values())

    @property
    def total_expense(self) -> int:
        return sum(self.expense_by_category.values())

    @property
    def balance(self) -> int:
        """Income minus expense; negative when spending exceeds income"""
        return self.total_income - self.total_expense

    @property
    def income_categories(self) -> List[CategoryTotal]:
        return self._as_totals(self.income_by_category)

    @property
    def expense_categories(self) -> List[CategoryTotal]:
        return self._as_totals(self.expense_by_category)

    def top_expense_categories(self, limit: int = 5) -> List[CategoryTotal]:
        """Expense categories sorted by amount (descending), ties by key order"""
        return sorted(
            self.expense_categories,
            key=lambda c: c.total,
            reverse=True,
        )[:limit]

    def _as_totals(self, mapping: Dict[str, int]) -> List[CategoryTotal]:
        return [
            CategoryTotal(key=key, label=self.category_labels.get(key, key), total=total)
            for key, total in mapping.items()
        ]

    def __str__(self) -> str:
        """Human-readable summary"""
        lines = [
            f"Transactions: {self.transaction_count}",
            f"  Income:  {self.total_income:,}",
            f"  Expense: {self.total_expense:,}",
            f"  Balance: {self.balance:,}",
        ]
        return "\n".join(lines)


@dataclass(frozen=True)
class MonthlyBalance:
    """Income and expense for one calendar month"""
    year: int
    month: int
    income: int = 0
    expense: int = 0

    @property
    def start_date(self) -> date:
        """First day of the month"""
        return date(self.year, self.month, 1)

    @property
    def balance(self) -> int:
        return self.income - self.expense

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class TransactionPage:
    """One page of stored transactions, newest first"""
    transactions: Tuple[ValidatedTransaction, ...]
    total: int
    page: int
    page_size: int

    def __post_init__(self):
        object.__setattr__(self, "transactions", tuple(self.transactions))
        if self.page < 1:
            raise ValueError(f"Page numbers start at 1, got {self.page}")
        if self.page_size < 1:
            raise ValueError(f"Page size must be positive, got {self.page_size}")

    @property
    def has_next_page(self) -> bool:
        return self.page * self.page_size < self.total
