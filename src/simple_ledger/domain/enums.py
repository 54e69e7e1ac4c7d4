from enum import Enum


class Side(Enum):
    """The two sides of a posting"""
    DEBIT = "debit"
    CREDIT = "credit"

    def flipped(self) -> "Side":
        """Return the opposite side (debit <-> credit)"""
        if self is Side.DEBIT:
            return Side.CREDIT
        return Side.DEBIT


class AccountType(Enum):
    """Closed set of account classifications in the chart of accounts"""
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @property
    def normal_balance(self) -> Side:
        """Side on which increases to this type of account are recorded"""
        return _NORMAL_BALANCES[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()


# Every member must be listed; a missing type fails at import time below.
_NORMAL_BALANCES = {
    AccountType.ASSET: Side.DEBIT,
    AccountType.LIABILITY: Side.CREDIT,
    AccountType.EQUITY: Side.CREDIT,
    AccountType.REVENUE: Side.CREDIT,
    AccountType.EXPENSE: Side.DEBIT,
}

assert set(_NORMAL_BALANCES) == set(AccountType), "normal balance missing for an account type"


class CategoryGranularity(Enum):
    """How the aggregator groups contributing entries"""
    ACCOUNT = "account"
    ACCOUNT_TYPE = "account_type"


class CorrectionState(Enum):
    """Lifecycle of a single logical correction"""
    PENDING = "pending"      # user editing, nothing validated yet
    CONFIRMED = "confirmed"  # reversal + replacement both validated
    APPLIED = "applied"      # both persisted as one unit
