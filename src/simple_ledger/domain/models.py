from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, Optional, Tuple, Union

from simple_ledger.domain.enums import AccountType, Side

MAX_MEMO_LENGTH = 100
CORRECTION_MARKER = "[Correction]"


def strip_correction_marker(memo: str) -> str:
    """The user-written part of a memo, without a leading correction marker"""
    if memo.startswith(CORRECTION_MARKER):
        return memo[len(CORRECTION_MARKER):].lstrip()
    return memo


@dataclass(frozen=True)
class Account:
    """An entry in the chart of accounts"""
    code: str
    name: str
    type: AccountType
    normal_balance: Side
    active: bool = True
    description: str = ""
    id: Optional[int] = None

    def __post_init__(self):
        """The normal balance is fixed by the account type"""
        if self.normal_balance != self.type.normal_balance:
            raise ValueError(
                f"Account {self.code} ({self.type.value}) must have a "
                f"{self.type.normal_balance.value} normal balance, "
                f"got {self.normal_balance.value}"
            )

    @classmethod
    def create(
        cls,
        code: str,
        name: str,
        type: AccountType,
        active: bool = True,
        description: str = "",
        id: Optional[int] = None,
    ) -> "Account":
        """Build an account, deriving its normal balance from the type"""
        return cls(
            code=code,
            name=name,
            type=type,
            normal_balance=type.normal_balance,
            active=active,
            description=description,
            id=id,
        )

    def with_id(self, account_id: int) -> "Account":
        return replace(self, id=account_id)

    def __repr__(self):
        status = "" if self.active else ", inactive"
        return f"Account({self.code} {self.name}, {self.type.value}{status})"


@dataclass(frozen=True)
class JournalEntry:
    """A single debit or credit posting against one account"""
    account_id: int
    side: Side
    amount: int  # smallest currency unit
    memo: str = ""

    @property
    def is_debit(self) -> bool:
        return self.side == Side.DEBIT

    @property
    def is_credit(self) -> bool:
        return self.side == Side.CREDIT

    def flipped(self) -> "JournalEntry":
        """Mirror of this posting on the opposite side"""
        return replace(self, side=self.side.flipped())

    def __repr__(self):
        return f"JournalEntry({self.side.value} #{self.account_id} {self.amount})"


@dataclass(frozen=True)
class TransactionCandidate:
    """
    A proposed transaction, not yet validated.

    The date may still be an ISO 'YYYY-MM-DD' string straight from user input;
    the validator decides whether it is well formed.

    Only the correction engine sets `correction`; its memo then starts with
    the correction marker, which ordinary transactions may not use.
    """
    date: Union[date, str, None]
    memo: str
    entries: Tuple[JournalEntry, ...] = field(default_factory=tuple)
    correction: bool = False

    def __post_init__(self):
        # Accept any iterable but store an immutable tuple
        object.__setattr__(self, "entries", tuple(self.entries))

    @classmethod
    def of(
        cls,
        date: Union[date, str, None],
        memo: str,
        entries: Iterable[JournalEntry],
        correction: bool = False,
    ) -> "TransactionCandidate":
        return cls(date=date, memo=memo, entries=tuple(entries), correction=correction)


@dataclass(frozen=True)
class ValidatedTransaction:
    """
    A transaction that satisfied every double-entry invariant.

    Only the validator (or storage, which only holds validated transactions)
    creates these. Instances are immutable so they can be shared across
    threads and aggregated repeatedly.
    """
    date: date
    memo: str
    entries: Tuple[JournalEntry, ...]
    debit_total: int
    id: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "entries", tuple(self.entries))

    @property
    def credit_total(self) -> int:
        """Equal to debit_total by construction"""
        return self.debit_total

    @property
    def is_correction(self) -> bool:
        """True for reversal or replacement transactions created by a correction"""
        return self.memo.startswith(CORRECTION_MARKER)

    @property
    def account_ids(self) -> frozenset:
        """Accounts affected by this transaction"""
        return frozenset(e.account_id for e in self.entries)

    def with_id(self, transaction_id: int) -> "ValidatedTransaction":
        """Copy carrying the identifier assigned by storage"""
        return replace(self, id=transaction_id)

    def __repr__(self):
        ident = f"#{self.id} " if self.id is not None else ""
        return (
            f"ValidatedTransaction({ident}{self.date}, {self.memo[:30]}, "
            f"{len(self.entries)} entries, {self.debit_total})"
        )
