"""
Error taxonomy for the ledger core.

Validation problems are plain records (ValidationError) so a single call can
report every problem at once. Exceptions are reserved for the cases where a
caller cannot carry on: a rejected transaction being forced through, an
unresolvable account, or a collaborator failure.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional


class ValidationErrorCode(Enum):
    """Machine-readable reason a candidate transaction was rejected"""
    INVALID_DATE = "invalid_date"
    MEMO_TOO_LONG = "memo_too_long"
    TOO_FEW_ENTRIES = "too_few_entries"
    INVALID_SIDE = "invalid_side"
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    UNKNOWN_ACCOUNT = "unknown_account"
    MISSING_DEBIT = "missing_debit"
    MISSING_CREDIT = "missing_credit"
    UNBALANCED = "unbalanced"
    RESERVED_MEMO = "reserved_memo"


@dataclass(frozen=True)
class ValidationError:
    """
    A single, user-facing problem with a candidate transaction.

    Attributes:
        code: Reason for the rejection
        message: Human-readable description
        field: Dotted path of the offending field (e.g. 'entries[1].amount')
        entry_index: Index of the offending entry, if the problem is entry-specific
        account_id: Account id that failed to resolve, for unknown accounts
    """
    code: ValidationErrorCode
    message: str
    field: str
    entry_index: Optional[int] = None
    account_id: Optional[int] = None

    def with_prefix(self, prefix: str) -> "ValidationError":
        """Return a copy whose field is namespaced (e.g. 'reversal.entries[0].amount')"""
        return ValidationError(
            code=self.code,
            message=self.message,
            field=f"{prefix}.{self.field}",
            entry_index=self.entry_index,
            account_id=self.account_id,
        )

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class SimpleLedgerError(Exception):
    """Base class for all ledger errors."""
    pass


class AccountNotFoundError(SimpleLedgerError, LookupError):
    """Raised when an account id is absent from the registry or inactive."""

    def __init__(self, account_id, message: Optional[str] = None):
        self.account_id = account_id
        super().__init__(message or f"Account {account_id!r} not found or inactive")


class TransactionRejectedError(SimpleLedgerError):
    """Raised when a transaction that failed validation is forced through."""

    def __init__(self, errors: Iterable[ValidationError]):
        self.errors: List[ValidationError] = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(f"Transaction rejected ({len(self.errors)} problems): {details}")


class TransactionNotFoundError(SimpleLedgerError, LookupError):
    """Raised when a transaction cannot be found."""
    pass


class TransactionLockedError(SimpleLedgerError):
    """
    Raised when deleting a transaction would break a correction pair.

    Covers a reversal or replacement, and an original that already has
    a reversal pointing at it.
    """

    def __init__(self, transaction_id: int, reason: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction #{transaction_id} {reason} and cannot be deleted")


class PersistenceError(SimpleLedgerError):
    """
    Opaque failure from the persistence collaborator.

    The core never interprets or retries these; the operation is treated
    as not having happened.
    """
    pass
