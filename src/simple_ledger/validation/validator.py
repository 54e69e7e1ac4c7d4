"""
Transaction Validator

Decides whether a set of journal entries forms a valid double-entry
transaction. Every check runs on every call and all problems are returned
together, so a form can highlight every offending entry at once.

Checks, in reporting order:
1. Date is a well-formed calendar date (no time component)
2. Memos fit within the memo limit; only corrections may carry the
   correction marker, which does not count towards the limit
3. At least two entries
4. Per entry: a real side, a positive integer amount, an active account
5. At least one debit and at least one credit
6. Debit total equals credit total (exact integer arithmetic)

Zero amounts are rejected rather than dropped; a zero posting is always
a mistake upstream.
"""
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Tuple

import structlog

from simple_ledger.domain.enums import Side
from simple_ledger.domain.errors import (
    AccountNotFoundError,
    TransactionRejectedError,
    ValidationError,
    ValidationErrorCode,
)
from simple_ledger.domain.models import (
    CORRECTION_MARKER,
    MAX_MEMO_LENGTH,
    JournalEntry,
    TransactionCandidate,
    ValidatedTransaction,
    strip_correction_marker,
)
from simple_ledger.registry.chart_of_accounts import ChartOfAccounts

logger = structlog.get_logger(__name__)

DATE_FORMAT = "%Y-%m-%d"
ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def parse_iso_date(value: str) -> Optional[date]:
    """Strict YYYY-MM-DD parse; None for anything else, including '2025-1-5'"""
    if not ISO_DATE.fullmatch(value):
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        return None


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one candidate: a transaction or a list of problems"""
    transaction: Optional[ValidatedTransaction] = None
    errors: Tuple[ValidationError, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "errors", tuple(self.errors))
        if (self.transaction is None) == (not self.errors):
            raise ValueError("ValidationResult needs either a transaction or errors, not both")

    @property
    def success(self) -> bool:
        return self.transaction is not None

    @property
    def error_codes(self) -> List[ValidationErrorCode]:
        return [e.code for e in self.errors]

    def errors_for_entry(self, index: int) -> List[ValidationError]:
        """Problems attributable to the entry at `index`"""
        return [e for e in self.errors if e.entry_index == index]

    def raise_for_errors(self) -> ValidatedTransaction:
        """
        Return the validated transaction.

        Raises:
            TransactionRejectedError: If validation failed
        """
        if self.transaction is None:
            raise TransactionRejectedError(self.errors)
        return self.transaction


class TransactionValidator:
    """
    Enforces the double-entry invariants over a candidate transaction.

    Stateless apart from the (immutable) chart of accounts snapshot, so a
    single instance can be shared between threads or used from an event loop.
    """

    def __init__(self, registry: ChartOfAccounts):
        self.registry = registry

    def validate(self, candidate: TransactionCandidate) -> ValidationResult:
        """
        Validate a candidate transaction.

        Args:
            candidate: Proposed date, memo and entries

        Returns:
            ValidationResult holding either the ValidatedTransaction or every
            ValidationError found
        """
        errors: List[ValidationError] = []

        parsed_date = self._check_date(candidate.date, errors)
        self._check_transaction_memo(candidate, errors)

        entries = candidate.entries
        if len(entries) < 2:
            errors.append(ValidationError(
                code=ValidationErrorCode.TOO_FEW_ENTRIES,
                message=f"A transaction needs at least two entries, got {len(entries)}",
                field="entries",
            ))

        debit_total = 0
        credit_total = 0
        has_debit = False
        has_credit = False

        for index, entry in enumerate(entries):
            side_ok = self._check_side(entry, index, errors)
            amount_ok = self._check_amount(entry, index, errors)
            self._check_account(entry, index, errors)
            self._check_memo(entry.memo, f"entries[{index}].memo", index, errors)

            if not side_ok:
                continue

            if entry.side == Side.DEBIT:
                has_debit = True
                if amount_ok:
                    debit_total += entry.amount
            else:
                has_credit = True
                if amount_ok:
                    credit_total += entry.amount

        if not has_debit:
            errors.append(ValidationError(
                code=ValidationErrorCode.MISSING_DEBIT,
                message="A transaction needs at least one debit entry",
                field="entries",
            ))
        if not has_credit:
            errors.append(ValidationError(
                code=ValidationErrorCode.MISSING_CREDIT,
                message="A transaction needs at least one credit entry",
                field="entries",
            ))

        if debit_total != credit_total:
            errors.append(ValidationError(
                code=ValidationErrorCode.UNBALANCED,
                message=(
                    f"Debit and credit totals must be equal "
                    f"(debits {debit_total} != credits {credit_total})"
                ),
                field="entries",
            ))

        if errors:
            logger.debug(
                "transaction_rejected",
                memo=candidate.memo,
                codes=[e.code.value for e in errors],
            )
            return ValidationResult(errors=errors)

        return ValidationResult(
            transaction=ValidatedTransaction(
                date=parsed_date,
                memo=candidate.memo or "",
                entries=entries,
                debit_total=debit_total,
            )
        )

    def _check_date(self, value, errors: List[ValidationError]) -> Optional[date]:
        """Parse the transaction date, recording a problem if it is malformed"""
        parsed: Optional[date] = None

        # datetime is a subclass of date but carries a time component
        if isinstance(value, datetime):
            parsed = None
        elif isinstance(value, date):
            parsed = value
        elif isinstance(value, str):
            parsed = parse_iso_date(value)

        if parsed is None:
            errors.append(ValidationError(
                code=ValidationErrorCode.INVALID_DATE,
                message=f"Invalid date {value!r}, use YYYY-MM-DD",
                field="date",
            ))
        return parsed

    def _check_transaction_memo(
        self,
        candidate: TransactionCandidate,
        errors: List[ValidationError],
    ) -> None:
        memo = candidate.memo
        if memo is None:
            return
        if candidate.correction:
            # the marker is added by the correction engine, not typed by the user
            memo = strip_correction_marker(memo)
        elif memo.startswith(CORRECTION_MARKER):
            errors.append(ValidationError(
                code=ValidationErrorCode.RESERVED_MEMO,
                message=f"Memo may not start with {CORRECTION_MARKER!r}, use a correction instead",
                field="memo",
            ))
        self._check_memo(memo, "memo", None, errors)

    def _check_memo(
        self,
        memo,
        field_name: str,
        index: Optional[int],
        errors: List[ValidationError],
    ) -> None:
        if memo is not None and len(memo) > MAX_MEMO_LENGTH:
            errors.append(ValidationError(
                code=ValidationErrorCode.MEMO_TOO_LONG,
                message=f"Memo must be at most {MAX_MEMO_LENGTH} characters, got {len(memo)}",
                field=field_name,
                entry_index=index,
            ))

    def _check_side(self, entry: JournalEntry, index: int, errors: List[ValidationError]) -> bool:
        if isinstance(entry.side, Side):
            return True
        errors.append(ValidationError(
            code=ValidationErrorCode.INVALID_SIDE,
            message=f"Side must be debit or credit, got {entry.side!r}",
            field=f"entries[{index}].side",
            entry_index=index,
        ))
        return False

    def _check_amount(self, entry: JournalEntry, index: int, errors: List[ValidationError]) -> bool:
        amount = entry.amount
        # bool is an int subclass but never an amount
        if isinstance(amount, int) and not isinstance(amount, bool) and amount > 0:
            return True
        errors.append(ValidationError(
            code=ValidationErrorCode.NON_POSITIVE_AMOUNT,
            message=f"Amount must be a positive integer, got {amount!r}",
            field=f"entries[{index}].amount",
            entry_index=index,
        ))
        return False

    def _check_account(self, entry: JournalEntry, index: int, errors: List[ValidationError]) -> None:
        try:
            self.registry.lookup(entry.account_id)
        except AccountNotFoundError as e:
            errors.append(ValidationError(
                code=ValidationErrorCode.UNKNOWN_ACCOUNT,
                message=str(e),
                field=f"entries[{index}].account_id",
                entry_index=index,
                account_id=entry.account_id,
            ))
