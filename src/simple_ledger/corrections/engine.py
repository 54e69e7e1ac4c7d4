from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Iterable, Optional, Tuple, Union

import structlog

from simple_ledger.domain.enums import CorrectionState
from simple_ledger.domain.errors import ValidationError
from simple_ledger.domain.models import (
    CORRECTION_MARKER,
    JournalEntry,
    TransactionCandidate,
    ValidatedTransaction,
    strip_correction_marker,
)
from simple_ledger.validation.validator import TransactionValidator

logger = structlog.get_logger(__name__)


def reversal_memo(original_id: int) -> str:
    return f"{CORRECTION_MARKER} Reversal of transaction #{original_id}"


def replacement_memo(text: str) -> str:
    """
    Marked memo for a replacement.

    Correcting a correction reuses its text, so an existing marker is
    dropped rather than repeated.
    """
    return f"{CORRECTION_MARKER} {strip_correction_marker(text)}".rstrip()


def is_correction(transaction: ValidatedTransaction) -> bool:
    """True for transactions written by a correction (reversal or replacement)"""
    return transaction.is_correction


@dataclass(frozen=True)
class Correction:
    """
    One logical amendment of a posted transaction.

    State machine:
        PENDING -> CONFIRMED (reversal and replacement both validated)
        CONFIRMED -> APPLIED (both persisted as a single unit)

    The reversal and replacement are only ever visible together; there is
    no state in which one is applied without the other.
    """
    original_id: int
    reversal: Optional[ValidatedTransaction] = None
    replacement: Optional[ValidatedTransaction] = None
    state: CorrectionState = CorrectionState.PENDING
    note: Optional[str] = None

    def confirmed(
        self,
        reversal: ValidatedTransaction,
        replacement: ValidatedTransaction,
    ) -> "Correction":
        """Move PENDING -> CONFIRMED once both halves validated"""
        self._require(CorrectionState.PENDING)
        return replace(
            self,
            reversal=reversal,
            replacement=replacement,
            state=CorrectionState.CONFIRMED,
        )

    def applied(self, reversal_id: int, replacement_id: int) -> "Correction":
        """Move CONFIRMED -> APPLIED with the identifiers storage assigned"""
        self._require(CorrectionState.CONFIRMED)
        return replace(
            self,
            reversal=self.reversal.with_id(reversal_id),
            replacement=self.replacement.with_id(replacement_id),
            state=CorrectionState.APPLIED,
        )

    def _require(self, expected: CorrectionState) -> None:
        if self.state != expected:
            raise ValueError(
                f"Correction of #{self.original_id} is {self.state.value}, "
                f"expected {expected.value}"
            )


@dataclass(frozen=True)
class CorrectionResult:
    """Either a confirmed correction or every validation problem from both halves"""
    correction: Optional[Correction] = None
    errors: Tuple[ValidationError, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "errors", tuple(self.errors))

    @property
    def success(self) -> bool:
        return self.correction is not None


class CorrectionEngine:
    """
    Amends posted transactions by reversal + replacement.

    The original is never edited or deleted: a reversal (every entry
    side-flipped, dated on the day of the correction) cancels it out and a
    replacement carries the corrected entries. Aggregates computed before
    the correction therefore stay reproducible.

    Usage:
        ```
        engine = CorrectionEngine(validator)
        result = engine.correct(original, new_entries, note="Wrong account")
        if result.success:
            repository.save_correction(result.correction.reversal,
                                       result.correction.replacement)
        ```
    """

    def __init__(
        self,
        validator: TransactionValidator,
        today: Callable[[], date] = date.today,
    ):
        """
        Args:
            validator: Validator applied to both reversal and replacement
            today: Clock used to date reversals; injectable for tests
        """
        self.validator = validator
        self._today = today

    def correct(
        self,
        original: ValidatedTransaction,
        proposed_entries: Iterable[JournalEntry],
        note: Optional[str] = None,
        memo: Optional[str] = None,
        date: Union[date, str, None] = None,
    ) -> CorrectionResult:
        """
        Build and validate the reversal/replacement pair for `original`.

        Args:
            original: Stored transaction to amend (must have an id)
            proposed_entries: Corrected entries for the replacement
            note: Reason for the correction; becomes the replacement memo.
                Like any memo it may be up to MAX_MEMO_LENGTH characters,
                the marker not included
            memo: Replacement memo when no note is given (defaults to the original memo)
            date: Replacement date (defaults to the original date)

        Returns:
            CorrectionResult with a CONFIRMED Correction, or all errors
            collected from both halves

        Raises:
            ValueError: If the original has not been persisted
        """
        if original.id is None:
            raise ValueError("Only stored transactions can be corrected")

        reversal = TransactionCandidate.of(
            date=self._today(),
            memo=reversal_memo(original.id),
            entries=(entry.flipped() for entry in original.entries),
            correction=True,
        )

        if note:
            text = note
        elif memo is not None:
            text = memo
        else:
            text = original.memo
        replacement = TransactionCandidate.of(
            date=date if date is not None else original.date,
            memo=replacement_memo(text),
            entries=proposed_entries,
            correction=True,
        )

        reversal_result = self.validator.validate(reversal)
        replacement_result = self.validator.validate(replacement)

        errors = [e.with_prefix("reversal") for e in reversal_result.errors]
        errors += [e.with_prefix("replacement") for e in replacement_result.errors]

        if errors:
            logger.info(
                "correction_rejected",
                original_id=original.id,
                codes=[e.code.value for e in errors],
            )
            return CorrectionResult(errors=errors)

        correction = Correction(original_id=original.id, note=note).confirmed(
            reversal=reversal_result.transaction,
            replacement=replacement_result.transaction,
        )
        logger.debug("correction_confirmed", original_id=original.id)
        return CorrectionResult(correction=correction)
