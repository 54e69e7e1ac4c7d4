"""
Correction system for posted transactions.

Posted transactions are never edited in place. A correction writes a
reversal of the original plus a replacement, and both are stored together.

Quick Start:
    >>> from simple_ledger.corrections import CorrectionEngine
    >>>
    >>> engine = CorrectionEngine(validator)
    >>> result = engine.correct(original, new_entries, note="Wrong account")
    >>> print(result.correction.state)
"""
from simple_ledger.corrections.engine import (
    Correction,
    CorrectionEngine,
    CorrectionResult,
    is_correction,
)

__all__ = [
    "Correction",
    "CorrectionEngine",
    "CorrectionResult",
    "is_correction",
]
