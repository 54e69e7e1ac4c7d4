from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional, Union

import structlog

from simple_ledger.config.settings import ConfigLoader
from simple_ledger.corrections.engine import Correction, CorrectionEngine, reversal_memo
from simple_ledger.domain.enums import CategoryGranularity
from simple_ledger.domain.errors import (
    TransactionLockedError,
    TransactionNotFoundError,
    TransactionRejectedError,
)
from simple_ledger.domain.models import (
    Account,
    JournalEntry,
    TransactionCandidate,
    ValidatedTransaction,
)
from simple_ledger.ledger.aggregator import LedgerAggregator
from simple_ledger.parsers.base import accounts_from_records
from simple_ledger.parsers.factory import ParserFactory
from simple_ledger.registry.chart_of_accounts import ChartOfAccounts
from simple_ledger.repositories.base import AccountRepository, TransactionRepository
from simple_ledger.services.models import LedgerSummary, MonthlyBalance, TransactionPage
from simple_ledger.validation.validator import TransactionValidator

logger = structlog.get_logger(__name__)


class LedgerService:
    """
    Orchestrates the ledger core against its collaborators.

    The core components (registry, validator, aggregator, correction engine)
    are pure; this service is the only place that talks to repositories.
    A fresh chart-of-accounts snapshot is loaded per operation so account
    edits made elsewhere are picked up.
    """

    def __init__(
        self,
        account_repository: AccountRepository,
        transaction_repository: TransactionRepository,
        parser_factory: Optional[ParserFactory] = None,
        today=date.today,
    ):
        self.account_repository = account_repository
        self.transaction_repository = transaction_repository
        self._parser_factory = parser_factory
        self._today = today

    @property
    def parser_factory(self) -> ParserFactory:
        """Lazy-load the parser factory from config"""
        if self._parser_factory is None:
            self._parser_factory = ParserFactory.from_config()
        return self._parser_factory

    def chart_of_accounts(self) -> ChartOfAccounts:
        """Load a fresh registry snapshot"""
        return ChartOfAccounts.from_repository(self.account_repository)

    def create_transaction(self, candidate: TransactionCandidate) -> ValidatedTransaction:
        """
        Validate and store a new transaction.

        Args:
            candidate: Proposed transaction

        Returns:
            The stored transaction with its ID

        Raises:
            TransactionRejectedError: If validation failed (nothing is stored)
            PersistenceError: If storage failed
        """
        validator = TransactionValidator(self.chart_of_accounts())
        validated = validator.validate(candidate).raise_for_errors()

        saved = self.transaction_repository.save(validated)
        logger.info(
            "transaction_created",
            transaction_id=saved.id,
            date=str(saved.date),
            entries=len(saved.entries),
            total=saved.debit_total,
        )
        return saved

    def correct_transaction(
        self,
        transaction_id: int,
        proposed_entries: Iterable[JournalEntry],
        note: Optional[str] = None,
        memo: Optional[str] = None,
        date: Union[date, str, None] = None,
    ) -> Correction:
        """
        Amend a stored transaction with a reversal + replacement pair.

        The pair is stored atomically; the original stays untouched.

        Returns:
            The APPLIED correction carrying the stored reversal and replacement

        Raises:
            TransactionNotFoundError: If the original does not exist
            TransactionRejectedError: If either half fails validation
            PersistenceError: If the pair could not be stored
        """
        original = self.get_transaction(transaction_id)

        engine = CorrectionEngine(
            TransactionValidator(self.chart_of_accounts()),
            today=self._today,
        )
        result = engine.correct(original, proposed_entries, note=note, memo=memo, date=date)
        if not result.success:
            raise TransactionRejectedError(result.errors)

        correction = result.correction
        reversal, replacement = self.transaction_repository.save_correction(
            correction.reversal,
            correction.replacement,
        )
        applied = correction.applied(reversal.id, replacement.id)

        logger.info(
            "correction_applied",
            original_id=transaction_id,
            reversal_id=reversal.id,
            replacement_id=replacement.id,
        )
        return applied

    def get_transaction(self, transaction_id: int) -> ValidatedTransaction:
        """
        Raises:
            TransactionNotFoundError: If the transaction does not exist
        """
        transaction = self.transaction_repository.get_by_id(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(f"Transaction with ID {transaction_id} not found")
        return transaction

    def get_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        keyword: Optional[str] = None,
    ) -> List[ValidatedTransaction]:
        """Query stored transactions with optional filters, newest first"""
        return self.transaction_repository.get_all(
            start_date=start_date,
            end_date=end_date,
            keyword=keyword,
        )

    def get_page(
        self,
        page: int = 1,
        page_size: int = 20,
        keyword: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> TransactionPage:
        return self.transaction_repository.get_page(
            page=page,
            page_size=page_size,
            keyword=keyword,
            start_date=start_date,
            end_date=end_date,
        )

    def get_summary(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        granularity: CategoryGranularity = CategoryGranularity.ACCOUNT,
    ) -> LedgerSummary:
        """Income/expense/balance for the stored transactions in a date range"""
        transactions = self.get_transactions(start_date=start_date, end_date=end_date)
        return LedgerAggregator(self.chart_of_accounts()).aggregate(transactions, granularity)

    def get_monthly_balances(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[MonthlyBalance]:
        transactions = self.get_transactions(start_date=start_date, end_date=end_date)
        return LedgerAggregator(self.chart_of_accounts()).monthly_balances(transactions)

    def get_account_balance(
        self,
        code: str,
        end_date: Optional[date] = None,
    ) -> int:
        """
        Signed balance of the account with `code`, optionally as of a date.

        Raises:
            AccountNotFoundError: If the code is unknown or inactive
        """
        registry = self.chart_of_accounts()
        account = registry.by_code(code)
        transactions = self.get_transactions(end_date=end_date)
        return LedgerAggregator(registry).account_balance(account.id, transactions)

    def is_corrected(self, transaction_id: int) -> bool:
        """True once a reversal of `transaction_id` has been stored"""
        memo = reversal_memo(transaction_id)
        # keyword search is a substring match; #1 would also find #12
        matches = self.transaction_repository.get_all(keyword=memo)
        return any(txn.memo == memo for txn in matches)

    def delete_transaction(self, transaction_id: int) -> None:
        """
        Remove a transaction and all of its entries.

        Correction pairs are append-only: a reversal or replacement cannot be
        deleted, and neither can an original that has been corrected.

        Raises:
            TransactionNotFoundError: If the transaction does not exist
            TransactionLockedError: If the transaction is part of a correction
        """
        transaction = self.get_transaction(transaction_id)
        if transaction.is_correction:
            raise TransactionLockedError(transaction_id, "is part of a correction")
        if self.is_corrected(transaction_id):
            raise TransactionLockedError(transaction_id, "has been corrected")

        if not self.transaction_repository.delete(transaction_id):
            raise TransactionNotFoundError(f"Transaction with ID {transaction_id} not found")
        logger.info("transaction_deleted", transaction_id=transaction_id)

    def import_chart_of_accounts(
        self,
        filepath: Path,
        file_format: Optional[str] = None,
    ) -> List[Account]:
        """
        Load accounts from a CSV/Excel file and upsert them by code.

        Returns:
            Saved accounts with IDs
        """
        parser = self.parser_factory.parser_for(filepath, file_format)
        accounts = parser.parse(filepath)
        saved = self.account_repository.save_many(accounts)
        logger.info("chart_of_accounts_imported", path=str(filepath), accounts=len(saved))
        return saved

    def seed_chart_of_accounts(self) -> List[Account]:
        """Upsert the bundled default chart of accounts"""
        config = ConfigLoader.load_chart_of_accounts_config()
        saved = self.account_repository.save_many(accounts_from_records(config["accounts"]))
        logger.info("chart_of_accounts_seeded", accounts=len(saved))
        return saved
