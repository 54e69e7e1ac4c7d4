from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, List, Optional, Set, Tuple

from simple_ledger.domain.enums import AccountType
from simple_ledger.domain.models import Account, ValidatedTransaction
from simple_ledger.services.models import TransactionPage


class AccountRepository(ABC):
    """
    Abstract source of chart-of-accounts records.

    The ledger core only reads accounts; save/save_many exist for the
    administrative seeding flow.
    """

    @abstractmethod
    def get_by_types(self, types: Set[AccountType]) -> List[Account]:
        """
        Retrieve accounts of the given types.

        Args:
            types: Account types to include

        Returns:
            Accounts ordered by code (active and inactive)
        """
        pass

    @abstractmethod
    def get_all(self) -> List[Account]:
        """Retrieve every account ordered by code."""
        pass

    @abstractmethod
    def save(self, account: Account) -> Account:
        """
        Insert or update an account, matched by code.

        Returns:
            Account with ID populated
        """
        pass

    @abstractmethod
    def save_many(self, accounts: Iterable[Account]) -> List[Account]:
        """
        Insert or update several accounts in a single operation.

        Returns:
            Saved accounts with IDs
        """
        pass


class TransactionRepository(ABC):
    """
    Abstract persistence collaborator for validated transactions.

    Only ValidatedTransaction instances are accepted, so storage never holds
    an unbalanced transaction. Every failure surfaces as PersistenceError.
    """

    @abstractmethod
    def save(self, transaction: ValidatedTransaction) -> ValidatedTransaction:
        """
        Store a transaction and all of its entries atomically.

        Args:
            transaction: Validated transaction to store

        Returns:
            Copy of the transaction with ID populated

        Raises:
            PersistenceError: If nothing could be stored
        """
        pass

    @abstractmethod
    def save_correction(
        self,
        reversal: ValidatedTransaction,
        replacement: ValidatedTransaction,
    ) -> Tuple[ValidatedTransaction, ValidatedTransaction]:
        """
        Store a reversal and its replacement as a single atomic unit.

        Either both are stored or neither is.

        Returns:
            (reversal, replacement) with IDs populated

        Raises:
            PersistenceError: If the pair could not be stored
        """
        pass

    @abstractmethod
    def get_by_id(self, transaction_id: int) -> Optional[ValidatedTransaction]:
        """
        Retrieve a transaction by ID.

        Returns:
            Transaction if found, None otherwise
        """
        pass

    @abstractmethod
    def get_all(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        keyword: Optional[str] = None,
    ) -> List[ValidatedTransaction]:
        """
        Retrieve transactions with optional filtering, newest first.

        Args:
            start_date: Filter transactions on or after this date
            end_date: Filter transactions on or before this date
            keyword: Case-insensitive substring of the transaction memo

        Returns:
            List of matching transactions
        """
        pass

    @abstractmethod
    def get_page(
        self,
        page: int = 1,
        page_size: int = 20,
        keyword: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> TransactionPage:
        """
        Retrieve one page of transactions, newest first.

        Args:
            page: 1-based page number
            page_size: Transactions per page

        Returns:
            TransactionPage with the total count of matching transactions
        """
        pass

    @abstractmethod
    def delete(self, transaction_id: int) -> bool:
        """
        Delete a transaction together with all of its entries.

        Returns:
            True if deleted, False if not found
        """
        pass
