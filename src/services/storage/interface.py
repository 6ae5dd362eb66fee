"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the transaction store.
This allows us to:
1. Talk to the hosted backend (Supabase) in production
2. Swap in Google Sheets for a spreadsheet-only setup
3. Use in-memory storage for testing
4. Keep the importer decoupled from any backend's column names

The interface is intentionally small - the SMS importer only needs to
create records and look up likely duplicates. General CRUD stays with
the app's own transaction screens.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from src.models.sms import TransactionDirection
from src.models.transaction import TransactionRecord


class TransactionStore(ABC):
    """
    Abstract interface for the user's transaction list.

    Any backend (Supabase, Google Sheets, in-memory) must implement
    these methods. All reads exclude soft-deleted records.
    """

    @abstractmethod
    async def create(self, record: TransactionRecord) -> TransactionRecord:
        """
        Persist a new transaction.

        Args:
            record: The transaction to save (id is assigned by the store)

        Returns:
            The stored record, including its id

        Raises:
            PersistError: If the write fails
        """
        pass

    @abstractmethod
    async def find_matching(
        self,
        user_id: str,
        amount: Decimal,
        direction: TransactionDirection,
        title_contains: str,
    ) -> list[TransactionRecord]:
        """
        Find non-deleted transactions that could describe the same event.

        Args:
            user_id: Owner of the transactions
            amount: Exact amount to match
            direction: Exact direction to match
            title_contains: Case-insensitive substring of the title

        Returns:
            Matching records, in no particular order

        Raises:
            StorageError: If the query fails
        """
        pass

    @abstractmethod
    async def list_transactions(self, user_id: str) -> list[TransactionRecord]:
        """
        List the user's non-deleted transactions, newest first.

        Raises:
            StorageError: If the query fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistError(StorageError):
    """A transaction could not be written to the store."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
