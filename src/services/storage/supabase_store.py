"""
Supabase Transaction Store

The app's transactions live in a hosted Postgres table behind Supabase.
Rows are scoped by user_id and soft-deleted with a `deleted` flag so the
UI can offer undo; every query here therefore filters deleted rows out.

TRADEOFFS:
- The supabase client is synchronous; calls run inline inside the async
  methods (a scan is sequential anyway)
- Amount matching is exact at the database level, title matching uses
  ILIKE so the provider can appear anywhere in the title; `%` and `_`
  in the provider are escaped
"""

from decimal import Decimal
from typing import Optional

from supabase import Client, create_client
from tenacity import retry, stop_after_attempt, wait_exponential

from src.config import get_settings
from src.models.sms import TransactionDirection
from src.models.transaction import TransactionRecord
from src.services.storage.interface import (
    ConnectionError,
    PersistError,
    StorageError,
    TransactionStore,
)
from src.services.storage.mapping import record_to_row, row_to_record


def escape_like_pattern(value: str) -> str:
    """Escape LIKE wildcards so `value` only matches itself."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SupabaseTransactionStore(TransactionStore):
    """Transaction store backed by the Supabase `transactions` table."""

    def __init__(self, client: Optional[Client] = None):
        self._settings = get_settings().supabase
        self._client = client

    def _get_client(self) -> Client:
        """Get or create the Supabase client."""
        if self._client is None:
            try:
                self._client = create_client(self._settings.url, self._settings.key)
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Supabase: {e}")
        return self._client

    def _table(self):
        return self._get_client().table(self._settings.transactions_table)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def create(self, record: TransactionRecord) -> TransactionRecord:
        """Insert one transaction and return the stored row."""
        try:
            response = self._table().insert(record_to_row(record)).execute()
        except Exception as e:
            raise PersistError(f"Failed to create transaction: {e}")

        if not response.data:
            raise PersistError("Failed to create transaction: backend returned no row")
        return row_to_record(response.data[0])

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def find_matching(
        self,
        user_id: str,
        amount: Decimal,
        direction: TransactionDirection,
        title_contains: str,
    ) -> list[TransactionRecord]:
        """Query likely duplicates of a candidate transaction."""
        try:
            response = (
                self._table()
                .select("*")
                .eq("user_id", user_id)
                .eq("amount", str(amount))
                .eq("type", direction.value)
                .eq("deleted", "false")
                .ilike("title", f"%{escape_like_pattern(title_contains)}%")
                .execute()
            )
            return [row_to_record(row) for row in response.data or []]
        except Exception as e:
            raise StorageError(f"Failed to query transactions: {e}")

    async def list_transactions(self, user_id: str) -> list[TransactionRecord]:
        """List the user's transactions, newest first."""
        try:
            response = (
                self._table()
                .select("*")
                .eq("deleted", "false")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .execute()
            )
            return [row_to_record(row) for row in response.data or []]
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")
