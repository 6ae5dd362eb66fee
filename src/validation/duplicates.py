"""
Duplicate Detection

DESIGN DECISION: A transaction is a duplicate when a non-deleted record
already exists with:
1. The same user
2. The same amount and direction
3. A title containing the provider (case-insensitive)
4. The same DD/MM/YYYY date string

An empty provider never matches anything.

Dates are compared as formatted strings because that is how the store
keeps them. Two different events on the same day with the same amount
and provider will collapse into one; the scan-state timestamp is the
primary guard against re-import, this check is the safety net.

IMPORTANT: A failed lookup never blocks an import. Storage errors are
logged and the message is treated as new.
"""

from datetime import tzinfo
from decimal import Decimal
from typing import Optional, Union

import structlog

from src.models.sms import TransactionDirection
from src.models.transaction import format_record_date
from src.services.storage.interface import TransactionStore


logger = structlog.get_logger(__name__)


class DuplicateCheckError(Exception):
    """The duplicate lookup could not be completed."""
    pass


class DuplicateDetector:
    """Checks the transaction store for an already-imported event."""

    def __init__(
        self,
        store: TransactionStore,
        user_id: str,
        tz: Optional[tzinfo] = None,
    ):
        """
        Args:
            store: Where previously imported transactions live
            user_id: Owner whose transactions are searched
            tz: Zone used to turn message timestamps into dates.
                None means the device's local zone.
        """
        self._store = store
        self._user_id = user_id
        self._tz = tz

    async def is_duplicate(
        self,
        amount: Decimal,
        direction: TransactionDirection,
        provider: str,
        message_timestamp: Union[int, str],
    ) -> bool:
        if not provider.strip():
            # Every title contains the empty string
            logger.warning("duplicate_check_skipped_no_provider", amount=str(amount))
            return False

        date_string = format_record_date(message_timestamp, self._tz)

        try:
            candidates = await self._store.find_matching(
                user_id=self._user_id,
                amount=amount,
                direction=direction,
                title_contains=provider,
            )
        except Exception as e:
            error = DuplicateCheckError(f"Duplicate lookup failed: {e}")
            logger.warning(
                "duplicate_check_failed",
                provider=provider,
                amount=str(amount),
                error=str(error),
            )
            return False

        return any(record.date == date_string for record in candidates)
