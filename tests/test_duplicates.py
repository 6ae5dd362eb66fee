"""Tests for duplicate detection."""

from datetime import timezone
from decimal import Decimal

import pytest

from src.models.sms import TransactionDirection
from src.models.transaction import TransactionRecord
from src.services.storage.interface import StorageError
from src.validation.duplicates import DuplicateDetector
from tests.conftest import USER_ID, InMemoryTransactionStore, epoch_ms


def stored(amount="500", type=TransactionDirection.EXPENSE, title="HDFC Bank",
           date="05/06/2024", deleted=False, user_id=USER_ID):
    return TransactionRecord(
        id="t1",
        user_id=user_id,
        title=title,
        amount=Decimal(amount),
        type=type,
        date=date,
        deleted=deleted,
    )


def detector_for(*records, **store_kwargs):
    store = InMemoryTransactionStore(records=list(records), **store_kwargs)
    return DuplicateDetector(store, USER_ID, tz=timezone.utc)


class TestDuplicateMatching:
    """A duplicate needs amount, direction, provider and date to match."""

    async def test_matching_record_is_duplicate(self):
        detector = detector_for(stored())
        assert await detector.is_duplicate(
            amount=Decimal("500"),
            direction=TransactionDirection.EXPENSE,
            provider="HDFC",
            message_timestamp=epoch_ms(2024, 6, 5),
        )

    async def test_different_amount_is_not(self):
        detector = detector_for(stored())
        assert not await detector.is_duplicate(
            Decimal("501"), TransactionDirection.EXPENSE, "HDFC", epoch_ms(2024, 6, 5)
        )

    async def test_different_direction_is_not(self):
        detector = detector_for(stored())
        assert not await detector.is_duplicate(
            Decimal("500"), TransactionDirection.INCOME, "HDFC", epoch_ms(2024, 6, 5)
        )

    async def test_different_day_is_not(self):
        detector = detector_for(stored())
        assert not await detector.is_duplicate(
            Decimal("500"), TransactionDirection.EXPENSE, "HDFC", epoch_ms(2024, 6, 6)
        )

    async def test_title_match_is_case_insensitive(self):
        detector = detector_for(stored(title="Paid via hdfc bank netbanking"))
        assert await detector.is_duplicate(
            Decimal("500"), TransactionDirection.EXPENSE, "HDFC Bank", epoch_ms(2024, 6, 5)
        )

    async def test_deleted_records_are_ignored(self):
        detector = detector_for(stored(deleted=True))
        assert not await detector.is_duplicate(
            Decimal("500"), TransactionDirection.EXPENSE, "HDFC", epoch_ms(2024, 6, 5)
        )

    async def test_other_users_are_ignored(self):
        detector = detector_for(stored(user_id="someone-else"))
        assert not await detector.is_duplicate(
            Decimal("500"), TransactionDirection.EXPENSE, "HDFC", epoch_ms(2024, 6, 5)
        )

    async def test_long_form_dates_do_not_match(self):
        """Test manual entries with locale dates are not treated as duplicates."""
        detector = detector_for(stored(date="June 5, 2024"))
        assert not await detector.is_duplicate(
            Decimal("500"), TransactionDirection.EXPENSE, "HDFC", epoch_ms(2024, 6, 5)
        )

    async def test_blank_provider_never_matches(self):
        """Test an empty provider does not match every stored title."""
        detector = detector_for(stored())
        assert not await detector.is_duplicate(
            Decimal("500"), TransactionDirection.EXPENSE, "  ", epoch_ms(2024, 6, 5)
        )


class TestFailOpen:
    """A failed lookup never blocks an import."""

    async def test_storage_error_means_not_duplicate(self):
        detector = detector_for(stored(), find_error=StorageError("timeout"))
        assert not await detector.is_duplicate(
            Decimal("500"), TransactionDirection.EXPENSE, "HDFC", epoch_ms(2024, 6, 5)
        )

    async def test_unexpected_error_means_not_duplicate(self):
        detector = detector_for(stored(), find_error=RuntimeError("bug"))
        assert not await detector.is_duplicate(
            Decimal("500"), TransactionDirection.EXPENSE, "HDFC", epoch_ms(2024, 6, 5)
        )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
