"""
SMS Scan Models for ArthMitra

These models define the data flowing through one SMS scan:
1. RawMessage - what the device inbox gave us (never mutated)
2. ExtractedTransaction - what the LLM read out of one message
3. ScanState - what we remember between scans
4. ScanResult - what one scan reports back to the UI

DESIGN DECISION: ExtractedTransaction is PROPOSED data only.
It is never persisted as-is; the importer maps it into a
TransactionRecord once it has passed duplicate detection.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TransactionDirection(str, Enum):
    """Money moving in or out of the user's account."""
    INCOME = "income"
    EXPENSE = "expense"


class RawMessage(BaseModel):
    """
    One inbound text message as read from the device inbox.

    Field names follow the Android SMS content provider. The `date`
    column is epoch milliseconds and may arrive as a string or a number
    depending on the source.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(
        ...,
        alias="_id",
        description="Message identifier"
    )
    thread_id: str = Field(
        default="",
        description="Conversation identifier"
    )
    address: str = Field(
        default="",
        description="Sender: bank name, short code, or phone number"
    )
    body: str = Field(
        default="",
        description="Message text"
    )
    date: Union[int, str] = Field(
        ...,
        description="Received time, epoch milliseconds"
    )
    date_sent: Union[int, str, None] = None
    read: int = 0
    status: int = -1
    type: int = 1
    service_center: Optional[str] = None

    @field_validator("id", "thread_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        return "" if v is None else str(v)

    @field_validator("date")
    @classmethod
    def validate_timestamp(cls, v):
        try:
            int(v)
        except (TypeError, ValueError):
            raise ValueError(f"Message timestamp must be epoch milliseconds, got {v!r}")
        return v

    @property
    def timestamp_ms(self) -> int:
        """Received time as an integer, whatever type `date` came in as."""
        return int(self.date)


class ExtractedTransaction(BaseModel):
    """
    Transaction details the LLM read out of one SMS.

    `provider` is the sender label as the model understood it
    (e.g. "HDFC Bank"), which is not necessarily the raw address
    (e.g. "VM-HDFCBK").
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    amount: Decimal = Field(
        ...,
        gt=0,
        description="Transaction amount, without currency"
    )
    direction: TransactionDirection
    description: str = Field(
        default="",
        max_length=500,
        description="Short human-readable description"
    )
    provider: str = Field(
        default="",
        max_length=200,
        description="Sender label reported by the model"
    )


class ScanState(BaseModel):
    """
    Scan bookkeeping persisted across app restarts.

    `last_scan_timestamp` only moves forward, and only after a scan
    has finished its whole batch.
    """

    last_scan_timestamp: Optional[str] = None
    whitelisted_providers: list[str] = Field(default_factory=list)


class ScanResult(BaseModel):
    """
    Outcome of one importer run.

    Counts are exclusive: every scanned message lands in exactly one
    bucket. `errors` holds one entry per failed message, in order.
    """

    success: int = 0
    failed: int = 0
    skipped: int = 0
    duplicates: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.success + self.failed + self.skipped + self.duplicates

    def record_failure(self, message: str) -> None:
        self.failed += 1
        self.errors.append(message)
