"""
Transaction Store Models

The transaction store is owned by the hosted backend. This module only
describes the flat record we read and write there, plus the display
conventions the app uses for imported rows.
"""

from datetime import datetime, tzinfo
from decimal import Decimal
from typing import NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from src.models.sms import TransactionDirection


# Category tag for every transaction created by the SMS importer
SMS_IMPORT_CATEGORY = "Via SMS"

# Stored date format: zero-padded day/month/year
RECORD_DATE_FORMAT = "%d/%m/%Y"


class DirectionStyle(NamedTuple):
    icon: str
    icon_color: str
    icon_bg: str


DIRECTION_STYLES = {
    TransactionDirection.INCOME: DirectionStyle("trending-up", "#10B981", "#D1FAE5"),
    TransactionDirection.EXPENSE: DirectionStyle("trending-down", "#EF4444", "#FEE2E2"),
}


class TransactionRecord(BaseModel):
    """
    One row of the user's transaction list.

    `date` is stored as a display string (DD/MM/YYYY for SMS imports,
    but manual entries may hold a locale long-form date), which is why
    duplicate detection compares formatted strings.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = None
    user_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=500)
    amount: Decimal = Field(..., gt=0)
    type: TransactionDirection
    category: str = Field(default=SMS_IMPORT_CATEGORY)
    date: str = Field(..., description="Display date, e.g. 05/06/2024")
    icon: str = ""
    icon_color: str = ""
    icon_bg: str = ""
    deleted: bool = False
    created_at: Optional[datetime] = None


def format_record_date(
    timestamp_ms: Union[int, str],
    tz: Optional[tzinfo] = None,
) -> str:
    """
    Format an epoch-millisecond timestamp as the stored DD/MM/YYYY string.

    With no `tz` the device's local timezone is used.
    """
    moment = datetime.fromtimestamp(int(timestamp_ms) / 1000, tz=tz)
    return moment.strftime(RECORD_DATE_FORMAT)
