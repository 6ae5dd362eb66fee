"""
Row mapping at the transaction store boundary.

The backend stores snake_case columns (icon_color, icon_bg, user_id) and
JSON numbers for amounts. All renaming and type conversion happens here
so the importer only ever sees TransactionRecord.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from src.models.sms import TransactionDirection
from src.models.transaction import TransactionRecord


TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "title",
    "amount",
    "type",
    "category",
    "date",
    "icon",
    "icon_color",
    "icon_bg",
    "deleted",
    "created_at",
]


def record_to_row(record: TransactionRecord) -> dict[str, Any]:
    """
    Convert a record into an insertable backend row.

    `id` and `created_at` are left out when unset so the backend can
    assign them.
    """
    row = {
        "user_id": record.user_id,
        "title": record.title,
        "amount": float(record.amount),
        "type": record.type.value,
        "category": record.category,
        "date": record.date,
        "icon": record.icon,
        "icon_color": record.icon_color,
        "icon_bg": record.icon_bg,
        "deleted": record.deleted,
    }
    if record.id is not None:
        row["id"] = record.id
    if record.created_at is not None:
        row["created_at"] = record.created_at.isoformat()
    return row


def row_to_record(row: dict[str, Any]) -> TransactionRecord:
    """Convert a backend row into a TransactionRecord."""
    return TransactionRecord(
        id=str(row["id"]) if row.get("id") is not None else None,
        user_id=str(row["user_id"]),
        title=row["title"],
        amount=Decimal(str(row["amount"])),
        type=TransactionDirection(row["type"]),
        category=row.get("category") or "",
        date=row["date"],
        icon=row.get("icon") or "",
        icon_color=row.get("icon_color") or "",
        icon_bg=row.get("icon_bg") or "",
        deleted=_parse_bool(row.get("deleted", False)),
        created_at=_parse_datetime(row.get("created_at")),
    )


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    # Postgres returns "2024-06-05T10:00:00.123+00:00"; older Pythons
    # reject a trailing "Z"
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
