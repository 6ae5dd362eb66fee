"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as an alternative transaction
store for users who don't run the hosted backend:
1. The transaction list is directly visible and editable in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No server-side filtering (we filter in Python)
- Soft delete is just a "TRUE" in the deleted column

The implementation follows the abstract interface, so the importer
does not know which backend it is writing to.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
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
from src.services.storage.mapping import TRANSACTION_COLUMNS, row_to_record


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.transactions_sheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.transactions_sheet_name,
                rows=1000,
                cols=len(TRANSACTION_COLUMNS),
            )
            sheet.append_row(TRANSACTION_COLUMNS)
        return sheet


def record_to_sheet_row(record: TransactionRecord) -> list[str]:
    """Flatten a record into cells, in TRANSACTION_COLUMNS order."""
    return [
        record.id or "",
        record.user_id,
        record.title,
        str(record.amount),
        record.type.value,
        record.category,
        record.date,
        record.icon,
        record.icon_color,
        record.icon_bg,
        "TRUE" if record.deleted else "FALSE",
        record.created_at.isoformat() if record.created_at else "",
    ]


def sheet_row_to_record(row: list[str]) -> TransactionRecord:
    """Rebuild a record from sheet cells; short rows are padded."""
    padded = list(row) + [""] * (len(TRANSACTION_COLUMNS) - len(row))
    return row_to_record(dict(zip(TRANSACTION_COLUMNS, padded)))


class GoogleSheetsTransactionStore(TransactionStore):
    """
    Google Sheets implementation of the transaction store.

    One transaction per row; the first row holds the column headers.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _load_records(self) -> list[TransactionRecord]:
        sheet = self._client.get_transactions_sheet()
        records = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                records.append(sheet_row_to_record(row))
            except (ValueError, KeyError, InvalidOperation):
                continue  # Skip malformed rows
        return records

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def create(self, record: TransactionRecord) -> TransactionRecord:
        """Append a transaction row."""
        stored = record.model_copy(update={
            "id": record.id or str(uuid4()),
            "created_at": record.created_at or datetime.utcnow(),
        })
        try:
            sheet = self._client.get_transactions_sheet()
            sheet.append_row(record_to_sheet_row(stored), value_input_option="RAW")
            return stored
        except Exception as e:
            raise PersistError(f"Failed to create transaction: {e}")

    async def find_matching(
        self,
        user_id: str,
        amount: Decimal,
        direction: TransactionDirection,
        title_contains: str,
    ) -> list[TransactionRecord]:
        """Filter rows in Python the way the hosted backend's query does."""
        try:
            records = self._load_records()
        except Exception as e:
            raise StorageError(f"Failed to query transactions: {e}")

        needle = title_contains.lower()
        return [
            r for r in records
            if r.user_id == user_id
            and not r.deleted
            and r.amount == amount
            and r.type == direction
            and needle in r.title.lower()
        ]

    async def list_transactions(self, user_id: str) -> list[TransactionRecord]:
        """List the user's transactions, newest first."""
        try:
            records = self._load_records()
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        mine = [r for r in records if r.user_id == user_id and not r.deleted]
        mine.sort(key=lambda r: r.created_at or datetime.min, reverse=True)
        return mine
