"""
Shared fakes for ArthMitra tests.

No test talks to a real device inbox, Gemini, Supabase or Google Sheets.
"""

import json
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional, Union

import pytest

from src.models.credentials import GeminiCredentials
from src.models.sms import RawMessage, TransactionDirection
from src.models.transaction import TransactionRecord
from src.services.sms.source import MessageSource
from src.services.state.kv import JsonFileKeyValueStore, KeyValueStore
from src.services.storage.interface import PersistError, StorageError, TransactionStore


USER_ID = "user-123"


def epoch_ms(year: int, month: int, day: int, hour: int = 10, minute: int = 0) -> int:
    """UTC wall-clock time as epoch milliseconds."""
    moment = datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def make_message(
    message_id: Union[int, str],
    body: str,
    address: str = "VM-HDFCBK",
    date: Union[int, str, None] = None,
) -> RawMessage:
    return RawMessage(
        _id=str(message_id),
        thread_id="1",
        address=address,
        body=body,
        date=date if date is not None else epoch_ms(2024, 6, 5),
    )


class FakeMessageSource(MessageSource):
    """In-memory inbox."""

    def __init__(
        self,
        messages: Optional[list[RawMessage]] = None,
        error: Optional[Exception] = None,
        permission: bool = True,
    ):
        self.messages = list(messages or [])
        self.error = error
        self.permission = permission
        self.permission_requests = 0

    async def list_all(self) -> list[RawMessage]:
        if self.error:
            raise self.error
        return list(self.messages)

    async def list_matching_pattern(self, pattern: str) -> list[RawMessage]:
        regex = re.compile(pattern, re.IGNORECASE | re.DOTALL)
        return [m for m in await self.list_all() if regex.search(m.body)]

    async def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.permission


class FakeTextClient:
    """
    Stands in for GeminiTextClient.

    `responder` receives the prompt and returns the model text, or
    raises to simulate a failed call.
    """

    def __init__(self, responder: Callable[[str], str]):
        self._responder = responder
        self.prompts: list[str] = []
        self.credentials_seen: list[GeminiCredentials] = []

    async def generate(self, prompt: str, credentials: GeminiCredentials) -> str:
        self.prompts.append(prompt)
        self.credentials_seen.append(credentials)
        return self._responder(prompt)


def keyword_responder(prompt: str) -> str:
    """
    Answers like a well-behaved model for simple bank messages:
    "Rs.<n> credited ... by <who>" / "Rs.<n> debited for <who>".
    """
    content = prompt.split("Content:", 1)[1].split("\n", 1)[0]
    amount_match = re.search(r"Rs\.?\s*([\d,]+(?:\.\d+)?)", content)

    if "credited" in content and amount_match:
        payee = content.rsplit("by", 1)[-1].strip()
        return json.dumps({
            "isTransaction": True,
            "amount": float(amount_match.group(1).replace(",", "")),
            "type": "credit",
            "description": f"Received from {payee}",
            "provider": "HDFC Bank",
        })
    if "debited" in content and amount_match:
        payee = content.rsplit("for", 1)[-1].strip()
        return "```json\n" + json.dumps({
            "isTransaction": True,
            "amount": float(amount_match.group(1).replace(",", "")),
            "type": "debit",
            "description": f"Paid to {payee}",
            "provider": "HDFC Bank",
        }) + "\n```"
    return json.dumps({"isTransaction": False})


class InMemoryTransactionStore(TransactionStore):
    """
    Transaction store that keeps rows in a list.

    `fail_on_create` holds 1-based create call numbers that raise
    PersistError; `find_error` makes every lookup raise.
    """

    def __init__(
        self,
        records: Optional[list[TransactionRecord]] = None,
        fail_on_create: Optional[set[int]] = None,
        find_error: Optional[Exception] = None,
        list_error: Optional[Exception] = None,
    ):
        self.records = list(records or [])
        self.fail_on_create = fail_on_create or set()
        self.find_error = find_error
        self.list_error = list_error
        self.create_calls = 0

    async def create(self, record: TransactionRecord) -> TransactionRecord:
        self.create_calls += 1
        if self.create_calls in self.fail_on_create:
            raise PersistError("insert rejected")
        stored = record.model_copy(update={"id": f"txn-{len(self.records) + 1}"})
        self.records.append(stored)
        return stored

    async def find_matching(
        self,
        user_id: str,
        amount: Decimal,
        direction: TransactionDirection,
        title_contains: str,
    ) -> list[TransactionRecord]:
        if self.find_error:
            raise self.find_error
        needle = title_contains.lower()
        return [
            r for r in self.records
            if r.user_id == user_id
            and not r.deleted
            and r.amount == amount
            and r.type == direction
            and needle in r.title.lower()
        ]

    async def list_transactions(self, user_id: str) -> list[TransactionRecord]:
        if self.list_error:
            raise self.list_error
        return [r for r in self.records if r.user_id == user_id and not r.deleted]


class FailingKeyValueStore(KeyValueStore):
    """Every read and write fails."""

    async def get_item(self, key: str) -> Optional[str]:
        raise StorageError("disk unavailable")

    async def set_item(self, key: str, value: str) -> None:
        raise StorageError("disk unavailable")

    async def remove_item(self, key: str) -> None:
        raise StorageError("disk unavailable")


@pytest.fixture
def kv(tmp_path) -> JsonFileKeyValueStore:
    return JsonFileKeyValueStore(tmp_path / "state.json")


@pytest.fixture
def store() -> InMemoryTransactionStore:
    return InMemoryTransactionStore()


@pytest.fixture
def credentials() -> GeminiCredentials:
    return GeminiCredentials(primary="primary-key", backup="backup-key")
