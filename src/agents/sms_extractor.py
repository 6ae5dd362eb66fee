"""
SMS Transaction Extractor

Asks Gemini whether one SMS describes money moving, and if so reads out
amount, direction, description and provider.

CRITICAL BOUNDARIES:
- CAN: Classify a message and extract the fields present in its text
- CANNOT: Persist anything (the importer does that after dedup)
- CANNOT: Guess a direction it was not told; unknown types are skipped
- MUST: Distinguish "not a transaction" (None) from "could not tell"
  (ExtractionError) so the scan can count skipped vs failed

The LLM is a READER here. Everything after its JSON answer is
deterministic.
"""

import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import structlog

from src.agents.gemini_client import GeminiRequestError, GeminiTextClient
from src.models.credentials import GeminiCredentials
from src.models.sms import ExtractedTransaction, RawMessage, TransactionDirection


TYPE_TO_DIRECTION = {
    "credit": TransactionDirection.INCOME,
    "debit": TransactionDirection.EXPENSE,
}

_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")

logger = structlog.get_logger(__name__)


class ExtractionError(Exception):
    """The model's answer for one message could not be used."""
    pass


def build_extraction_prompt(message: RawMessage) -> str:
    return f"""Analyze this SMS message and extract transaction information. Return ONLY a JSON object with the following structure:
{{
  "isTransaction": boolean,
  "amount": number (without currency symbols),
  "type": "credit" or "debit",
  "description": "brief description of the transaction",
  "provider": "sender name from the message"
}}

If this is not a transaction message, return {{"isTransaction": false}}.

SMS Message:
From: {message.address}
Content: {message.body}

Rules:
- Look for keywords like: credited, debited, received, paid, transferred, withdrawn, deposited
- Extract the amount (numbers only, no currency symbols)
- Credit/received/deposited = "credit"
- Debit/paid/withdrawn/transferred = "debit"
- Be very strict - only return transaction data for clear financial transactions
- Provider should be the sender name (like bank name, payment service, etc.)"""


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ``` or ```json fence, if any."""
    return _CODE_FENCE.sub("", text.strip()).strip()


def parse_amount(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ExtractionError(f"Invalid amount: {value!r}")
    try:
        amount = Decimal(str(value).replace(",", "").strip())
    except InvalidOperation:
        raise ExtractionError(f"Invalid amount: {value!r}")
    if not amount.is_finite() or amount <= 0:
        raise ExtractionError(f"Invalid amount: {value!r}")
    return amount


class SmsTransactionExtractor:
    """
    Turns one RawMessage into an ExtractedTransaction, or None.

    Returns:
        ExtractedTransaction for a clear credit/debit message
        None when the model says it is not a transaction, or reports an
        unrecognised type

    Raises:
        ExtractionError: The call failed on every available key, the
            model returned nothing, or its answer was not usable JSON
    """

    def __init__(
        self,
        client: GeminiTextClient,
        credentials: GeminiCredentials,
    ):
        self._client = client
        self._credentials = credentials

    async def extract(self, message: RawMessage) -> Optional[ExtractedTransaction]:
        prompt = build_extraction_prompt(message)

        try:
            text = await self._client.generate(prompt, self._credentials)
        except GeminiRequestError as e:
            raise ExtractionError(str(e)) from e

        if not text.strip():
            raise ExtractionError(f"No valid response from Gemini for SMS {message.id}")

        try:
            data = json.loads(strip_code_fences(text))
        except json.JSONDecodeError as e:
            logger.warning("sms_extraction_unparseable", message_id=message.id, error=str(e))
            raise ExtractionError(f"Could not parse model response: {e}") from e

        if not isinstance(data, dict):
            raise ExtractionError("Model response is not a JSON object")

        if not data.get("isTransaction"):
            return None

        direction = TYPE_TO_DIRECTION.get(str(data.get("type", "")).strip().lower())
        if direction is None:
            logger.info(
                "sms_extraction_unknown_type",
                message_id=message.id,
                type=data.get("type"),
            )
            return None

        return ExtractedTransaction(
            amount=parse_amount(data.get("amount")),
            direction=direction,
            description=str(data.get("description") or "")[:500],
            # The sender address stands in when the model names no provider
            provider=str(data.get("provider") or message.address)[:200],
        )
