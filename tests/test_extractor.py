"""Tests for the SMS transaction extractor."""

import json
from decimal import Decimal

import pytest

from src.agents.gemini_client import GeminiRequestError
from src.agents.sms_extractor import (
    ExtractionError,
    SmsTransactionExtractor,
    strip_code_fences,
)
from src.models.sms import TransactionDirection
from tests.conftest import FakeTextClient, make_message


def extractor_returning(text, credentials):
    return SmsTransactionExtractor(FakeTextClient(lambda prompt: text), credentials)


TRANSACTION_JSON = json.dumps({
    "isTransaction": True,
    "amount": 500,
    "type": "debit",
    "description": "Paid to Swiggy",
    "provider": "HDFC Bank",
})


class TestExtraction:
    """Happy paths."""

    async def test_debit_becomes_expense(self, credentials):
        extracted = await extractor_returning(TRANSACTION_JSON, credentials).extract(
            make_message(1, "Rs.500 debited for Swiggy")
        )
        assert extracted.amount == Decimal("500")
        assert extracted.direction == TransactionDirection.EXPENSE
        assert extracted.description == "Paid to Swiggy"
        assert extracted.provider == "HDFC Bank"

    async def test_credit_becomes_income(self, credentials):
        text = json.dumps({
            "isTransaction": True,
            "amount": "1,250.50",
            "type": "credit",
            "description": "Salary",
            "provider": "ACME",
        })
        extracted = await extractor_returning(text, credentials).extract(make_message(1, "x"))
        assert extracted.direction == TransactionDirection.INCOME
        assert extracted.amount == Decimal("1250.50")

    @pytest.mark.parametrize("wrapped", [
        f"```json\n{TRANSACTION_JSON}\n```",
        f"```\n{TRANSACTION_JSON}\n```",
        f"  {TRANSACTION_JSON}  ",
    ])
    async def test_code_fences_are_stripped(self, credentials, wrapped):
        extracted = await extractor_returning(wrapped, credentials).extract(make_message(1, "x"))
        assert extracted is not None

    async def test_provider_falls_back_to_sender(self, credentials):
        text = json.dumps({"isTransaction": True, "amount": 10, "type": "debit"})
        extracted = await extractor_returning(text, credentials).extract(
            make_message(1, "x", address="AD-ICICIB")
        )
        assert extracted.provider == "AD-ICICIB"

    async def test_prompt_carries_sender_and_body(self, credentials):
        client = FakeTextClient(lambda prompt: TRANSACTION_JSON)
        await SmsTransactionExtractor(client, credentials).extract(
            make_message(1, "Rs.500 debited for Swiggy", address="VM-HDFCBK")
        )
        assert "From: VM-HDFCBK" in client.prompts[0]
        assert "Content: Rs.500 debited for Swiggy" in client.prompts[0]
        assert client.credentials_seen == [credentials]


class TestNotATransaction:
    """Messages the model rejects are skipped, not failed."""

    async def test_is_transaction_false(self, credentials):
        extractor = extractor_returning('{"isTransaction": false}', credentials)
        assert await extractor.extract(make_message(1, "Your OTP is 4821")) is None

    async def test_unknown_type_is_skipped(self, credentials):
        text = json.dumps({"isTransaction": True, "amount": 10, "type": "refund"})
        assert await extractor_returning(text, credentials).extract(make_message(1, "x")) is None


class TestExtractionErrors:
    """Unusable answers fail the message."""

    async def test_malformed_json(self, credentials):
        with pytest.raises(ExtractionError):
            await extractor_returning("Sure! Here it is: {", credentials).extract(make_message(1, "x"))

    async def test_empty_response(self, credentials):
        with pytest.raises(ExtractionError):
            await extractor_returning("", credentials).extract(make_message(1, "x"))

    async def test_non_object_json(self, credentials):
        with pytest.raises(ExtractionError):
            await extractor_returning("[1, 2]", credentials).extract(make_message(1, "x"))

    @pytest.mark.parametrize("amount", [0, -5, "abc", None, True])
    async def test_invalid_amount(self, credentials, amount):
        text = json.dumps({"isTransaction": True, "amount": amount, "type": "debit"})
        with pytest.raises(ExtractionError):
            await extractor_returning(text, credentials).extract(make_message(1, "x"))

    async def test_backend_failure(self, credentials):
        def fail(prompt):
            raise GeminiRequestError("HTTP 429", status_code=429)

        extractor = SmsTransactionExtractor(FakeTextClient(fail), credentials)
        with pytest.raises(ExtractionError):
            await extractor.extract(make_message(1, "x"))


class TestStripCodeFences:

    def test_plain_text_untouched(self):
        assert strip_code_fences('{"a": 1}') == '{"a": 1}'

    def test_language_tag(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
