"""Tests for the financial insights agent."""

from decimal import Decimal

import pytest

from src.agents.gemini_client import GeminiRequestError
from src.agents.insights import (
    CONNECTION_FAILED_REPLY,
    DATA_UNAVAILABLE_REPLY,
    EMPTY_RESPONSE_REPLY,
    NO_DATA_MESSAGE,
    NOT_CONFIGURED_REPLY,
    REQUEST_FAILED_REPLY,
    FinancialInsightsAgent,
    summarize_transactions,
)
from src.models.credentials import GeminiCredentials
from src.models.sms import TransactionDirection
from src.models.transaction import TransactionRecord
from src.services.storage.interface import StorageError
from tests.conftest import USER_ID, FakeTextClient, InMemoryTransactionStore


def txn(amount, type, category="Food", deleted=False):
    return TransactionRecord(
        user_id=USER_ID,
        title="t",
        amount=Decimal(amount),
        type=type,
        category=category,
        date="05/06/2024",
        deleted=deleted,
    )


INCOME = TransactionDirection.INCOME
EXPENSE = TransactionDirection.EXPENSE


class TestSummarizeTransactions:
    """Deterministic totals."""

    def test_totals_and_balance(self):
        summary = summarize_transactions([
            txn("1000", INCOME),
            txn("300", EXPENSE),
            txn("200", EXPENSE),
        ])
        assert summary.total_income == Decimal("1000")
        assert summary.total_expenses == Decimal("500")
        assert summary.balance == Decimal("500")

    def test_top_three_expense_categories(self):
        summary = summarize_transactions([
            txn("50", EXPENSE, "Fuel"),
            txn("400", EXPENSE, "Rent"),
            txn("100", EXPENSE, "Food"),
            txn("150", EXPENSE, "Food"),
            txn("10", EXPENSE, "Misc"),
            txn("999", INCOME, "Salary"),
        ])
        assert [(c.category, c.amount) for c in summary.top_expense_categories] == [
            ("Rent", Decimal("400")),
            ("Food", Decimal("250")),
            ("Fuel", Decimal("50")),
        ]

    def test_deleted_rows_ignored(self):
        summary = summarize_transactions([txn("100", EXPENSE, deleted=True)])
        assert summary.total_expenses == Decimal("0")
        assert not summary.has_data

    def test_empty(self):
        summary = summarize_transactions([])
        assert summary.balance == Decimal("0")
        assert summary.top_expense_categories == []


class TestAsk:
    """Answers and friendly fallbacks."""

    async def test_prompt_built_from_summary(self, credentials):
        client = FakeTextClient(lambda prompt: "  You spent ₹300 💸  ")
        agent = FinancialInsightsAgent(client, credentials)

        answer = await agent.ask(
            "Where does my money go?",
            [txn("1000", INCOME), txn("300", EXPENSE, "Rent")],
            currency_symbol="$",
        )

        assert answer == "You spent ₹300 💸"
        prompt = client.prompts[0]
        assert "Total Income: $1000" in prompt
        assert "- Rent: $300" in prompt
        assert "Where does my money go?" in prompt

    async def test_no_transactions_prompt(self, credentials):
        client = FakeTextClient(lambda prompt: "Start tracking!")
        await FinancialInsightsAgent(client, credentials).ask("Hi", [])
        assert NO_DATA_MESSAGE in client.prompts[0]

    async def test_not_configured(self):
        client = FakeTextClient(lambda prompt: "unused")
        answer = await FinancialInsightsAgent(client, GeminiCredentials()).ask("Hi", [])
        assert answer == NOT_CONFIGURED_REPLY
        assert client.prompts == []

    async def test_connection_failure(self, credentials):
        def fail(prompt):
            raise GeminiRequestError("offline", status_code=None)

        answer = await FinancialInsightsAgent(FakeTextClient(fail), credentials).ask("Hi", [])
        assert answer == CONNECTION_FAILED_REPLY

    async def test_request_failure(self, credentials):
        def fail(prompt):
            raise GeminiRequestError("HTTP 429", status_code=429)

        answer = await FinancialInsightsAgent(FakeTextClient(fail), credentials).ask("Hi", [])
        assert answer == REQUEST_FAILED_REPLY

    async def test_empty_response(self, credentials):
        agent = FinancialInsightsAgent(FakeTextClient(lambda prompt: " "), credentials)
        assert await agent.ask("Hi", []) == EMPTY_RESPONSE_REPLY


class TestAskAboutUser:
    """Loading transactions from the store."""

    async def test_reads_users_transactions(self, credentials):
        client = FakeTextClient(lambda prompt: "ok")
        store = InMemoryTransactionStore(records=[txn("700", INCOME)])
        answer = await FinancialInsightsAgent(client, credentials).ask_about_user(
            "Hi", store, USER_ID, "₹"
        )
        assert answer == "ok"
        assert "Total Income: ₹700" in client.prompts[0]

    async def test_store_failure(self, credentials):
        store = InMemoryTransactionStore(list_error=StorageError("down"))
        agent = FinancialInsightsAgent(FakeTextClient(lambda prompt: "ok"), credentials)
        assert await agent.ask_about_user("Hi", store, USER_ID) == DATA_UNAVAILABLE_REPLY


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
