"""
Financial Insights Agent

Answers free-form questions about the user's money using a summary
computed from their stored transactions.

CRITICAL BOUNDARIES:
1. Totals are computed HERE, deterministically, never by the LLM
2. The LLM only phrases an answer around the summary it is given
3. A failed call returns a friendly message; the chat never raises

FLOW:
1. Transactions -> FinancialSummary (pure arithmetic)
2. Summary + question -> prompt
3. Prompt -> Gemini (insights key pair, same failover rules as SMS)
"""

from decimal import Decimal
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from src.agents.gemini_client import GeminiRequestError, GeminiTextClient
from src.models.credentials import GeminiCredentials
from src.models.sms import TransactionDirection
from src.models.transaction import TransactionRecord
from src.services.state.preferences import DEFAULT_CURRENCY_SYMBOL
from src.services.storage.interface import StorageError, TransactionStore


NO_DATA_MESSAGE = (
    "I don't see any transaction data yet. Start tracking your expenses "
    "and income to get personalized insights!"
)
NOT_CONFIGURED_REPLY = (
    "⚠️ I'm not fully set up yet. Please provide a valid Gemini API key "
    "to enable AI-powered financial insights. 🔑"
)
DATA_UNAVAILABLE_REPLY = (
    "❌ I'm having trouble accessing your financial data right now. "
    "Let's try again later. 🔄"
)
REQUEST_FAILED_REPLY = (
    "❗ I encountered an issue while processing your request. "
    "Please try again later. 🔄"
)
EMPTY_RESPONSE_REPLY = (
    "⚠️ I received an unexpected response format. Please try again later. 🔄"
)
CONNECTION_FAILED_REPLY = (
    "📶 I'm having trouble connecting to my AI services right now. "
    "Please try again later. 🔄"
)

TOP_CATEGORY_COUNT = 3

logger = structlog.get_logger(__name__)


class CategoryTotal(BaseModel):
    category: str
    amount: Decimal


class FinancialSummary(BaseModel):
    """Deterministic totals the insights prompt is built from."""

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    top_expense_categories: list[CategoryTotal] = Field(default_factory=list)
    transaction_count: int = 0

    @property
    def has_data(self) -> bool:
        return self.transaction_count > 0


def summarize_transactions(transactions: list[TransactionRecord]) -> FinancialSummary:
    """
    Total income and expenses, balance, and the three largest expense
    categories. Deleted rows are ignored.
    """
    active = [t for t in transactions if not t.deleted]

    income = sum(
        (t.amount for t in active if t.type == TransactionDirection.INCOME),
        Decimal("0"),
    )
    expenses = sum(
        (t.amount for t in active if t.type == TransactionDirection.EXPENSE),
        Decimal("0"),
    )

    by_category: dict[str, Decimal] = {}
    for t in active:
        if t.type == TransactionDirection.EXPENSE:
            by_category[t.category] = by_category.get(t.category, Decimal("0")) + t.amount

    top = sorted(by_category.items(), key=lambda item: item[1], reverse=True)

    return FinancialSummary(
        total_income=income,
        total_expenses=expenses,
        balance=income - expenses,
        top_expense_categories=[
            CategoryTotal(category=c, amount=a) for c, a in top[:TOP_CATEGORY_COUNT]
        ],
        transaction_count=len(active),
    )


def build_insights_prompt(
    question: str,
    summary: FinancialSummary,
    currency_symbol: str,
) -> str:
    style = (
        "Include relevant emojis throughout your response to make it more engaging "
        "(e.g., 💰 for money, 📊 for insights, 💸 for expenses, 💼 for income, etc.). "
        "Keep your answer concise and focused on their question."
    )

    if not summary.has_data:
        return (
            f"You are a helpful financial assistant. {NO_DATA_MESSAGE} "
            f"The user asks: {question}\n\n"
            f"Provide a helpful response. {style}"
        )

    if summary.top_expense_categories:
        categories = "\n".join(
            f"- {c.category}: {currency_symbol}{c.amount}"
            for c in summary.top_expense_categories
        )
    else:
        categories = "- No expense data available yet"

    return (
        "You are a helpful financial assistant. The user has the following financial data:\n"
        f"Total Income: {currency_symbol}{summary.total_income}\n"
        f"Total Expenses: {currency_symbol}{summary.total_expenses}\n"
        f"Current Balance: {currency_symbol}{summary.balance}\n\n"
        f"Top expense categories:\n{categories}\n\n"
        f"The user asks: {question}\n\n"
        "Provide a helpful, personalized response based on their financial data. "
        f"Always use the currency symbol {currency_symbol} when mentioning any "
        f"monetary values. {style}"
    )


class FinancialInsightsAgent:
    """
    Chat-style Q&A over the user's transaction summary.

    Uses its own key pair so chat traffic and SMS scanning do not share
    a quota.
    """

    def __init__(
        self,
        client: GeminiTextClient,
        credentials: GeminiCredentials,
    ):
        self._client = client
        self._credentials = credentials

    async def ask(
        self,
        question: str,
        transactions: list[TransactionRecord],
        currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
    ) -> str:
        """Answer `question`; always returns text, never raises."""
        if not self._credentials.has_any:
            logger.error("insights_not_configured")
            return NOT_CONFIGURED_REPLY

        summary = summarize_transactions(transactions)
        prompt = build_insights_prompt(question, summary, currency_symbol)

        try:
            text = await self._client.generate(prompt, self._credentials)
        except GeminiRequestError as e:
            logger.error("insights_request_failed", status_code=e.status_code, error=str(e))
            if e.status_code is None:
                return CONNECTION_FAILED_REPLY
            return REQUEST_FAILED_REPLY

        if not text.strip():
            logger.warning("insights_empty_response")
            return EMPTY_RESPONSE_REPLY
        return text.strip()

    async def ask_about_user(
        self,
        question: str,
        store: TransactionStore,
        user_id: str,
        currency_symbol: Optional[str] = None,
    ) -> str:
        """Load the user's transactions from `store`, then answer."""
        try:
            transactions = await store.list_transactions(user_id)
        except StorageError as e:
            logger.error("insights_transactions_unavailable", error=str(e))
            return DATA_UNAVAILABLE_REPLY

        return await self.ask(
            question,
            transactions,
            currency_symbol or DEFAULT_CURRENCY_SYMBOL,
        )
