"""AI Agents package."""

from src.agents.gemini_client import GeminiRequestError, GeminiTextClient
from src.agents.insights import (
    FinancialInsightsAgent,
    FinancialSummary,
    summarize_transactions,
)
from src.agents.sms_extractor import ExtractionError, SmsTransactionExtractor

__all__ = [
    "ExtractionError",
    "FinancialInsightsAgent",
    "FinancialSummary",
    "GeminiRequestError",
    "GeminiTextClient",
    "SmsTransactionExtractor",
    "summarize_transactions",
]
