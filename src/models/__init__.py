"""
Data Models Package

This package contains all Pydantic models used by ArthMitra.
All data flowing through an SMS scan must conform to these schemas.
"""

from src.models.sms import (
    ExtractedTransaction,
    RawMessage,
    ScanResult,
    ScanState,
    TransactionDirection,
)
from src.models.transaction import (
    DIRECTION_STYLES,
    SMS_IMPORT_CATEGORY,
    TransactionRecord,
    format_record_date,
)
from src.models.credentials import GeminiCredentials
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # SMS scan models
    "ExtractedTransaction",
    "RawMessage",
    "ScanResult",
    "ScanState",
    "TransactionDirection",
    # Transaction store models
    "DIRECTION_STYLES",
    "SMS_IMPORT_CATEGORY",
    "TransactionRecord",
    "format_record_date",
    # Credentials
    "GeminiCredentials",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
