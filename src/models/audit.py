"""
Audit Models for ArthMitra

Every significant step of an SMS scan is logged for audit purposes.
This provides:
1. Traceability of which message produced which transaction
2. Debugging information when extraction or persistence fails
3. An explanation for every skipped or duplicate message

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    One event type per outcome a message can have, plus scan lifecycle.
    """
    # Scan lifecycle
    SCAN_STARTED = "scan_started"
    SCAN_COMPLETED = "scan_completed"
    SCAN_ABORTED = "scan_aborted"

    # Per-message outcomes
    MESSAGE_SKIPPED = "message_skipped"
    DUPLICATE_DETECTED = "duplicate_detected"
    TRANSACTION_IMPORTED = "transaction_imported"
    EXTRACTION_FAILED = "extraction_failed"
    PERSIST_FAILED = "persist_failed"
    PROCESSING_FAILED = "processing_failed"

    # Scan state
    SCAN_STATE_ERROR = "scan_state_error"
    ALLOW_LIST_UPDATED = "allow_list_updated"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # The SMS message id, when the event is about one message
    message_id: Optional[str] = None
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Shared by all events of one scan"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "message_id": self.message_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.scan_started(message_count, correlation_id)
        event = AuditEventBuilder.transaction_imported(message_id, ...)
    """

    @staticmethod
    def scan_started(
        message_count: int,
        last_scan_timestamp: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCAN_STARTED,
            correlation_id=correlation_id,
            description=f"SMS scan started with {message_count} candidate messages",
            details={
                "message_count": message_count,
                "last_scan_timestamp": last_scan_timestamp,
            },
            is_user_action=True,
        )

    @staticmethod
    def scan_completed(
        success: int,
        failed: int,
        skipped: int,
        duplicates: int,
        last_scan_timestamp: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCAN_COMPLETED,
            severity=AuditSeverity.WARNING if failed else AuditSeverity.INFO,
            correlation_id=correlation_id,
            description=(
                f"SMS scan completed: {success} success, {failed} failed, "
                f"{skipped} skipped, {duplicates} duplicates"
            ),
            details={
                "success": success,
                "failed": failed,
                "skipped": skipped,
                "duplicates": duplicates,
                "last_scan_timestamp": last_scan_timestamp,
            },
        )

    @staticmethod
    def scan_aborted(
        reason: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCAN_ABORTED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"SMS scan aborted: {reason}",
            error_message=error_message,
            details={"reason": reason},
        )

    @staticmethod
    def message_skipped(
        message_id: str,
        sender: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MESSAGE_SKIPPED,
            severity=AuditSeverity.DEBUG,
            message_id=message_id,
            correlation_id=correlation_id,
            description=f"Message from {sender} is not a transaction",
            details={"sender": sender},
        )

    @staticmethod
    def duplicate_detected(
        message_id: str,
        description: str,
        amount: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_DETECTED,
            message_id=message_id,
            correlation_id=correlation_id,
            description=f"Duplicate transaction detected: {description} - ₹{amount}",
            details={"amount": amount},
        )

    @staticmethod
    def transaction_imported(
        message_id: str,
        title: str,
        amount: str,
        direction: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_IMPORTED,
            message_id=message_id,
            correlation_id=correlation_id,
            description=f"Transaction imported: {title} - ₹{amount}",
            details={
                "title": title,
                "amount": amount,
                "direction": direction,
            },
        )

    @staticmethod
    def message_failed(
        message_id: str,
        stage: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        event_type = {
            "extract": AuditEventType.EXTRACTION_FAILED,
            "persist": AuditEventType.PERSIST_FAILED,
        }.get(stage, AuditEventType.PROCESSING_FAILED)
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            message_id=message_id,
            correlation_id=correlation_id,
            description=f"Message failed during {stage}",
            error_message=error_message,
            details={"stage": stage},
        )

    @staticmethod
    def scan_state_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCAN_STATE_ERROR,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Scan state {operation} failed; continuing with stale state",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def allow_list_updated(providers: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALLOW_LIST_UPDATED,
            description=f"Allow-list updated with {len(providers)} providers",
            details={"providers": providers},
            is_user_action=True,
        )
