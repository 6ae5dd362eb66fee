"""
Audit Logger

DESIGN DECISION: Every message a scan touches ends in exactly one
logged outcome (imported, skipped, duplicate, failed). This provides:
1. Complete traceability from SMS to transaction
2. Debugging capability when the LLM or backend misbehaves
3. A record of everything counted in a ScanResult

The audit logger:
- Is async so it can sit inside the scan flow
- Never raises (a logging failure must not break a scan)
- Supports correlation IDs to group all events of one scan
"""

import logging
from typing import Callable, Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(debug: bool = False) -> None:
    """Route stdlib logging (and therefore structlog) to stderr."""
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )


class AuditLogger:
    """
    Central audit logging service for SMS scans.

    Events are written to the structured local log only; the imported
    transactions themselves are the durable record.
    """

    def __init__(self):
        self._logger = structlog.get_logger("arthmitra.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written.
        """
        try:
            log_dict = event.to_log_dict()

            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the scan
            logging.getLogger(__name__).error("audit_log_failed: %s", e)
            return False

    async def _emit(self, build: Callable[..., AuditEvent], **kwargs) -> bool:
        """Build an event and log it; a build failure is logged, not raised."""
        try:
            event = build(**kwargs)
        except Exception as e:
            logging.getLogger(__name__).error("audit_event_build_failed: %s", e)
            return False
        return await self.log(event)

    async def log_scan_started(
        self,
        message_count: int,
        last_scan_timestamp: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Log the start of a scan."""
        await self._emit(
            AuditEventBuilder.scan_started,
            message_count=message_count,
            last_scan_timestamp=last_scan_timestamp,
            correlation_id=correlation_id,
        )

    async def log_scan_completed(
        self,
        success: int,
        failed: int,
        skipped: int,
        duplicates: int,
        last_scan_timestamp: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Log scan totals."""
        await self._emit(
            AuditEventBuilder.scan_completed,
            success=success,
            failed=failed,
            skipped=skipped,
            duplicates=duplicates,
            last_scan_timestamp=last_scan_timestamp,
            correlation_id=correlation_id,
        )

    async def log_scan_aborted(
        self,
        reason: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a scan that could not read the inbox."""
        await self._emit(
            AuditEventBuilder.scan_aborted,
            reason=reason,
            error_message=error_message,
            correlation_id=correlation_id,
        )

    async def log_message_skipped(
        self,
        message_id: str,
        sender: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._emit(
            AuditEventBuilder.message_skipped,
            message_id=message_id,
            sender=sender,
            correlation_id=correlation_id,
        )

    async def log_duplicate_detected(
        self,
        message_id: str,
        description: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._emit(
            AuditEventBuilder.duplicate_detected,
            message_id=message_id,
            description=description,
            amount=amount,
            correlation_id=correlation_id,
        )

    async def log_transaction_imported(
        self,
        message_id: str,
        title: str,
        amount: str,
        direction: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._emit(
            AuditEventBuilder.transaction_imported,
            message_id=message_id,
            title=title,
            amount=amount,
            direction=direction,
            correlation_id=correlation_id,
        )

    async def log_message_failed(
        self,
        message_id: str,
        stage: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._emit(
            AuditEventBuilder.message_failed,
            message_id=message_id,
            stage=stage,
            error_message=error_message,
            correlation_id=correlation_id,
        )

    async def log_scan_state_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._emit(
            AuditEventBuilder.scan_state_error,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )

    async def log_allow_list_updated(self, providers: list[str]) -> None:
        await self._emit(AuditEventBuilder.allow_list_updated, providers=providers)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use one per scan and pass it to every event of that scan.
    """
    return uuid4()
