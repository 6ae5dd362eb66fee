"""
Main Orchestrator for ArthMitra SMS Import

This module ties together all the components and defines the
end-to-end flows for:
1. Batch import (messages -> extract -> dedup -> persist)
2. Scan (inbox -> unprocessed -> allow-listed -> import -> advance state)
3. Allow-list curation for the host UI

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only an unreadable inbox aborts a scan; every other failure is counted
- Scan state advances only after the whole batch has been attempted
- Every message outcome is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import tzinfo
from typing import Optional
from uuid import UUID
from zoneinfo import ZoneInfo

import structlog

from src.agents import (
    FinancialInsightsAgent,
    GeminiTextClient,
    SmsTransactionExtractor,
)
from src.audit import AuditLogger, create_correlation_id
from src.config import get_settings
from src.models.sms import ExtractedTransaction, RawMessage, ScanResult
from src.models.transaction import (
    DIRECTION_STYLES,
    SMS_IMPORT_CATEGORY,
    TransactionRecord,
    format_record_date,
)
from src.services.sms import (
    TRANSACTION_BODY_PATTERN,
    MessageSource,
    MessageSourceError,
    PermissionDeniedError,
    PlatformUnsupportedError,
    create_message_source,
    extract_distinct_providers,
    filter_by_providers,
    filter_unprocessed,
    latest_message_timestamp,
    sort_oldest_first,
)
from src.services.state import JsonFileKeyValueStore, ScanStateStore, UserPreferences
from src.services.storage import PersistError, StorageError, TransactionStore
from src.validation import DuplicateDetector


logger = structlog.get_logger(__name__)


def build_title(extracted: ExtractedTransaction) -> str:
    """
    Title shown in the transaction list.

    Always contains the provider, which is what duplicate detection
    searches titles for.
    """
    description = extracted.description.strip()
    provider = extracted.provider.strip()
    if not description:
        return provider
    if not provider or provider.lower() in description.lower():
        return description
    return f"{provider} - {description}"


class SmsTransactionImporter:
    """
    Imports a batch of messages into the transaction store.

    State machine per message (strictly sequential, input order):
    1. Extract -> None means skipped
    2. Duplicate check -> True means duplicates
    3. Build record (category "Via SMS", icon/colors by direction)
    4. Persist -> PersistError means failed
    5. Otherwise success

    Any unexpected error fails that message only. Earlier writes are
    visible to later duplicate checks in the same batch.
    """

    def __init__(
        self,
        extractor: SmsTransactionExtractor,
        duplicate_detector: DuplicateDetector,
        store: TransactionStore,
        user_id: str,
        tz: Optional[tzinfo] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._extractor = extractor
        self._duplicate_detector = duplicate_detector
        self._store = store
        self._user_id = user_id
        self._tz = tz
        self._audit_logger = audit_logger

    def build_record(
        self,
        message: RawMessage,
        extracted: ExtractedTransaction,
    ) -> TransactionRecord:
        style = DIRECTION_STYLES[extracted.direction]
        return TransactionRecord(
            user_id=self._user_id,
            title=build_title(extracted),
            amount=extracted.amount,
            type=extracted.direction,
            category=SMS_IMPORT_CATEGORY,
            date=format_record_date(message.date, self._tz),
            icon=style.icon,
            icon_color=style.icon_color,
            icon_bg=style.icon_bg,
        )

    async def scan(
        self,
        messages: list[RawMessage],
        correlation_id: Optional[UUID] = None,
    ) -> ScanResult:
        result = ScanResult()

        for message in messages:
            stage = "extract"
            try:
                extracted = await self._extractor.extract(message)
                if extracted is None:
                    result.skipped += 1
                    if self._audit_logger:
                        await self._audit_logger.log_message_skipped(
                            message_id=message.id,
                            sender=message.address,
                            correlation_id=correlation_id,
                        )
                    continue

                stage = "duplicate_check"
                if await self._duplicate_detector.is_duplicate(
                    amount=extracted.amount,
                    direction=extracted.direction,
                    provider=extracted.provider,
                    message_timestamp=message.date,
                ):
                    result.duplicates += 1
                    if self._audit_logger:
                        await self._audit_logger.log_duplicate_detected(
                            message_id=message.id,
                            description=extracted.description,
                            amount=str(extracted.amount),
                            correlation_id=correlation_id,
                        )
                    continue

                stage = "build_record"
                record = self.build_record(message, extracted)
                stage = "persist"

                try:
                    await self._store.create(record)
                except PersistError as e:
                    result.record_failure(
                        f"Failed to create transaction for message from {message.address}: {e}"
                    )
                    if self._audit_logger:
                        await self._audit_logger.log_message_failed(
                            message_id=message.id,
                            stage="persist",
                            error_message=str(e),
                            correlation_id=correlation_id,
                        )
                    continue

                result.success += 1
                if self._audit_logger:
                    await self._audit_logger.log_transaction_imported(
                        message_id=message.id,
                        title=record.title,
                        amount=str(record.amount),
                        direction=record.type.value,
                        correlation_id=correlation_id,
                    )

            except Exception as e:
                result.record_failure(f"Error processing message from {message.address}: {e}")
                if self._audit_logger:
                    await self._audit_logger.log_message_failed(
                        message_id=message.id,
                        stage=stage,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )

        return result


class SmsScanFlow:
    """
    Orchestrates one SMS scan and the allow-list screens around it.

    Flow:
    1. Read inbox messages matching the body pattern
    2. Load scan state (failure -> logged, defaults used)
    3. Keep messages newer than the last scan
    4. Keep allow-listed senders (empty allow-list keeps everyone)
    5. Import oldest first
    6. Advance the last scan timestamp to the newest message in the batch

    Only PlatformUnsupportedError and PermissionDeniedError escape;
    they mean the inbox could not be read at all.
    """

    def __init__(
        self,
        source: MessageSource,
        state_store: ScanStateStore,
        importer: SmsTransactionImporter,
        body_pattern: Optional[str] = TRANSACTION_BODY_PATTERN,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._source = source
        self._state_store = state_store
        self._importer = importer
        self._body_pattern = body_pattern
        self._audit_logger = audit_logger

    async def request_permission(self) -> bool:
        """Ask for SMS read permission. Never retried automatically."""
        return await self._source.request_permission()

    async def _read_inbox(self) -> list[RawMessage]:
        if self._body_pattern:
            return await self._source.list_matching_pattern(self._body_pattern)
        return await self._source.list_all()

    async def list_providers(self) -> list[str]:
        """Distinct senders of transaction-like messages, for the allow-list picker."""
        return extract_distinct_providers(await self._read_inbox())

    async def get_allow_list(self) -> list[str]:
        try:
            return await self._state_store.get_whitelisted_providers()
        except StorageError as e:
            logger.error("allow_list_read_failed", error=str(e))
            return []

    async def update_allow_list(self, providers: list[str]) -> None:
        """
        Replace the allow-list.

        Raises:
            StorageError: If the list could not be saved
        """
        await self._state_store.set_whitelisted_providers(providers)
        if self._audit_logger:
            await self._audit_logger.log_allow_list_updated(sorted(set(providers)))

    async def _load_state(self, correlation_id: UUID) -> tuple[Optional[str], list[str]]:
        """
        Read the last scan timestamp and the allow-list.

        Each key falls back to its default on its own, so a corrupt
        timestamp does not also drop the user's trusted senders.
        """
        last_scan_timestamp: Optional[str] = None
        allow_list: list[str] = []

        try:
            last_scan_timestamp = await self._state_store.get_last_scan_timestamp()
        except StorageError as e:
            await self._state_error("load_timestamp", e, correlation_id)

        try:
            allow_list = await self._state_store.get_whitelisted_providers()
        except StorageError as e:
            await self._state_error("load_allow_list", e, correlation_id)

        return last_scan_timestamp, allow_list

    async def _state_error(self, operation: str, error: Exception, correlation_id: UUID) -> None:
        logger.error("scan_state_error", operation=operation, error=str(error))
        if self._audit_logger:
            await self._audit_logger.log_scan_state_error(
                operation=operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def _advance_state(
        self,
        batch: list[RawMessage],
        correlation_id: UUID,
    ) -> Optional[str]:
        newest = latest_message_timestamp(batch)
        if newest is None:
            return None
        try:
            return await self._state_store.advance_last_scan_timestamp(newest)
        except StorageError as e:
            await self._state_error("save", e, correlation_id)
            return None

    async def run_scan(self, correlation_id: Optional[UUID] = None) -> ScanResult:
        """
        Run one scan end to end.

        A failed inbox read (command error, unreadable output) ends the
        scan early with one failure recorded; the scan state is untouched.

        Raises:
            PlatformUnsupportedError: Inbox not available on this platform
            PermissionDeniedError: SMS read permission not granted
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            inbox = await self._read_inbox()
        except MessageSourceError as e:
            if self._audit_logger:
                await self._audit_logger.log_scan_aborted(
                    reason=type(e).__name__,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            if isinstance(e, (PlatformUnsupportedError, PermissionDeniedError)):
                raise
            result = ScanResult()
            result.record_failure(f"Failed to read SMS inbox: {e}")
            return result

        last_scan_timestamp, allow_list = await self._load_state(correlation_id)

        batch = filter_unprocessed(inbox, last_scan_timestamp)
        batch = filter_by_providers(batch, allow_list)
        batch = sort_oldest_first(batch)

        if self._audit_logger:
            await self._audit_logger.log_scan_started(
                message_count=len(batch),
                last_scan_timestamp=last_scan_timestamp,
                correlation_id=correlation_id,
            )

        result = await self._importer.scan(batch, correlation_id=correlation_id)

        new_timestamp = await self._advance_state(batch, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_scan_completed(
                success=result.success,
                failed=result.failed,
                skipped=result.skipped,
                duplicates=result.duplicates,
                last_scan_timestamp=new_timestamp or last_scan_timestamp,
                correlation_id=correlation_id,
            )

        logger.info(
            "sms_scan_completed",
            scanned=len(batch),
            success=result.success,
            failed=result.failed,
            skipped=result.skipped,
            duplicates=result.duplicates,
        )
        return result


def create_transaction_store() -> TransactionStore:
    """Build the configured transaction store backend."""
    backend = get_settings().app.transaction_store_backend
    if backend == "google_sheets":
        from src.services.storage.google_sheets import GoogleSheetsTransactionStore
        return GoogleSheetsTransactionStore()

    from src.services.storage.supabase_store import SupabaseTransactionStore
    return SupabaseTransactionStore()


def create_app_components(
    source: Optional[MessageSource] = None,
    store: Optional[TransactionStore] = None,
) -> tuple[SmsScanFlow, FinancialInsightsAgent, UserPreferences, TransactionStore]:
    """
    Factory function to create all application components.

    Args:
        source: Inbox reader; defaults to Termux:API
        store: Transaction store; defaults to the configured backend

    Returns:
        (scan_flow, insights_agent, preferences, store)

    Raises:
        ValueError: If USER_ID is not configured
    """
    settings = get_settings()
    app_settings = settings.app
    scan_settings = settings.scan
    gemini_settings = settings.gemini

    if not app_settings.user_id:
        raise ValueError("USER_ID must be set to import transactions")

    tz = ZoneInfo(app_settings.timezone) if app_settings.timezone else None
    audit_logger = AuditLogger()

    store = store or create_transaction_store()
    kv = JsonFileKeyValueStore(scan_settings.state_path)

    client = GeminiTextClient()
    extractor = SmsTransactionExtractor(client, gemini_settings.sms_credentials)
    importer = SmsTransactionImporter(
        extractor=extractor,
        duplicate_detector=DuplicateDetector(store, app_settings.user_id, tz=tz),
        store=store,
        user_id=app_settings.user_id,
        tz=tz,
        audit_logger=audit_logger,
    )

    scan_flow = SmsScanFlow(
        source=source or create_message_source(
            command=scan_settings.termux_command,
            limit=scan_settings.inbox_limit,
        ),
        state_store=ScanStateStore(kv),
        importer=importer,
        body_pattern=scan_settings.body_pattern,
        audit_logger=audit_logger,
    )

    insights_agent = FinancialInsightsAgent(client, gemini_settings.insights_credentials)

    return scan_flow, insights_agent, UserPreferences(kv), store
