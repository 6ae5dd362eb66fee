"""Device inbox access and message selection."""

from src.services.sms.filters import (
    extract_distinct_providers,
    filter_by_providers,
    filter_unprocessed,
    latest_message_timestamp,
    sort_oldest_first,
)
from src.services.sms.source import (
    TRANSACTION_BODY_PATTERN,
    MessageSource,
    MessageSourceError,
    PermissionDeniedError,
    PlatformUnsupportedError,
    TermuxSmsSource,
    create_message_source,
    is_android,
)

__all__ = [
    "MessageSource",
    "MessageSourceError",
    "PermissionDeniedError",
    "PlatformUnsupportedError",
    "TRANSACTION_BODY_PATTERN",
    "TermuxSmsSource",
    "create_message_source",
    "extract_distinct_providers",
    "filter_by_providers",
    "filter_unprocessed",
    "is_android",
    "latest_message_timestamp",
    "sort_oldest_first",
]
