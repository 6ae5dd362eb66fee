"""
Message Filters

Pure selection helpers used by the scan flow. None of these touch the
device, the network or the state store.
"""

from typing import Iterable, Optional

from src.models.sms import RawMessage


def filter_by_providers(
    messages: Iterable[RawMessage],
    allowed: Iterable[str],
) -> list[RawMessage]:
    """
    Keep messages whose sender is on the allow-list.

    Matching is exact string equality on the address. An empty
    allow-list lets every message through, so a new user who has not
    curated senders yet still gets scanning.
    """
    allowed_set = set(allowed)
    if not allowed_set:
        return list(messages)
    return [m for m in messages if m.address in allowed_set]


def extract_distinct_providers(messages: Iterable[RawMessage]) -> list[str]:
    """Distinct sender addresses, sorted for stable display."""
    return sorted({m.address for m in messages if m.address})


def filter_unprocessed(
    messages: Iterable[RawMessage],
    last_scan_timestamp: Optional[str],
) -> list[RawMessage]:
    """
    Keep messages received strictly after the last scan.

    With no previous scan every message is unprocessed.
    """
    if last_scan_timestamp is None:
        return list(messages)
    cutoff = int(last_scan_timestamp)
    return [m for m in messages if m.timestamp_ms > cutoff]


def latest_message_timestamp(messages: Iterable[RawMessage]) -> Optional[str]:
    """Largest message date as an epoch-millisecond string, or None if empty."""
    timestamps = [m.timestamp_ms for m in messages]
    if not timestamps:
        return None
    return str(max(timestamps))


def sort_oldest_first(messages: Iterable[RawMessage]) -> list[RawMessage]:
    return sorted(messages, key=lambda m: m.timestamp_ms)
