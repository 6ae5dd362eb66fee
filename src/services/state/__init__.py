"""Persistent app-local state: scan bookkeeping and preferences."""

from src.services.state.kv import JsonFileKeyValueStore, KeyValueStore
from src.services.state.preferences import DEFAULT_CURRENCY_SYMBOL, UserPreferences
from src.services.state.scan_state import (
    LAST_SCAN_TIMESTAMP_KEY,
    WHITELISTED_PROVIDERS_KEY,
    ScanStateStore,
)

__all__ = [
    "DEFAULT_CURRENCY_SYMBOL",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "LAST_SCAN_TIMESTAMP_KEY",
    "ScanStateStore",
    "UserPreferences",
    "WHITELISTED_PROVIDERS_KEY",
]
