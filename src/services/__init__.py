"""Services package."""

from src.services.state import (
    JsonFileKeyValueStore,
    KeyValueStore,
    ScanStateStore,
    UserPreferences,
)
from src.services.storage import (
    ConnectionError,
    PersistError,
    StorageError,
    TransactionStore,
)

__all__ = [
    # State services
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "ScanStateStore",
    "UserPreferences",
    # Storage services
    "ConnectionError",
    "PersistError",
    "StorageError",
    "TransactionStore",
]
