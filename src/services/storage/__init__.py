"""
Storage Services Package

Provides the abstract transaction store interface and its concrete
implementations. Supabase is the production backend; Google Sheets is a
drop-in alternative.
"""

from src.services.storage.interface import (
    ConnectionError,
    PersistError,
    StorageError,
    TransactionStore,
)
from src.services.storage.mapping import record_to_row, row_to_record

__all__ = [
    # Interface
    "TransactionStore",
    # Exceptions
    "ConnectionError",
    "PersistError",
    "StorageError",
    # Boundary mapping
    "record_to_row",
    "row_to_record",
]
