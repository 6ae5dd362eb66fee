"""Checks run on extracted transactions before they are persisted."""

from src.validation.duplicates import DuplicateCheckError, DuplicateDetector

__all__ = [
    "DuplicateCheckError",
    "DuplicateDetector",
]
