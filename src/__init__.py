"""
ArthMitra - Source Package

The SMS import layer of a personal finance app: reads bank and payment
SMS messages, turns them into income/expense transactions with an LLM,
and keeps re-scans from importing the same event twice.

DESIGN PRINCIPLES:
1. Never silently lose a real transaction
2. One bad message never stops a scan
3. Scan progress only moves forward
4. Every step is logged
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "ArthMitra Team"
