"""
Scan-State Store

Remembers, across app restarts:
1. The timestamp of the newest message a completed scan has covered
2. The user's allow-list of trusted SMS senders

DESIGN DECISION: Reads and writes raise StorageError instead of
returning defaults. The scan flow decides what a failure means
(usually "continue with stale state"); this store never guesses.
"""

import json
from typing import Optional

import structlog

from src.models.sms import ScanState
from src.services.state.kv import KeyValueStore
from src.services.storage.interface import StorageError


LAST_SCAN_TIMESTAMP_KEY = "@ArthMitra:lastScanTimestamp"
WHITELISTED_PROVIDERS_KEY = "@ArthMitra:whitelistedProviders"

logger = structlog.get_logger(__name__)


def _parse_timestamp(value: str) -> int:
    """Epoch milliseconds from a stored string; anything but an integer is corrupt."""
    try:
        return int(value)
    except (TypeError, ValueError):
        raise StorageError(f"Invalid scan timestamp: {value!r}")


class ScanStateStore:
    """Typed access to scan bookkeeping on top of a KeyValueStore."""

    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    async def get_last_scan_timestamp(self) -> Optional[str]:
        """
        Epoch-millisecond string of the last completed scan, or None.

        Raises:
            StorageError: If the state cannot be read or the stored
                value is not an integer
        """
        value = await self._kv.get_item(LAST_SCAN_TIMESTAMP_KEY)
        if not value:
            return None
        return str(_parse_timestamp(value))

    async def set_last_scan_timestamp(self, timestamp: str) -> None:
        await self._kv.set_item(LAST_SCAN_TIMESTAMP_KEY, str(_parse_timestamp(timestamp)))

    async def advance_last_scan_timestamp(self, candidate: str) -> str:
        """
        Move the last scan timestamp forward to `candidate`.

        Never moves it backwards: if the stored value is already newer,
        it is kept. A stored value that is not an integer is replaced.
        Returns the value in effect afterwards.
        """
        target = _parse_timestamp(candidate)

        current: Optional[int] = None
        stored = await self._kv.get_item(LAST_SCAN_TIMESTAMP_KEY)
        if stored:
            try:
                current = _parse_timestamp(stored)
            except StorageError:
                logger.warning("corrupt_scan_timestamp_replaced", stored=stored)

        if current is not None and current >= target:
            return str(current)
        await self.set_last_scan_timestamp(str(target))
        logger.info("last_scan_timestamp_advanced", previous=current, current=target)
        return str(target)

    async def get_whitelisted_providers(self) -> list[str]:
        raw = await self._kv.get_item(WHITELISTED_PROVIDERS_KEY)
        if not raw:
            return []
        try:
            providers = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Stored allow-list is not valid JSON: {e}")
        if not isinstance(providers, list):
            raise StorageError("Stored allow-list is not a JSON array")
        return [str(p) for p in providers]

    async def set_whitelisted_providers(self, providers: list[str]) -> None:
        # Order is not meaningful; store deduplicated and sorted
        unique = sorted(set(providers))
        await self._kv.set_item(
            WHITELISTED_PROVIDERS_KEY,
            json.dumps(unique, ensure_ascii=False),
        )

    async def load(self) -> ScanState:
        """Read both keys into a ScanState."""
        return ScanState(
            last_scan_timestamp=await self.get_last_scan_timestamp(),
            whitelisted_providers=await self.get_whitelisted_providers(),
        )
