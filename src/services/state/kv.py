"""
Durable Key-Value Storage

A tiny async string store scoped to one app installation, used for scan
bookkeeping and user preferences. Values are UTF-8 strings; callers that
need structure (e.g. the allow-list) JSON-encode it themselves.
"""

import asyncio
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import structlog

from src.services.storage.interface import StorageError


logger = structlog.get_logger(__name__)


class KeyValueStore(ABC):
    """Abstract string key-value store."""

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is unset."""
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Delete a key; removing a missing key is a no-op."""
        pass


class JsonFileKeyValueStore(KeyValueStore):
    """
    Key-value store persisted as one JSON object on disk.

    Writes go to a temporary file in the same directory which then
    replaces the original, so a crash mid-write leaves the previous
    state intact. File access runs in a worker thread.
    """

    def __init__(self, path: Path):
        self._path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read state file {self._path}: {e}")

        if not isinstance(data, dict):
            raise StorageError(f"State file {self._path} does not hold a JSON object")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write state file {self._path}: {e}")

    def _update(self, key: str, value: Optional[str]) -> None:
        """Set `key` to `value`, or delete it when `value` is None."""
        with self._lock:
            data = self._read_all()
            if value is None:
                if key not in data:
                    return
                del data[key]
            else:
                data[key] = value
            self._write_all(data)

    async def get_item(self, key: str) -> Optional[str]:
        value = (await asyncio.to_thread(self._read_all)).get(key)
        return None if value is None else str(value)

    async def set_item(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._update, key, value)
        logger.debug("state_key_written", key=key, path=str(self._path))

    async def remove_item(self, key: str) -> None:
        await asyncio.to_thread(self._update, key, None)
