"""
Message Source Adapter

Reads the device SMS inbox and hands back uniform RawMessage records.

DESIGN DECISION: Inbox access is Android-only. On Android we read through
the Termux:API `termux-sms-list` command, which returns the inbox as
JSON and triggers the OS permission dialog on first use. Everywhere else
every read fails loudly with PlatformUnsupportedError - we never return
an empty inbox that would look like "no new messages".

Permission is requested explicitly via request_permission() and is NOT
retried automatically.
"""

import asyncio
import json
import os
import re
import sys
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

import structlog

from src.models.sms import RawMessage


# Default body prefilter: only messages that look like money movement
TRANSACTION_BODY_PATTERN = (
    "(.*)transaction(.*)|(.*)credited(.*)|(.*)debited(.*)|(.*)payment(.*)"
)

TERMUX_RECEIVED_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = structlog.get_logger(__name__)


class MessageSourceError(Exception):
    """Base exception for inbox access errors."""
    pass


class PlatformUnsupportedError(MessageSourceError):
    """The device inbox cannot be read on this platform."""
    pass


class PermissionDeniedError(MessageSourceError):
    """The user has not granted (or has revoked) SMS read permission."""
    pass


def is_android() -> bool:
    """True when running on an Android device (CPython port or Termux)."""
    return hasattr(sys, "getandroidapilevel") or "ANDROID_ROOT" in os.environ


class MessageSource(ABC):
    """
    Abstract interface for reading the device inbox.

    Implementations only ever read the inbox folder and have no side
    effects beyond the OS permission dialog.
    """

    @abstractmethod
    async def list_all(self) -> list[RawMessage]:
        """
        Return every inbox message.

        Raises:
            PlatformUnsupportedError: Not running on a supported device
            PermissionDeniedError: SMS read permission not granted
        """
        pass

    @abstractmethod
    async def list_matching_pattern(self, pattern: str) -> list[RawMessage]:
        """
        Return inbox messages whose body matches `pattern`.

        Raises:
            PlatformUnsupportedError: Not running on a supported device
            PermissionDeniedError: SMS read permission not granted
        """
        pass

    @abstractmethod
    async def request_permission(self) -> bool:
        """Ask the OS for SMS read permission; True if granted."""
        pass


class TermuxSmsSource(MessageSource):
    """
    Inbox reader built on Termux:API.

    Flow:
    1. Check we are on Android
    2. Run `termux-sms-list -t inbox -n -l <limit>`
    3. Parse the JSON array into RawMessage records
    """

    def __init__(
        self,
        command: str = "termux-sms-list",
        limit: int = 1000,
    ):
        self._command = command
        self._limit = limit

    def _ensure_supported(self) -> None:
        if not is_android():
            raise PlatformUnsupportedError(
                "SMS functionality is only available on Android"
            )

    async def _run_command(self, *args: str) -> tuple[int, str, str]:
        """Run the Termux:API command; returns (exit code, stdout, stderr)."""
        try:
            process = await asyncio.create_subprocess_exec(
                self._command,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise PlatformUnsupportedError(
                f"'{self._command}' not found - install the Termux:API app and package"
            )
        stdout, stderr = await process.communicate()
        return (
            process.returncode,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )

    async def _read_inbox(self, limit: int) -> list[RawMessage]:
        self._ensure_supported()

        code, stdout, stderr = await self._run_command(
            "-t", "inbox", "-n", "-l", str(limit)
        )
        if code != 0:
            _raise_for_output(f"{stderr}\n{stdout}")
            raise MessageSourceError(
                f"Failed to list SMS (exit code {code}): {stderr.strip() or stdout.strip()}"
            )

        try:
            payload = json.loads(stdout or "[]")
        except json.JSONDecodeError as e:
            _raise_for_output(stdout)
            raise MessageSourceError(f"Error parsing SMS list: {e}")

        if isinstance(payload, dict):
            error = str(payload.get("error", payload))
            _raise_for_output(error)
            raise MessageSourceError(f"Failed to list SMS: {error}")

        messages = []
        for item in payload:
            try:
                messages.append(parse_termux_message(item))
            except ValueError as e:
                logger.warning("sms_record_unparseable", error=str(e))
        return messages

    async def list_all(self) -> list[RawMessage]:
        return await self._read_inbox(self._limit)

    async def list_matching_pattern(self, pattern: str) -> list[RawMessage]:
        # termux-sms-list has no body filter; apply the regex here
        regex = re.compile(pattern, re.IGNORECASE | re.DOTALL)
        messages = await self._read_inbox(self._limit)
        return [m for m in messages if regex.search(m.body)]

    async def request_permission(self) -> bool:
        if not is_android():
            logger.info("sms_permission_unavailable", reason="not android")
            return False
        try:
            # Reading one message makes Termux:API show the permission dialog
            await self._read_inbox(1)
            return True
        except PermissionDeniedError:
            return False
        except MessageSourceError as e:
            logger.warning("sms_permission_request_failed", error=str(e))
            return False


def _raise_for_output(text: str) -> None:
    lowered = text.lower()
    if "permission" in lowered or "read_sms" in lowered:
        raise PermissionDeniedError(
            "SMS read permission has not been granted to Termux:API"
        )


def parse_termux_message(item: dict[str, Any]) -> RawMessage:
    """
    Convert one termux-sms-list entry into a RawMessage.

    Termux reports the received time as a local "YYYY-MM-DD HH:MM:SS"
    string; it is converted back to epoch milliseconds.
    """
    if not isinstance(item, dict):
        raise ValueError(f"Unexpected SMS entry: {item!r}")

    timestamp = item.get("date")
    if timestamp is None:
        received = item.get("received")
        if not received:
            raise ValueError(f"SMS entry {item.get('_id')} has no timestamp")
        timestamp = _local_string_to_epoch_ms(received)

    return RawMessage(
        _id=item.get("_id", ""),
        thread_id=item.get("threadid", item.get("thread_id", "")),
        address=item.get("address") or item.get("number") or item.get("sender") or "",
        body=item.get("body") or "",
        date=timestamp,
        read=1 if item.get("read") else 0,
        type=1,
    )


def _local_string_to_epoch_ms(value: str) -> int:
    try:
        moment = datetime.strptime(value.strip(), TERMUX_RECEIVED_FORMAT)
    except ValueError:
        raise ValueError(f"Unrecognised SMS timestamp: {value!r}")
    # Naive datetimes are interpreted in local time by timestamp()
    return int(moment.timestamp() * 1000)


def create_message_source(
    command: Optional[str] = None,
    limit: Optional[int] = None,
) -> MessageSource:
    """Build the inbox reader for this device."""
    kwargs = {}
    if command:
        kwargs["command"] = command
    if limit:
        kwargs["limit"] = limit
    return TermuxSmsSource(**kwargs)
