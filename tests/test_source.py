"""Tests for the Termux:API inbox reader."""

import json
from datetime import datetime

import pytest

from src.services.sms import source as source_module
from src.services.sms.source import (
    TRANSACTION_BODY_PATTERN,
    MessageSourceError,
    PermissionDeniedError,
    PlatformUnsupportedError,
    TermuxSmsSource,
    parse_termux_message,
)


TERMUX_INBOX = [
    {
        "threadid": 12,
        "type": "inbox",
        "read": True,
        "number": "VM-HDFCBK",
        "received": "2024-06-05 10:30:00",
        "body": "Rs.500 credited to your account by John",
        "_id": 101,
    },
    {
        "threadid": 13,
        "type": "inbox",
        "read": False,
        "number": "AX-OTPSMS",
        "received": "2024-06-05 11:00:00",
        "body": "Your OTP is 4821",
        "_id": 102,
    },
]


class ScriptedTermuxSource(TermuxSmsSource):
    """TermuxSmsSource whose command output is canned."""

    def __init__(self, code=0, stdout="", stderr=""):
        super().__init__()
        self.result = (code, stdout, stderr)
        self.calls = []

    async def _run_command(self, *args):
        self.calls.append(args)
        return self.result


@pytest.fixture
def on_android(monkeypatch):
    monkeypatch.setattr(source_module, "is_android", lambda: True)


@pytest.fixture
def off_android(monkeypatch):
    monkeypatch.setattr(source_module, "is_android", lambda: False)


class TestPlatformGate:
    """The inbox is Android-only."""

    async def test_list_all_fails_off_android(self, off_android):
        with pytest.raises(PlatformUnsupportedError):
            await ScriptedTermuxSource(stdout="[]").list_all()

    async def test_list_matching_fails_off_android(self, off_android):
        with pytest.raises(PlatformUnsupportedError):
            await ScriptedTermuxSource(stdout="[]").list_matching_pattern("credited")

    async def test_permission_request_off_android(self, off_android):
        """Test the request fails cleanly instead of raising."""
        source = ScriptedTermuxSource(stdout="[]")
        assert await source.request_permission() is False
        assert source.calls == []

    async def test_missing_termux_command(self, on_android):
        source = TermuxSmsSource(command="arthmitra-no-such-command")
        with pytest.raises(PlatformUnsupportedError):
            await source.list_all()


class TestListing:
    """Reading and parsing the inbox."""

    async def test_list_all_parses_messages(self, on_android):
        source = ScriptedTermuxSource(stdout=json.dumps(TERMUX_INBOX))
        messages = await source.list_all()

        assert [m.id for m in messages] == ["101", "102"]
        assert messages[0].address == "VM-HDFCBK"
        assert messages[0].thread_id == "12"
        assert messages[0].read == 1
        assert source.calls == [("-t", "inbox", "-n", "-l", "1000")]

    async def test_list_matching_pattern_filters_bodies(self, on_android):
        source = ScriptedTermuxSource(stdout=json.dumps(TERMUX_INBOX))
        messages = await source.list_matching_pattern(TRANSACTION_BODY_PATTERN)
        assert [m.id for m in messages] == ["101"]

    async def test_unparseable_entries_are_dropped(self, on_android):
        inbox = TERMUX_INBOX + [{"_id": 103, "body": "no time"}]
        source = ScriptedTermuxSource(stdout=json.dumps(inbox))
        assert len(await source.list_all()) == 2

    async def test_empty_inbox(self, on_android):
        assert await ScriptedTermuxSource(stdout="").list_all() == []


class TestPermissionErrors:
    """Permission problems are reported as PermissionDeniedError."""

    async def test_error_payload(self, on_android):
        payload = json.dumps({"error": "Permission denial: READ_SMS not granted"})
        with pytest.raises(PermissionDeniedError):
            await ScriptedTermuxSource(stdout=payload).list_all()

    async def test_failed_command_mentioning_permission(self, on_android):
        source = ScriptedTermuxSource(code=1, stderr="java.lang.SecurityException: Permission Denial")
        with pytest.raises(PermissionDeniedError):
            await source.list_all()

    async def test_other_failures(self, on_android):
        source = ScriptedTermuxSource(code=2, stderr="something else broke")
        with pytest.raises(MessageSourceError) as exc_info:
            await source.list_all()
        assert not isinstance(exc_info.value, PermissionDeniedError)

    async def test_request_permission_granted(self, on_android):
        source = ScriptedTermuxSource(stdout=json.dumps(TERMUX_INBOX[:1]))
        assert await source.request_permission() is True
        assert source.calls == [("-t", "inbox", "-n", "-l", "1")]

    async def test_request_permission_denied(self, on_android):
        payload = json.dumps({"error": "Permission denial"})
        assert await ScriptedTermuxSource(stdout=payload).request_permission() is False


class TestParseTermuxMessage:
    """Conversion of one Termux entry."""

    def test_received_is_local_time(self):
        message = parse_termux_message(TERMUX_INBOX[0])
        expected = int(datetime(2024, 6, 5, 10, 30, 0).timestamp() * 1000)
        assert message.timestamp_ms == expected

    def test_numeric_date_is_used_as_is(self):
        message = parse_termux_message({"_id": 1, "address": "SBI", "date": 1717581600000})
        assert message.timestamp_ms == 1717581600000
        assert message.address == "SBI"

    def test_bad_received_value(self):
        with pytest.raises(ValueError):
            parse_termux_message({"_id": 1, "received": "June 5th"})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
