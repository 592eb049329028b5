"""
Tests for raw message normalization
"""

from datetime import datetime, timezone
from types import SimpleNamespace

from app.services.telegram.message_normalizer import normalize_message


def raw_message(**overrides):
    data = {"message": "hello there", "chat_id": -1001, "id": 5, "sender_id": 77}
    data.update(overrides)
    return SimpleNamespace(**data)


class TestNormalizeMessage:
    def test_complete_message(self):
        timestamp = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        message = normalize_message(raw_message(), timestamp=timestamp, chat_title="Chat", sender_name="Bob")

        assert message.chat_id == -1001
        assert message.message_id == 5
        assert message.sender_id == 77
        assert message.text == "hello there"
        assert message.length == len("hello there")
        assert message.chat_title == "Chat"
        assert message.sender_name == "Bob"
        assert message.timestamp == timestamp
        assert message.is_edit is False

    def test_timestamp_defaults_to_now(self):
        before = datetime.now(timezone.utc)
        message = normalize_message(raw_message())
        assert message.timestamp >= before

    def test_edit_flag(self):
        assert normalize_message(raw_message(), is_edit=True).is_edit is True

    def test_none_is_not_applicable(self):
        assert normalize_message(None) is None

    def test_media_without_text_is_not_applicable(self):
        assert normalize_message(raw_message(message="")) is None
        assert normalize_message(raw_message(message=None)) is None

    def test_missing_identifiers_are_not_applicable(self):
        assert normalize_message(raw_message(chat_id=None)) is None
        assert normalize_message(raw_message(id=None)) is None
        assert normalize_message(raw_message(sender_id=None)) is None
