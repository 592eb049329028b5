"""
Translation of raw Telethon messages into ``MessageContext``.

This is the only place that touches untyped message attributes. A message
without a chat id, message id, sender id or text body (media, service
messages) is not applicable and yields ``None``.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from app.models.message_context import MessageContext


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def normalize_message(
    raw: Any,
    timestamp: Optional[datetime] = None,
    chat_title: Optional[str] = None,
    sender_name: Optional[str] = None,
    is_edit: bool = False,
) -> Optional[MessageContext]:
    if raw is None:
        return None

    text = getattr(raw, "message", None)
    if not isinstance(text, str) or not text:
        return None

    chat_id = _as_int(getattr(raw, "chat_id", None))
    message_id = _as_int(getattr(raw, "id", None))
    sender_id = _as_int(getattr(raw, "sender_id", None))
    if chat_id is None or message_id is None or sender_id is None:
        return None

    return MessageContext(
        chat_id=chat_id,
        message_id=message_id,
        text=text,
        sender_id=sender_id,
        chat_title=chat_title,
        sender_name=sender_name,
        timestamp=timestamp or datetime.now(timezone.utc),
        is_edit=is_edit,
    )
