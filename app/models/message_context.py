"""
Canonical, platform-independent view of one inbound message
"""

from datetime import datetime, UTC
from typing import Optional

from pydantic import BaseModel, Field, computed_field

UNKNOWN_CHAT = "Unknown Chat"
UNKNOWN_USER = "Unknown User"


class MessageContext(BaseModel):
    """Ephemeral message produced by ingestion and consumed by keyword matching"""

    chat_id: int
    message_id: int
    text: str
    sender_id: int
    sender_name: Optional[str] = None
    chat_title: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    is_edit: bool = False

    @computed_field
    @property
    def length(self) -> int:
        return len(self.text)
