"""
Ledger entry for a single keyword match of a single user against a single message
"""

from datetime import datetime, UTC
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.message_context import MessageContext


class KeywordMatch(BaseModel):
    """One persisted keyword match"""

    id: Optional[str] = None
    user_id: int  # Telegram user ID of the owning tenant
    keyword: str  # Original casing as configured by the user
    message: str
    chat_id: int
    message_id: int
    chat_title: Optional[str] = None
    sender_name: Optional[str] = None
    message_length: int
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_message(cls, user_id: int, keyword: str, message: MessageContext) -> "KeywordMatch":
        return cls(
            user_id=user_id,
            keyword=keyword,
            message=message.text,
            chat_id=message.chat_id,
            message_id=message.message_id,
            chat_title=message.chat_title,
            sender_name=message.sender_name,
            message_length=message.length,
        )

    @classmethod
    def from_document(cls, doc: dict) -> "KeywordMatch":
        doc = dict(doc)
        if "_id" in doc:
            doc["id"] = str(doc.pop("_id"))
        return cls(**doc)


class KeywordCount(BaseModel):
    keyword: str
    count: int


class MatchStats(BaseModel):
    """Aggregated statistics over a trailing window"""

    total_matches: int = 0
    average_message_length: int = 0
    top_keywords: List[KeywordCount] = []
    active_users: Optional[int] = None  # Only filled for global statistics
    days: int = 7
