"""
Tenant record for a monitored Telegram account
"""

from datetime import datetime, UTC
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.services.keyword_matcher import normalize_keywords

MIN_CHARACTER_LIMIT = 1
MAX_CHARACTER_LIMIT = 1000
DEFAULT_CHARACTER_LIMIT = 100


class User(BaseModel):
    """Authenticated end user whose keywords are monitored"""

    id: Optional[str] = None
    user_id: int  # Telegram user ID
    phone_number: Optional[str] = None
    is_authenticated: bool = False
    session_string: Optional[str] = None  # Opaque, encrypted by the auth service

    keywords: List[str] = []
    character_limit: int = Field(
        default=DEFAULT_CHARACTER_LIMIT, ge=MIN_CHARACTER_LIMIT, le=MAX_CHARACTER_LIMIT
    )
    notification_groups: List[int] = []  # Ordered destination chat IDs

    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("keywords")
    @classmethod
    def deduplicate_keywords(cls, keywords: List[str]) -> List[str]:
        return normalize_keywords(keywords)

    @property
    def notification_targets(self) -> List[int]:
        """Destinations for alerts; the user's own chat when none are configured"""
        return list(self.notification_groups) or [self.user_id]

    @classmethod
    def from_document(cls, doc: dict) -> "User":
        doc = dict(doc)
        if "_id" in doc:
            doc["id"] = str(doc.pop("_id"))
        return cls(**doc)
