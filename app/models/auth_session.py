from datetime import datetime, UTC
from typing import Optional

from pydantic import BaseModel, Field


class AuthSession(BaseModel):
    """Stored Telethon session for a user; latest login replaces the previous one"""

    id: Optional[str] = None
    user_id: int
    phone_number: str
    session_string: str  # Encrypted StringSession
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
