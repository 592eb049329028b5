"""
Services package.

The monitoring facade is created lazily so importing a service module never
builds a Telethon client or pulls in the ingestion chain.
"""

_telegram_service = None


def get_telegram_service():
    """Process-wide monitoring facade shared by the lifespan and the login flow"""
    global _telegram_service
    if _telegram_service is None:
        from app.services.telegram import TelegramService

        _telegram_service = TelegramService()
    return _telegram_service
