"""
Telegram login handshake (phone number, login code, optional two-step password).

The in-progress state of one login lives in an ``AuthFlow`` handle that the
caller keeps (the bot stores it in the per-user ``context.user_data``). The
service itself holds no per-user state.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from telethon import TelegramClient, errors
from telethon.sessions import StringSession

from app.core.config import settings
from app.exceptions import AuthenticationError, PasswordRequiredError
from app.services.auth_session_service import AuthSessionService, auth_session_service
from app.services.user_service import UserService, user_service, validate_phone_number

logger = logging.getLogger(__name__)


class AuthStep(str, Enum):
    PHONE = "phone"
    CODE = "code"
    PASSWORD = "password"
    DONE = "done"


@dataclass
class AuthFlow:
    """Handle for one in-progress login"""

    telegram_id: int
    phone_number: Optional[str] = None
    step: AuthStep = AuthStep.PHONE
    client: Optional[TelegramClient] = None
    phone_code_hash: Optional[str] = None


def _default_client_factory() -> TelegramClient:
    return TelegramClient(
        StringSession(), settings.TELEGRAM_API_ID, settings.TELEGRAM_API_HASH, connection_retries=5
    )


class TelegramAuthService:
    """Drives Telethon's login for a bot user and stores the resulting session"""

    def __init__(
        self,
        users: Optional[UserService] = None,
        sessions: Optional[AuthSessionService] = None,
        client_factory: Callable[[], TelegramClient] = _default_client_factory,
    ) -> None:
        self.users = users or user_service
        self.sessions = sessions or auth_session_service
        self.client_factory = client_factory

    def begin(self, telegram_id: int) -> AuthFlow:
        """Create a flow waiting for the phone number"""
        return AuthFlow(telegram_id=telegram_id)

    async def start_authentication(self, flow: AuthFlow, phone_number: str) -> AuthFlow:
        """Validate the phone number and ask Telegram to send a login code"""
        flow.phone_number = validate_phone_number(phone_number)
        client = self.client_factory()
        try:
            await client.connect()
            sent = await client.send_code_request(flow.phone_number)
        except errors.PhoneNumberInvalidError as e:
            await self._disconnect(client)
            raise AuthenticationError("Telegram rejected this phone number.", e) from e
        except Exception as e:
            await self._disconnect(client)
            logger.error("Failed to start authentication for user %s: %s", flow.telegram_id, e)
            raise AuthenticationError("Could not request a login code. Please try again later.", e) from e

        flow.client = client
        flow.phone_code_hash = sent.phone_code_hash
        flow.step = AuthStep.CODE
        logger.info("Started authentication for user %s", flow.telegram_id)
        return flow

    async def submit_code(self, flow: AuthFlow, code: str) -> str:
        """Sign in with the login code; returns the session string on success"""
        if flow.step != AuthStep.CODE or flow.client is None:
            raise AuthenticationError("No login in progress. Use /login to start.")

        code = code.strip().replace(" ", "").replace("-", "")
        try:
            await flow.client.sign_in(phone=flow.phone_number, code=code, phone_code_hash=flow.phone_code_hash)
        except errors.SessionPasswordNeededError:
            flow.step = AuthStep.PASSWORD
            raise PasswordRequiredError()
        except (errors.PhoneCodeInvalidError, errors.PhoneCodeEmptyError) as e:
            raise AuthenticationError("The code is invalid. Please send the code again.", e) from e
        except errors.PhoneCodeExpiredError as e:
            await self.cancel(flow)
            raise AuthenticationError("The code has expired. Please start again with /login.", e) from e
        except Exception as e:
            logger.error("Phone code authentication failed for user %s: %s", flow.telegram_id, e)
            await self.cancel(flow)
            raise AuthenticationError("Authentication failed. Please try again with /login.", e) from e

        return await self._complete(flow)

    async def submit_password(self, flow: AuthFlow, password: str) -> str:
        """Finish a login that requires the two-step verification password"""
        if flow.step != AuthStep.PASSWORD or flow.client is None:
            raise AuthenticationError("No password is expected. Use /login to start.")

        try:
            await flow.client.sign_in(password=password)
        except errors.PasswordHashInvalidError as e:
            raise AuthenticationError("Wrong password. Please try again.", e) from e
        except Exception as e:
            logger.error("Password authentication failed for user %s: %s", flow.telegram_id, e)
            await self.cancel(flow)
            raise AuthenticationError("Authentication failed. Please try again with /login.", e) from e

        return await self._complete(flow)

    async def _complete(self, flow: AuthFlow) -> str:
        client = flow.client
        try:
            me = await client.get_me()
            if me is None or me.id != flow.telegram_id:
                raise AuthenticationError("This phone number belongs to a different Telegram account.")

            session_string = client.session.save()
            stored = await self.sessions.save_session(flow.telegram_id, flow.phone_number, session_string)
            await self.users.mark_authenticated(flow.telegram_id, flow.phone_number, stored.session_string)
        except AuthenticationError:
            await self.cancel(flow)
            raise
        except Exception as e:
            logger.error("Failed to store session for user %s: %s", flow.telegram_id, e)
            await self.cancel(flow)
            raise AuthenticationError("An error occurred during authentication. Please try again with /login.", e) from e

        await self._disconnect(client)
        flow.client = None
        flow.step = AuthStep.DONE
        logger.info("User %s authenticated successfully", flow.telegram_id)
        return session_string

    async def cancel(self, flow: AuthFlow) -> None:
        """Abort the flow and release its client"""
        if flow.client is not None:
            await self._disconnect(flow.client)
        flow.client = None
        flow.step = AuthStep.DONE
        logger.info("Authentication cancelled for user %s", flow.telegram_id)

    async def logout(self, telegram_id: int) -> bool:
        """Deactivate the stored session and the user"""
        await self.sessions.deactivate_session(telegram_id)
        return await self.users.logout(telegram_id)

    @staticmethod
    async def _disconnect(client: TelegramClient) -> None:
        try:
            await client.disconnect()
        except Exception as e:
            logger.warning("Error disconnecting auth client: %s", e)


# Global instance
auth_service = TelegramAuthService()
