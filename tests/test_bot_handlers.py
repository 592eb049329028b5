"""
Tests for bot command and login handlers
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.bot import auth_handlers, command_handlers
from app.exceptions import AuthenticationError, InvalidCharacterLimitError, PasswordRequiredError
from app.models.keyword_match import KeywordCount, MatchStats
from app.services.auth_service import AuthFlow, AuthStep
from tests.test_utils import make_user


def make_update(user_id: int = 101, text: str = ""):
    update = MagicMock()
    update.effective_user.id = user_id
    update.message.text = text
    update.message.reply_text = AsyncMock()
    update.message.delete = AsyncMock()
    update.effective_chat.send_message = AsyncMock()
    return update


def make_context(args=None, user_data=None):
    context = MagicMock()
    context.args = args or []
    context.user_data = {} if user_data is None else user_data
    return context


def replied(update) -> str:
    return update.message.reply_text.await_args.args[0]


class TestCommandHandlers:
    """Keyword, limit, destination, status and stats commands"""

    @pytest.mark.asyncio
    @patch("app.bot.command_handlers.user_service")
    async def test_commands_require_login(self, mock_user_service):
        mock_user_service.get_user = AsyncMock(return_value=None)
        mock_user_service.add_keyword = AsyncMock()
        update = make_update()

        await command_handlers.add_keyword_command(update, make_context(["urgent"]))

        assert replied(update) == "Please login first using /login"
        mock_user_service.add_keyword.assert_not_called()

    @pytest.mark.asyncio
    @patch("app.bot.command_handlers.user_service")
    async def test_logged_out_user_is_asked_to_login(self, mock_user_service):
        mock_user_service.get_user = AsyncMock(return_value=make_user(101, is_authenticated=False))
        update = make_update()

        await command_handlers.list_keywords_command(update, make_context())

        assert replied(update) == "Please login first using /login"

    @pytest.mark.asyncio
    @patch("app.bot.command_handlers.user_service")
    async def test_add_keyword_joins_arguments(self, mock_user_service):
        mock_user_service.get_user = AsyncMock(return_value=make_user(101))
        mock_user_service.add_keyword = AsyncMock(return_value=True)
        update = make_update()

        await command_handlers.add_keyword_command(update, make_context(["urgent", "meeting"]))

        mock_user_service.add_keyword.assert_awaited_once_with(101, "urgent meeting")
        assert "added successfully" in replied(update)

    @pytest.mark.asyncio
    @patch("app.bot.command_handlers.user_service")
    async def test_add_keyword_without_argument(self, mock_user_service):
        mock_user_service.get_user = AsyncMock()
        update = make_update()

        await command_handlers.add_keyword_command(update, make_context())

        assert "Usage: /addkeyword" in replied(update)
        mock_user_service.get_user.assert_not_called()

    @pytest.mark.asyncio
    @patch("app.bot.command_handlers.user_service")
    async def test_duplicate_keyword(self, mock_user_service):
        mock_user_service.get_user = AsyncMock(return_value=make_user(101, keywords=["urgent"]))
        mock_user_service.add_keyword = AsyncMock(return_value=False)
        update = make_update()

        await command_handlers.add_keyword_command(update, make_context(["URGENT"]))

        assert "already in your list" in replied(update)

    @pytest.mark.asyncio
    @patch("app.bot.command_handlers.user_service")
    async def test_list_keywords(self, mock_user_service):
        mock_user_service.get_user = AsyncMock(return_value=make_user(101, keywords=["urgent", "deploy"]))
        update = make_update()

        await command_handlers.list_keywords_command(update, make_context())

        assert "1. urgent\n2. deploy" in replied(update)

    @pytest.mark.asyncio
    @patch("app.bot.command_handlers.user_service")
    async def test_set_limit_rejects_out_of_range(self, mock_user_service):
        mock_user_service.get_user = AsyncMock(return_value=make_user(101))
        mock_user_service.set_character_limit = AsyncMock(
            side_effect=InvalidCharacterLimitError("Character limit must be between 1 and 1000, got 0.")
        )
        update = make_update()

        await command_handlers.set_limit_command(update, make_context(["0"]))

        assert replied(update) == "Character limit must be between 1 and 1000, got 0."

    @pytest.mark.asyncio
    @patch("app.bot.command_handlers.user_service")
    async def test_set_limit(self, mock_user_service):
        mock_user_service.get_user = AsyncMock(return_value=make_user(101))
        mock_user_service.set_character_limit = AsyncMock(return_value=250)
        update = make_update()

        await command_handlers.set_limit_command(update, make_context(["250"]))

        mock_user_service.set_character_limit.assert_awaited_once_with(101, "250")
        assert "250" in replied(update)

    @pytest.mark.asyncio
    @patch("app.bot.command_handlers.user_service")
    async def test_set_groups_passes_every_argument(self, mock_user_service):
        mock_user_service.get_user = AsyncMock(return_value=make_user(101))
        mock_user_service.set_notification_groups = AsyncMock(return_value=[-100, 200])
        update = make_update()

        await command_handlers.set_groups_command(update, make_context(["-100", "200"]))

        mock_user_service.set_notification_groups.assert_awaited_once_with(101, ["-100", "200"])
        assert "-100, 200" in replied(update)

    @pytest.mark.asyncio
    @patch("app.bot.command_handlers.user_service")
    async def test_list_groups_without_destinations(self, mock_user_service):
        mock_user_service.get_user = AsyncMock(return_value=make_user(101, notification_groups=[]))
        update = make_update()

        await command_handlers.list_groups_command(update, make_context())

        assert "sent to you directly" in replied(update)

    @pytest.mark.asyncio
    @patch("app.bot.command_handlers.user_service")
    async def test_status(self, mock_user_service):
        mock_user_service.get_user = AsyncMock(
            return_value=make_user(101, keywords=["a", "b"], character_limit=300, notification_groups=[-100])
        )
        update = make_update()

        await command_handlers.status_command(update, make_context())

        text = replied(update)
        assert "✅ Authenticated" in text
        assert "Monitored keywords: 2" in text
        assert "Character limit: 300" in text
        assert "-100" in text

    @pytest.mark.asyncio
    @patch("app.bot.command_handlers.keyword_match_service")
    @patch("app.bot.command_handlers.user_service")
    async def test_stats(self, mock_user_service, mock_match_service):
        mock_user_service.get_user = AsyncMock(return_value=make_user(101))
        mock_match_service.aggregate_stats = AsyncMock(
            return_value=MatchStats(
                total_matches=3,
                average_message_length=10,
                top_keywords=[KeywordCount(keyword="a", count=2), KeywordCount(keyword="b", count=1)],
                days=14,
            )
        )
        update = make_update()

        await command_handlers.stats_command(update, make_context(["14"]))

        mock_match_service.aggregate_stats.assert_awaited_once_with(101, 14)
        text = replied(update)
        assert "Total matches: 3" in text
        assert "1. a: 2\n2. b: 1" in text

    @pytest.mark.asyncio
    async def test_stats_rejects_invalid_days(self):
        update = make_update()

        await command_handlers.stats_command(update, make_context(["soon"]))

        assert "Usage: /stats" in replied(update)


class TestAuthHandlers:
    """Login flow driven by plain text replies"""

    @pytest.mark.asyncio
    @patch("app.bot.auth_handlers.auth_service")
    async def test_login_starts_flow(self, mock_auth_service):
        flow = AuthFlow(telegram_id=101)
        mock_auth_service.begin.return_value = flow
        context = make_context()
        update = make_update()

        await auth_handlers.login_command(update, context)

        assert context.user_data[auth_handlers.AUTH_FLOW_KEY] is flow
        assert "phone number" in replied(update)

    @pytest.mark.asyncio
    @patch("app.bot.auth_handlers.auth_service")
    async def test_text_without_flow_is_ignored(self, mock_auth_service):
        update = make_update(text="hello")

        await auth_handlers.handle_message(update, make_context())

        update.message.reply_text.assert_not_called()

    @pytest.mark.asyncio
    @patch("app.bot.auth_handlers.auth_service")
    async def test_phone_step_requests_code(self, mock_auth_service):
        flow = AuthFlow(telegram_id=101)
        mock_auth_service.start_authentication = AsyncMock(return_value=flow)
        context = make_context(user_data={auth_handlers.AUTH_FLOW_KEY: flow})
        update = make_update(text="+15550001")

        await auth_handlers.handle_message(update, context)

        mock_auth_service.start_authentication.assert_awaited_once_with(flow, "+15550001")
        assert "login code" in replied(update)

    @pytest.mark.asyncio
    @patch("app.bot.auth_handlers.get_telegram_service")
    @patch("app.bot.auth_handlers.auth_service")
    async def test_code_step_completes_login_and_starts_monitoring(self, mock_auth_service, mock_get_service):
        flow = AuthFlow(telegram_id=101, step=AuthStep.CODE)
        mock_auth_service.submit_code = AsyncMock(return_value="plain-session")
        telegram_service = MagicMock()
        telegram_service.ensure_monitoring = AsyncMock(return_value=True)
        mock_get_service.return_value = telegram_service
        context = make_context(user_data={auth_handlers.AUTH_FLOW_KEY: flow})
        update = make_update(text="1 2 3 4 5")

        await auth_handlers.handle_message(update, context)

        assert auth_handlers.AUTH_FLOW_KEY not in context.user_data
        assert "Successfully logged in" in replied(update)
        telegram_service.ensure_monitoring.assert_awaited_once_with("plain-session")

    @pytest.mark.asyncio
    @patch("app.bot.auth_handlers.auth_service")
    async def test_code_step_asks_for_password(self, mock_auth_service):
        flow = AuthFlow(telegram_id=101, step=AuthStep.CODE)
        mock_auth_service.submit_code = AsyncMock(side_effect=PasswordRequiredError())
        context = make_context(user_data={auth_handlers.AUTH_FLOW_KEY: flow})
        update = make_update(text="12345")

        await auth_handlers.handle_message(update, context)

        assert context.user_data[auth_handlers.AUTH_FLOW_KEY] is flow
        assert "password" in replied(update)

    @pytest.mark.asyncio
    @patch("app.bot.auth_handlers.auth_service")
    async def test_failed_code_keeps_flow_when_retry_is_possible(self, mock_auth_service):
        flow = AuthFlow(telegram_id=101, step=AuthStep.CODE)
        mock_auth_service.submit_code = AsyncMock(side_effect=AuthenticationError("The code is invalid."))
        context = make_context(user_data={auth_handlers.AUTH_FLOW_KEY: flow})
        update = make_update(text="00000")

        await auth_handlers.handle_message(update, context)

        assert context.user_data[auth_handlers.AUTH_FLOW_KEY] is flow
        assert replied(update) == "The code is invalid."

    @pytest.mark.asyncio
    @patch("app.bot.auth_handlers.auth_service")
    async def test_cancel(self, mock_auth_service):
        flow = AuthFlow(telegram_id=101, step=AuthStep.CODE)
        mock_auth_service.cancel = AsyncMock()
        context = make_context(user_data={auth_handlers.AUTH_FLOW_KEY: flow})
        update = make_update()

        await auth_handlers.cancel_command(update, context)

        mock_auth_service.cancel.assert_awaited_once_with(flow)
        assert context.user_data == {}
        assert replied(update) == "Login cancelled."

    @pytest.mark.asyncio
    @patch("app.bot.auth_handlers.auth_service")
    async def test_logout(self, mock_auth_service):
        mock_auth_service.logout = AsyncMock(return_value=True)
        update = make_update()

        await auth_handlers.logout_command(update, make_context())

        mock_auth_service.logout.assert_awaited_once_with(101)
        assert replied(update) == "Successfully logged out!"
