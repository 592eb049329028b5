"""
Tests for the keyword matching engine
"""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.models.keyword_match import KeywordMatch
from app.services.keyword_search_service import KeywordSearchService
from app.services.notification_service import KeywordNotificationDispatcher
from tests.test_utils import make_message, make_user, make_users_service


class TestKeywordSearchService:
    """Test class for per-user matching, recording and notification"""

    @pytest.fixture
    def ledger(self):
        ledger = MagicMock()
        ledger.record = AsyncMock(side_effect=lambda match: match)
        return ledger

    @pytest.fixture
    def dispatcher(self):
        dispatcher = MagicMock()
        dispatcher.notify = AsyncMock(return_value=1)
        return dispatcher

    def build(self, users, ledger, dispatcher):
        return KeywordSearchService(users=make_users_service(users), ledger=ledger, dispatcher=dispatcher)

    @pytest.mark.asyncio
    async def test_message_over_character_limit_is_excluded(self, ledger, dispatcher):
        user = make_user(101, keywords=["urgent"], character_limit=10)
        service = self.build([user], ledger, dispatcher)

        result = await service.evaluate(make_message("this is urgent and long"))

        assert result == []

    @pytest.mark.asyncio
    async def test_message_at_character_limit_is_included(self, ledger, dispatcher):
        text = "urgent now"
        user = make_user(101, keywords=["urgent"], character_limit=len(text))
        service = self.build([user], ledger, dispatcher)

        result = await service.evaluate(make_message(text))

        assert result == [(user, "urgent")]

    @pytest.mark.asyncio
    async def test_limit_is_applied_per_user(self, ledger, dispatcher):
        strict = make_user(101, keywords=["urgent"], character_limit=5)
        relaxed = make_user(102, keywords=["URGENT"], character_limit=500)
        service = self.build([strict, relaxed], ledger, dispatcher)

        result = await service.evaluate(make_message("this is urgent"))

        assert result == [(relaxed, "URGENT")]

    @pytest.mark.asyncio
    async def test_user_without_keywords_never_matches(self, ledger, dispatcher):
        service = self.build([make_user(101, keywords=[])], ledger, dispatcher)
        assert await service.evaluate(make_message("urgent")) == []

    @pytest.mark.asyncio
    async def test_one_pair_per_matching_keyword(self, ledger, dispatcher):
        user = make_user(101, keywords=["deploy", "urgent", "rollback"])
        service = self.build([user], ledger, dispatcher)

        result = await service.evaluate(make_message("urgent deploy"))

        assert [keyword for _, keyword in result] == ["deploy", "urgent"]

    @pytest.mark.asyncio
    async def test_evaluate_is_idempotent(self, ledger, dispatcher):
        users = [make_user(101, keywords=["urgent"]), make_user(102, keywords=["deploy"])]
        service = self.build(users, ledger, dispatcher)
        message = make_message("urgent deploy")

        first = await service.evaluate(message)
        second = await service.evaluate(message)

        assert first == second
        ledger.record.assert_not_called()
        dispatcher.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_for_one_user_does_not_affect_others(self, ledger, dispatcher):
        broken = make_user(101, keywords=["urgent"])
        healthy = make_user(102, keywords=["urgent"])
        service = self.build([broken, healthy], ledger, dispatcher)
        original = service.match_user

        def flaky_match_user(user, message):
            if user.user_id == 101:
                raise RuntimeError("boom")
            return original(user, message)

        service.match_user = flaky_match_user

        result = await service.evaluate(make_message("urgent"))

        assert result == [(healthy, "urgent")]

    @pytest.mark.asyncio
    async def test_process_message_records_and_notifies_each_match(self, ledger, dispatcher):
        first = make_user(101, keywords=["urgent", "deploy"])
        second = make_user(102, keywords=["deploy"])
        service = self.build([first, second], ledger, dispatcher)
        message = make_message("urgent deploy", chat_title="Ops", sender_name="Alice")

        matches = await service.process_message(message)

        assert len(matches) == 3
        assert all(isinstance(match, KeywordMatch) for match in matches)
        assert ledger.record.await_count == 3
        assert dispatcher.notify.await_count == 3
        recorded = {(call.args[0].user_id, call.args[0].keyword) for call in ledger.record.await_args_list}
        assert recorded == {(101, "urgent"), (101, "deploy"), (102, "deploy")}
        match = next(m for m in matches if m.user_id == 102)
        assert match.chat_title == "Ops"
        assert match.sender_name == "Alice"
        assert match.message_length == len("urgent deploy")

    @pytest.mark.asyncio
    async def test_failed_ledger_write_still_notifies(self, ledger, dispatcher):
        ledger.record = AsyncMock(side_effect=RuntimeError("write failed"))
        user = make_user(101, keywords=["urgent"])
        service = self.build([user], ledger, dispatcher)

        matches = await service.process_message(make_message("urgent"))

        assert len(matches) == 1
        dispatcher.notify.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_destination_does_not_affect_ledger_or_other_destinations(self, ledger):
        def send(chat_id, text):
            if chat_id == 101:
                raise RuntimeError("chat not found")
            return True

        sender = MagicMock()
        sender.send_message = AsyncMock(side_effect=send)
        user = make_user(1, keywords=["urgent"], notification_groups=[101, 102])
        service = self.build([user], ledger, KeywordNotificationDispatcher(notification_service=sender))

        matches = await service.process_message(make_message("urgent"))

        assert len(matches) == 1
        ledger.record.assert_awaited_once()
        attempted = [call.args[0] for call in sender.send_message.await_args_list]
        assert sorted(attempted) == [101, 102]

    @pytest.mark.asyncio
    async def test_edited_message_match_is_logged_as_edit(self, ledger, dispatcher, caplog):
        user = make_user(101, keywords=["urgent"])
        service = self.build([user], ledger, dispatcher)

        with caplog.at_level(logging.INFO, logger="app.services.keyword_search_service"):
            await service.process_message(make_message("urgent", is_edit=True))

        assert "found in edited message: 'urgent' for user 101" in caplog.text
        dispatcher.notify.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_directory_failure_yields_no_matches(self, ledger, dispatcher):
        users = MagicMock()
        users.get_active_users = AsyncMock(side_effect=RuntimeError("db down"))
        service = KeywordSearchService(users=users, ledger=ledger, dispatcher=dispatcher)

        assert await service.process_message(make_message("urgent")) == []
        ledger.record.assert_not_called()
