"""Tests for the quota ledger and the chat turn orchestration."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from services.chat.ChatService import ChatService
from services.chat.QuotaLedgerRAG import QuotaLedgerRAG
from services.chat.RetrievalService import RetrievalResult
from shared.errors import QuotaExceededError
from shared.models.caller import Caller

DAY = date(2024, 5, 1)
USER = Caller(user_id="user-1", role="employee")
ADMIN = Caller(user_id="admin-1", role="admin")
MESSAGES = [{"role": "user", "content": "model: 450K pump?"}]


@pytest.fixture
def retrieval_service():
    service = MagicMock()
    service.do_retrieve = AsyncMock(return_value=RetrievalResult(context="CTX", hits=[]))
    return service


@pytest.fixture
def completion_service():
    service = MagicMock()
    service.do_complete = AsyncMock(return_value="The pump is part RE1.")
    return service


@pytest.fixture
def make_chat_service(helper_config, rag_store, retrieval_service, completion_service):
    def factory(quota_ledger=None, today=lambda: DAY) -> ChatService:
        return ChatService(
            helper_config,
            quota_ledger=quota_ledger or QuotaLedgerRAG(helper_config, rag_store),
            retrieval_service=retrieval_service,
            completion_service=completion_service,
            today=today,
        )
    return factory


class TestQuotaLedgerRAG:
    @pytest.mark.asyncio
    async def test_first_increment_creates_record(self, helper_config, rag_store):
        ledger = QuotaLedgerRAG(helper_config, rag_store)

        count = await ledger.do_increment("user-1", DAY)

        assert count == 1
        record = rag_store.records["user:user-1:2024-05-01"]
        assert record["data"] == "user:user-1:2024-05-01"
        assert record["metadata"]["messageCount"] == 1
        assert isinstance(record["metadata"]["timestamp"], int)

    @pytest.mark.asyncio
    async def test_increments_accumulate(self, helper_config, rag_store):
        ledger = QuotaLedgerRAG(helper_config, rag_store)

        for _ in range(3):
            await ledger.do_increment("user-1", DAY)

        assert await ledger.do_get("user-1", DAY) == 3

    @pytest.mark.asyncio
    async def test_other_users_count_is_ignored(self, helper_config, rag_store):
        ledger = QuotaLedgerRAG(helper_config, rag_store)
        for _ in range(4):
            await ledger.do_increment("user-2", DAY)

        assert await ledger.do_get("user-1", DAY) is None
        assert await ledger.do_increment("user-1", DAY) == 1

    @pytest.mark.asyncio
    async def test_days_are_counted_separately(self, helper_config, rag_store):
        ledger = QuotaLedgerRAG(helper_config, rag_store)
        await ledger.do_increment("user-1", DAY)

        assert await ledger.do_increment("user-1", date(2024, 5, 2)) == 1

    def test_key_format(self, helper_config, rag_store):
        assert QuotaLedgerRAG(helper_config, rag_store).get_key("u_42", DAY) == "user:u_42:2024-05-01"


class TestQuotaGate:
    @pytest.mark.asyncio
    async def test_fifth_message_accepted_sixth_rejected(self, make_chat_service):
        service = make_chat_service()

        for _ in range(5):
            assert await service.do_chat(USER, MESSAGES) == "The pump is part RE1."

        with pytest.raises(QuotaExceededError) as exc_info:
            await service.do_chat(USER, MESSAGES)

        assert str(exc_info.value) == "Message limit reached for today. Contact an admin for unlimited messages."
        assert exc_info.value.message_count == 6

    @pytest.mark.asyncio
    async def test_rejected_turn_still_consumes_a_slot(self, make_chat_service, helper_config, rag_store):
        service = make_chat_service()
        for _ in range(5):
            await service.do_chat(USER, MESSAGES)

        for _ in range(2):
            with pytest.raises(QuotaExceededError):
                await service.do_chat(USER, MESSAGES)

        assert await QuotaLedgerRAG(helper_config, rag_store).do_get(USER.user_id, DAY) == 7

    @pytest.mark.asyncio
    async def test_admin_is_never_limited(self, make_chat_service, rag_store):
        service = make_chat_service()

        for _ in range(7):
            await service.do_chat(ADMIN, MESSAGES)

        assert rag_store.records == {}

    @pytest.mark.asyncio
    async def test_new_day_resets_the_limit(self, make_chat_service):
        days = iter([DAY] * 6 + [date(2024, 5, 2)])
        service = make_chat_service(today=lambda: next(days))
        for _ in range(5):
            await service.do_chat(USER, MESSAGES)
        with pytest.raises(QuotaExceededError):
            await service.do_chat(USER, MESSAGES)

        assert await service.do_chat(USER, MESSAGES) == "The pump is part RE1."

    @pytest.mark.asyncio
    async def test_ledger_failure_does_not_block_the_turn(self, make_chat_service):
        ledger = MagicMock()
        ledger.do_increment = AsyncMock(side_effect=ConnectionError("store down"))
        service = make_chat_service(quota_ledger=ledger)

        assert await service.do_chat(USER, MESSAGES) == "The pump is part RE1."

    @pytest.mark.asyncio
    async def test_limit_is_configurable(self, make_chat_service, monkeypatch):
        monkeypatch.setenv("CHAT_MAX_MESSAGES_PER_DAY", "1")
        service = make_chat_service()
        await service.do_chat(USER, MESSAGES)

        with pytest.raises(QuotaExceededError):
            await service.do_chat(USER, MESSAGES)


class TestChatTurn:
    @pytest.mark.asyncio
    async def test_retrieval_uses_last_message(self, make_chat_service, retrieval_service, completion_service):
        messages = [
            {"role": "user", "content": "first question"},
            {"role": "assistant", "content": "first answer"},
            {"role": "user", "content": "model: 450K follow-up"},
        ]

        await make_chat_service().do_chat(USER, messages)

        retrieval_service.do_retrieve.assert_awaited_once_with("model: 450K follow-up")
        completion_service.do_complete.assert_awaited_once_with(messages, "CTX")

    @pytest.mark.asyncio
    async def test_rejected_turn_skips_retrieval(self, make_chat_service, retrieval_service, monkeypatch):
        monkeypatch.setenv("CHAT_MAX_MESSAGES_PER_DAY", "0")

        with pytest.raises(QuotaExceededError):
            await make_chat_service().do_chat(USER, MESSAGES)

        retrieval_service.do_retrieve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_conversation_is_rejected(self, make_chat_service):
        with pytest.raises(ValueError):
            await make_chat_service().do_chat(USER, [])
