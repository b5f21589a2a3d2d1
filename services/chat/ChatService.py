"""Chat turn orchestration.

One turn is strictly sequential: quota gate, retrieval on the latest user
utterance, completion over the whole conversation.
"""

from datetime import date, datetime, timezone
from typing import Callable

from services.chat.CompletionService import CompletionService
from services.chat.QuotaLedgerInterface import QuotaLedgerInterface
from services.chat.RetrievalService import RetrievalService
from shared.errors import QuotaExceededError
from shared.helper.HelperConfig import HelperConfig
from shared.models.caller import Caller


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class ChatService:
    def __init__(
        self,
        helper_config: HelperConfig,
        quota_ledger: QuotaLedgerInterface,
        retrieval_service: RetrievalService,
        completion_service: CompletionService,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._quota_ledger = quota_ledger
        self._retrieval_service = retrieval_service
        self._completion_service = completion_service
        self._today = today
        self.max_messages_per_day = int(helper_config.get_number_val("CHAT_MAX_MESSAGES_PER_DAY", default=5))

    ##########################################
    ################# CHAT ###################
    ##########################################

    async def do_chat(self, caller: Caller, messages: list[dict]) -> str:
        """Answer the latest message of a conversation.

        Args:
            caller (Caller): The requesting user.
            messages (list[dict]): Role/content turns, the last one being the user's question.

        Returns:
            str: The assistant reply.

        Raises:
            ValueError: If messages is empty.
            QuotaExceededError: If a non-admin caller used up today's allowance.
            UpstreamRequestError: If the vector store or the LLM fails.
        """
        if not messages:
            raise ValueError("At least one message is required.")

        await self._do_check_quota(caller)

        utterance = messages[-1]["content"]
        retrieval = await self._retrieval_service.do_retrieve(utterance)
        self.logging.info(
            "Retrieved %d hit(s) for user '%s'%s.",
            len(retrieval.hits), caller.user_id, " via keyword fallback" if retrieval.used_fallback else "",
        )
        return await self._completion_service.do_complete(messages, retrieval.context)

    async def _do_check_quota(self, caller: Caller) -> None:
        """Count this turn against the caller's daily allowance.

        The count is incremented before it is compared, so a rejected turn
        still uses up a slot. A failing ledger does not block the turn.

        Raises:
            QuotaExceededError: If the new count exceeds the daily limit.
        """
        if caller.is_admin():
            self.logging.debug("Admin '%s' bypasses the message quota.", caller.user_id)
            return

        try:
            count = await self._quota_ledger.do_increment(caller.user_id, self._today())
        except Exception as exc:
            self.logging.error("Quota ledger unavailable for user '%s': %s. Continuing without limit.", caller.user_id, exc)
            return

        if count > self.max_messages_per_day:
            self.logging.warning(
                "User '%s' reached the daily limit (%d/%d).", caller.user_id, count, self.max_messages_per_day
            )
            raise QuotaExceededError(caller.user_id, count, self.max_messages_per_day)
        self.logging.info("User '%s' message %d/%d today.", caller.user_id, count, self.max_messages_per_day)
