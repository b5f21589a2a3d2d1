"""Quota ledger stored as records in the vector store.

Counters live next to the document chunks, keyed "user:<id>:<YYYY-MM-DD>"
with the key itself as record data. The read is a lexical lookup for the key
and the write replaces the whole record, so two concurrent turns of the
same user can both read the same count (last writer wins).
"""

import time
from datetime import date

from services.chat.QuotaLedgerInterface import QuotaLedgerInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig


class QuotaLedgerRAG(QuotaLedgerInterface):
    def __init__(self, helper_config: HelperConfig, rag_client: RAGClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client

    async def do_get(self, user_id: str, day: date) -> int | None:
        key = self.get_key(user_id, day)
        hits = await self._rag_client.do_query_data(key, top_k=1)
        if not hits:
            return None
        top_hit = hits[0]
        # the lookup is lexical, so the best match may be another user's record
        if top_hit.id != key or not top_hit.raw_metadata:
            return None
        count = top_hit.raw_metadata.get("messageCount")
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            return None
        return int(count)

    async def do_increment(self, user_id: str, day: date) -> int:
        key = self.get_key(user_id, day)
        count = (await self.do_get(user_id, day) or 0) + 1
        await self._rag_client.do_upsert_data(
            key,
            key,
            {"messageCount": count, "timestamp": int(time.time() * 1000)},
        )
        self.logging.debug("Quota ledger '%s' now at %d.", key, count)
        return count
