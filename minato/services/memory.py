"""Memory subsystem: semantic recall plus durable conversation records.

* **Recall** queries the client's vector collection and orders the matches
  by ascending cosine distance, so the most relevant recollection comes
  first.
* **Persistence** writes two things once a run has produced an answer: a
  first-person recollection of the exchange (generated by the fast model,
  stored in the vector store for future recall) and the user/assistant
  turns of the run (stored in the document store).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from langchain_core.messages import BaseMessage

from minato.history import MessageHistory
from minato.prompts import CORTEX_PROMPT
from minato.services.document_store import DocumentStore
from minato.services.llm import CompletionService
from minato.services.vector_store import ChromaVectorStore

logger = logging.getLogger(__name__)

MEMORY_KIND = "memory"


@dataclass(frozen=True)
class Recollection:
    text: str
    distance: float


def rank_by_distance(recollections: list[Recollection]) -> list[Recollection]:
    """Most relevant first: smallest distance leads, ties keep store order."""
    return sorted(recollections, key=lambda r: r.distance)


class MemoryService:
    """Recall and persistence for one deployment, partitioned by client id."""

    def __init__(
        self,
        vector_store: ChromaVectorStore,
        document_store: DocumentStore,
        completions: CompletionService,
    ) -> None:
        self._vectors = vector_store
        self._documents = document_store
        self._completions = completions

    # ── Recall ───────────────────────────────────────────────────────

    def recall(
        self,
        client_id: str,
        kind: str,
        query_text: str,
        limit: int,
    ) -> list[Recollection]:
        matches = self._vectors.query_similar(client_id, kind, query_text, limit)
        recollections = rank_by_distance(
            [Recollection(text=m.text, distance=m.distance) for m in matches]
        )
        logger.debug(
            "Recall for client %s (%s): %d candidate(s)", client_id, kind, len(recollections),
        )
        return recollections

    # ── Persistence ──────────────────────────────────────────────────

    def persist_memory(self, client_id: str, text: str, kind: str = MEMORY_KIND) -> str:
        return self._vectors.upsert_document(client_id, kind, text)

    def persist_conversation(self, client_id: str, messages: list[BaseMessage]) -> int:
        """Store the user/assistant turns of *messages*; system notes are dropped."""
        turns = MessageHistory(messages).conversational_turns()
        return self._documents.insert_conversation(client_id, turns)

    def list_conversations(self, client_id: str) -> list[dict]:
        return self._documents.list_conversations(client_id)

    def compose_recollection(self, user_text: str, answer: str) -> str:
        """Ask the fast model to restate the exchange as a first-person memory."""
        exchange = json.dumps({"user": user_text, "assistant": answer}, ensure_ascii=False)
        recollection = self._completions.instruct(CORTEX_PROMPT, exchange)
        return recollection or exchange

    def remember_exchange(
        self,
        client_id: str,
        user_text: str,
        answer: str,
        messages: list[BaseMessage],
    ) -> None:
        """Persist a completed run: recollection first, then the transcript.

        The recollection is composed before anything is written, so a failed
        model call leaves both stores untouched.
        """
        recollection = self.compose_recollection(user_text, answer)
        self.persist_memory(client_id, recollection)
        self.persist_conversation(client_id, messages)

    def close(self) -> None:
        self._documents.dispose()
