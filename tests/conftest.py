"""Shared test fixtures for the Minato test suite."""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("LLM_PROVIDER", "anthropic")
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")
    os.environ.setdefault("DATABASE_URL", "sqlite://")
    os.environ.setdefault("METRICS_ENABLED", "false")
    os.environ.setdefault("PLANNER_ENABLED", "false")


# ── LLM fakes ────────────────────────────────────────────────────────


def tool_call(name: str, args: dict | None = None, call_id: str = "call_1"):
    """An AIMessage asking for one tool call."""
    from langchain_core.messages import AIMessage

    return AIMessage(
        content="",
        tool_calls=[{"name": name, "args": args or {}, "id": call_id}],
    )


def answer(text: str):
    """An AIMessage carrying a final text answer."""
    from langchain_core.messages import AIMessage

    return AIMessage(content=text)


def scripted_chat_model(*responses):
    """Mock chat model whose tool-bound invocations return *responses* in order.

    ``bind_tools`` always returns the same bound model, so every ``complete``
    call consumes the next scripted response.
    """
    model = MagicMock()
    model.bind_tools.return_value.invoke.side_effect = list(responses)
    return model


def instruct_model(*texts: str):
    """Mock fast model whose plain invocations return *texts* in order."""
    model = MagicMock()
    model.invoke.side_effect = [answer(t) for t in texts]
    return model


# ── Storage fakes ────────────────────────────────────────────────────


class InMemoryVectorStore:
    """Dict-backed stand-in for ``ChromaVectorStore``.

    Distance is one minus the Jaccard overlap of lower-cased words, so it
    behaves like a cosine distance: smaller means closer.  Matches come
    back in insertion order, leaving the ranking to the caller.
    """

    def __init__(self) -> None:
        self.collections: dict[tuple[str, str], list[str]] = {}

    def upsert_document(self, client_id: str, kind: str, text: str) -> str:
        documents = self.collections.setdefault((client_id, kind), [])
        documents.append(text)
        return f"{kind}-{len(documents)}"

    def query_similar(self, client_id: str, kind: str, text: str, limit: int):
        from minato.services.vector_store import VectorMatch

        query = set(text.lower().split())
        matches = []
        for document in self.collections.get((client_id, kind), []):
            words = set(document.lower().split())
            overlap = len(query & words) / max(len(query | words), 1)
            matches.append(VectorMatch(text=document, distance=1.0 - overlap))
        return matches[:limit] if limit > 0 else []


@pytest.fixture
def document_store():
    from minato.services.document_store import DocumentStore

    store = DocumentStore.from_url("sqlite://")
    yield store
    store.dispose()


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()
