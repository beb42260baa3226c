"""Chroma-backed vector store partitioned per client and memory kind.

Every ``(kind, client_id)`` pair gets its own collection, so a query for
one client can never match another client's documents.  Collections use
cosine space: the ``distance`` Chroma returns is a dissimilarity, where
smaller means closer to the query.
"""

from __future__ import annotations

import hashlib
import logging
import re
import uuid
from dataclasses import dataclass

import chromadb

from minato.config import CHROMA_HOST, CHROMA_PATH, CHROMA_PORT
from minato.services.metrics import metrics

logger = logging.getLogger(__name__)

# Chroma collection names: 3-63 chars of [A-Za-z0-9._-], alphanumeric at both ends.
_SAFE_CLIENT_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]{0,36}[A-Za-z0-9]$")
_SAFE_KIND = re.compile(r"^[a-z][a-z0-9_]{0,9}$")


@dataclass(frozen=True)
class VectorMatch:
    """One document returned by a similarity query."""

    text: str
    distance: float


def collection_name(client_id: str, kind: str) -> str:
    """Deterministic collection name for a client's memories of one kind.

    Client ids that cannot appear in a collection name verbatim (too long,
    odd characters) are replaced by a SHA-256 prefix behind an ``h_``
    marker.  Verbatim ids never contain ``_``, so a hashed name cannot be
    claimed by a client whose id happens to equal someone's digest.
    Names stay within Chroma's 63-character limit.
    """
    if not _SAFE_KIND.match(kind):
        raise ValueError(f"Invalid memory kind: {kind!r}")
    if not client_id:
        raise ValueError("client_id must not be empty")
    if _SAFE_CLIENT_ID.match(client_id):
        return f"{kind}_collection_{client_id}"
    digest = hashlib.sha256(client_id.encode("utf-8")).hexdigest()[:32]
    return f"{kind}_collection_h_{digest}"


def create_chroma_client():
    """Open a Chroma client: HTTP when ``CHROMA_HOST`` is set, else on disk."""
    if CHROMA_HOST:
        logger.info("Connecting to Chroma at %s:%d", CHROMA_HOST, CHROMA_PORT)
        return chromadb.HttpClient(host=CHROMA_HOST, port=CHROMA_PORT)
    logger.info("Opening local Chroma store at %s", CHROMA_PATH)
    return chromadb.PersistentClient(path=CHROMA_PATH)


class ChromaVectorStore:
    """Per-``(client_id, kind)`` document collections on a Chroma client."""

    def __init__(self, client) -> None:
        self._client = client

    def _collection(self, client_id: str, kind: str):
        name = collection_name(client_id, kind)
        with metrics.track("chroma", "get_or_create_collection"):
            return self._client.get_or_create_collection(
                name=name,
                metadata={
                    "hnsw:space": "cosine",
                    "description": f"{kind} collection for client {client_id}",
                },
            )

    def upsert_document(self, client_id: str, kind: str, text: str) -> str:
        """Store *text* in the client's collection.  Returns the document id."""
        collection = self._collection(client_id, kind)
        document_id = f"{kind}-{uuid.uuid4().hex}"
        with metrics.track("chroma", "add"):
            collection.add(
                ids=[document_id],
                documents=[text],
                metadatas=[{"client_id": client_id, "kind": kind}],
            )
        logger.debug("Stored %s document %s for client %s", kind, document_id, client_id)
        return document_id

    def query_similar(
        self,
        client_id: str,
        kind: str,
        text: str,
        limit: int,
    ) -> list[VectorMatch]:
        """Return up to *limit* documents closest to *text*, in Chroma's order.

        An empty collection yields an empty list.
        """
        if limit <= 0:
            return []
        collection = self._collection(client_id, kind)
        with metrics.track("chroma", "count"):
            available = collection.count()
        if available == 0:
            return []

        with metrics.track("chroma", "query"):
            results = collection.query(
                query_texts=[text],
                n_results=min(limit, available),
                where={"client_id": client_id},
                include=["documents", "distances"],
            )

        documents = (results.get("documents") or [[]])[0] or []
        distances = (results.get("distances") or [[]])[0] or []
        return [
            VectorMatch(text=doc, distance=float(dist))
            for doc, dist in zip(documents, distances, strict=False)
            if doc is not None
        ]
