"""Tests for the Chroma vector store wrapper (Chroma client mocked)."""

from __future__ import annotations

import hashlib
from unittest.mock import MagicMock

import pytest

from minato.services.vector_store import ChromaVectorStore, VectorMatch, collection_name


class TestCollectionName:
    def test_safe_client_id_used_verbatim(self):
        assert collection_name("3f2a-client", "memory") == "memory_collection_3f2a-client"

    def test_unsafe_client_id_is_hashed(self):
        name = collection_name("ada@example.com", "memory")
        assert name.startswith("memory_collection_")
        assert "@" not in name
        assert len(name) <= 63

    def test_distinct_ids_never_collide(self):
        assert collection_name("a b", "memory") != collection_name("a_b", "memory")

    def test_client_id_equal_to_a_digest_gets_its_own_collection(self):
        victim = "ada@example.com"
        digest = hashlib.sha256(victim.encode("utf-8")).hexdigest()
        victim_name = collection_name(victim, "memory")
        for forged in (digest[:32], digest[:40]):
            assert collection_name(forged, "memory") != victim_name

    def test_uuid_client_id_used_verbatim(self):
        client_id = "0b6f1c2e-8d4a-4b7e-9a51-3c2d1e0f9a8b"
        assert collection_name(client_id, "memory") == f"memory_collection_{client_id}"

    @pytest.mark.parametrize("client_id", ["a" * 38, "x" * 300, "ada@example.com"])
    def test_names_fit_chroma_limit(self, client_id):
        assert len(collection_name(client_id, "k" * 10)) <= 63

    def test_is_deterministic(self):
        assert collection_name("ada@example.com", "memory") == collection_name("ada@example.com", "memory")

    def test_kinds_are_separate(self):
        assert collection_name("client-1", "memory") != collection_name("client-1", "notes")

    @pytest.mark.parametrize("client_id,kind", [("", "memory"), ("client-1", "Bad Kind")])
    def test_invalid_inputs_rejected(self, client_id, kind):
        with pytest.raises(ValueError):
            collection_name(client_id, kind)


@pytest.fixture
def chroma():
    client = MagicMock()
    collection = client.get_or_create_collection.return_value
    collection.count.return_value = 2
    collection.query.return_value = {
        "documents": [["lunch with ada", "dentist"]],
        "distances": [[0.12, 0.83]],
    }
    return client


class TestChromaVectorStore:
    def test_collections_use_cosine_space(self, chroma):
        ChromaVectorStore(chroma).upsert_document("client-1", "memory", "text")
        kwargs = chroma.get_or_create_collection.call_args.kwargs
        assert kwargs["name"] == "memory_collection_client-1"
        assert kwargs["metadata"]["hnsw:space"] == "cosine"

    def test_upsert_tags_document_with_client(self, chroma):
        doc_id = ChromaVectorStore(chroma).upsert_document("client-1", "memory", "lunch")
        add_kwargs = chroma.get_or_create_collection.return_value.add.call_args.kwargs
        assert add_kwargs["ids"] == [doc_id]
        assert add_kwargs["documents"] == ["lunch"]
        assert add_kwargs["metadatas"] == [{"client_id": "client-1", "kind": "memory"}]

    def test_query_returns_matches_with_distances(self, chroma):
        matches = ChromaVectorStore(chroma).query_similar("client-1", "memory", "lunch", 5)
        assert matches == [VectorMatch("lunch with ada", 0.12), VectorMatch("dentist", 0.83)]

        query_kwargs = chroma.get_or_create_collection.return_value.query.call_args.kwargs
        assert query_kwargs["n_results"] == 2
        assert query_kwargs["where"] == {"client_id": "client-1"}
        assert "distances" in query_kwargs["include"]

    def test_empty_collection_skips_query(self, chroma):
        collection = chroma.get_or_create_collection.return_value
        collection.count.return_value = 0
        assert ChromaVectorStore(chroma).query_similar("client-1", "memory", "lunch", 5) == []
        collection.query.assert_not_called()

    def test_non_positive_limit(self, chroma):
        assert ChromaVectorStore(chroma).query_similar("client-1", "memory", "lunch", 0) == []
        chroma.get_or_create_collection.assert_not_called()
