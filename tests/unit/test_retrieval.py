"""Unit tests for the retrieval path and result rendering."""

from typing import Any, Dict, List, Optional

import pytest

from repo_knowledge.models.document import DocumentChunk
from repo_knowledge.models.search import SearchMatch
from repo_knowledge.services.embedding import EmbeddingService
from repo_knowledge.services.retrieval import (
    NO_RESULTS_MESSAGE,
    TEXT_NOT_FOUND,
    RetrievalService,
    render_matches,
)
from tests.fakes import FakeDatabase, FakeEmbeddingProvider, FakeVectorDB


def hit(chunk_id: str, score: float, topic: str = "guides") -> Dict[str, Any]:
    return {
        "id": chunk_id,
        "score": score,
        "metadata": {
            "chunk_id": chunk_id,
            "document_id": chunk_id.split("_chunk_")[0],
            "file_path": f"{topic}/{chunk_id}.md",
            "topic": topic,
            "folder": topic,
            "chunk_index": 0,
        },
    }


def store_chunk(database: FakeDatabase, chunk_id: str, text: str) -> None:
    database.chunks[chunk_id] = DocumentChunk(
        id=chunk_id,
        document_id=chunk_id.split("_chunk_")[0],
        chunk_index=0,
        text=text,
        word_count=len(text.split()),
        vector_id=chunk_id,
    )


class FakeCache:
    """Query embedding cache keyed by (model, query)."""

    def __init__(self) -> None:
        self.values: Dict[tuple, List[float]] = {}

    async def get_embedding(self, model: str, query: str) -> Optional[List[float]]:
        return self.values.get((model, query))

    async def set_embedding(self, model: str, query: str, embedding: List[float]) -> None:
        self.values[(model, query)] = embedding


@pytest.fixture()
def retrieval(
    embedding_service: EmbeddingService, vector_db: FakeVectorDB, database: FakeDatabase
) -> RetrievalService:
    return RetrievalService(embedding_service, vector_db, database)


@pytest.mark.asyncio
async def test_matches_below_min_score_are_dropped_without_resorting(
    retrieval: RetrievalService, vector_db: FakeVectorDB, database: FakeDatabase
) -> None:
    vector_db.hits = [hit("doc_a_chunk_0", 0.91), hit("doc_b_chunk_0", 0.65), hit("doc_c_chunk_0", 0.72)]
    store_chunk(database, "doc_a_chunk_0", "alpha text")
    store_chunk(database, "doc_c_chunk_0", "gamma text")

    matches = await retrieval.search("how to deploy", limit=5, min_score=0.7)

    assert [m.chunk_id for m in matches] == ["doc_a_chunk_0", "doc_c_chunk_0"]
    assert [m.text for m in matches] == ["alpha text", "gamma text"]
    assert all(m.score >= 0.7 for m in matches)


@pytest.mark.asyncio
async def test_limit_is_passed_to_vector_search(
    retrieval: RetrievalService, vector_db: FakeVectorDB
) -> None:
    vector_db.hits = [hit(f"doc_{i}_chunk_0", 0.9) for i in range(10)]

    matches = await retrieval.search("query", limit=3, min_score=0.0)

    assert vector_db.last_search["top_k"] == 3
    assert len(matches) == 3


@pytest.mark.asyncio
async def test_missing_chunk_text_yields_placeholder(
    retrieval: RetrievalService, vector_db: FakeVectorDB, database: FakeDatabase
) -> None:
    vector_db.hits = [hit("doc_a_chunk_0", 0.9), hit("doc_b_chunk_0", 0.8)]
    store_chunk(database, "doc_b_chunk_0", "beta text")

    matches = await retrieval.search("query", limit=5, min_score=0.5)

    assert [m.text for m in matches] == [TEXT_NOT_FOUND, "beta text"]


@pytest.mark.asyncio
async def test_failed_text_lookup_does_not_abort_search(
    retrieval: RetrievalService, vector_db: FakeVectorDB, database: FakeDatabase
) -> None:
    vector_db.hits = [hit("doc_a_chunk_0", 0.9)]
    database.fail_chunk_texts = True

    matches = await retrieval.search("query", limit=5, min_score=0.5)

    assert [m.text for m in matches] == [TEXT_NOT_FOUND]


@pytest.mark.asyncio
async def test_topic_filter_is_forwarded(
    retrieval: RetrievalService, vector_db: FakeVectorDB
) -> None:
    vector_db.hits = [hit("doc_a_chunk_0", 0.9, "guides"), hit("doc_b_chunk_0", 0.9, "notes")]

    matches = await retrieval.search("query", limit=5, min_score=0.0, topic="notes")

    assert vector_db.last_search["topic"] == "notes"
    assert [m.topic for m in matches] == ["notes"]


@pytest.mark.asyncio
async def test_query_embedding_is_cached(
    embedding_service: EmbeddingService,
    provider: FakeEmbeddingProvider,
    vector_db: FakeVectorDB,
    database: FakeDatabase,
) -> None:
    vector_db.hits = []
    retrieval = RetrievalService(embedding_service, vector_db, database, cache_service=FakeCache())

    await retrieval.search("same question", limit=5, min_score=0.0)
    await retrieval.search("same question", limit=5, min_score=0.0)

    assert provider.calls == ["same question"]
    assert vector_db.last_search["embedding"] == [13.0, 2.0, 1.0]


def test_render_matches_format() -> None:
    matches = [
        SearchMatch(
            chunk_id="doc_a_chunk_0",
            score=0.8734,
            text="Install with make.",
            file_path="guides/setup/install.md",
            topic="guides",
            folder="guides/setup",
        )
    ]

    assert render_matches(matches) == (
        "Found 1 relevant documents:\n\n"
        "## Document 1 (Relevance: 87.3%)\n"
        "**File:** guides/setup/install.md\n"
        "**Topic:** guides\n"
        "**Folder:** guides/setup\n\n"
        "Install with make.\n\n"
        "---\n\n"
    )


def test_render_no_matches() -> None:
    assert render_matches([]) == NO_RESULTS_MESSAGE == "No relevant documents found."
