"""Retrieval service: semantic search over indexed chunks."""

import logging
import time
from typing import Dict, List, Optional, Sequence

from repo_knowledge.core.exceptions import DatabaseError
from repo_knowledge.models.search import SearchMatch
from repo_knowledge.monitoring.metrics import search_latency_seconds, search_matches_returned
from repo_knowledge.services.cache import CacheService
from repo_knowledge.services.database import DatabaseService
from repo_knowledge.services.embedding import EmbeddingService
from repo_knowledge.services.vector_db import VectorDBService

logger = logging.getLogger(__name__)

TEXT_NOT_FOUND = "[Text not found]"
NO_RESULTS_MESSAGE = "No relevant documents found."


class RetrievalService:
    """Embeds a query, ranks chunks by similarity and joins their text."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_db: VectorDBService,
        database: DatabaseService,
        cache_service: Optional[CacheService] = None,
    ) -> None:
        """
        Initialize retrieval service.

        Args:
            embedding_service: Embedding service, same model as ingest.
            vector_db: Vector index.
            database: Metadata store holding chunk texts.
            cache_service: Optional query embedding cache.
        """
        self.embedding_service = embedding_service
        self.vector_db = vector_db
        self.database = database
        self.cache_service = cache_service

    async def _embed_query(self, query: str) -> List[float]:
        model = self.embedding_service.model
        if self.cache_service:
            cached = await self.cache_service.get_embedding(model, query)
            if cached:
                logger.debug(f"Cache hit for query: {query[:50]}...")
                return cached

        embedding = await self.embedding_service.generate_embedding(query)

        if self.cache_service:
            await self.cache_service.set_embedding(model, query, embedding)
        return embedding

    async def _resolve_texts(self, chunk_ids: Sequence[str]) -> Dict[str, str]:
        try:
            return await self.database.get_chunk_texts(chunk_ids)
        except DatabaseError as e:
            logger.warning(f"Chunk text lookup failed: {str(e)}")
            return {}

    async def search(
        self,
        query: str,
        limit: int = 5,
        min_score: float = 0.7,
        topic: Optional[str] = None,
    ) -> List[SearchMatch]:
        """
        Search indexed chunks.

        Args:
            query: Query text.
            limit: Maximum number of vector matches to consider.
            min_score: Minimum similarity score to keep a match.
            topic: Restrict matches to this topic.

        Returns:
            Matches in vector ranking order.

        Raises:
            EmbeddingError: If the query cannot be embedded.
            VectorDBError: If the vector index query fails.
        """
        start_time = time.time()

        query_embedding = await self._embed_query(query)
        raw_matches = await self.vector_db.search(query_embedding, top_k=limit, topic=topic)
        kept = [match for match in raw_matches if match["score"] >= min_score]

        texts = await self._resolve_texts([match["id"] for match in kept]) if kept else {}

        matches = []
        for match in kept:
            metadata = match.get("metadata") or {}
            matches.append(
                SearchMatch(
                    chunk_id=match["id"],
                    score=match["score"],
                    text=texts.get(match["id"], TEXT_NOT_FOUND),
                    document_id=metadata.get("document_id"),
                    file_path=metadata.get("file_path"),
                    topic=metadata.get("topic"),
                    folder=metadata.get("folder"),
                    chunk_index=metadata.get("chunk_index"),
                )
            )

        search_latency_seconds.observe(time.time() - start_time)
        search_matches_returned.observe(len(matches))
        logger.info(
            f"Search returned {len(matches)}/{len(raw_matches)} matches "
            f"(min_score={min_score}, topic={topic or '-'})")
        return matches


def render_matches(matches: Sequence[SearchMatch]) -> str:
    """
    Format matches as the markdown text block returned to search clients.

    Args:
        matches: Matches in display order.

    Returns:
        Formatted text.
    """
    if not matches:
        return NO_RESULTS_MESSAGE

    output = f"Found {len(matches)} relevant documents:\n\n"
    for i, match in enumerate(matches, start=1):
        output += f"## Document {i} (Relevance: {match.score * 100:.1f}%)\n"
        output += f"**File:** {match.file_path}\n"
        output += f"**Topic:** {match.topic}\n"
        output += f"**Folder:** {match.folder}\n\n"
        output += f"{match.text}\n\n"
        output += "---\n\n"
    return output
