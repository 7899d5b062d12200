"""Qdrant vector database service."""

from typing import List, Optional, Sequence

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    NearestQuery,
    PayloadSchemaType,
    PointIdsList,
    PointStruct,
    VectorParams,
)

from repo_knowledge.core.config import settings
from repo_knowledge.core.exceptions import VectorDBError
from repo_knowledge.models.document import VectorRecord
from repo_knowledge.services.identity import point_id

INDEXED_PAYLOAD_FIELDS = ("topic", "document_id")


class VectorDBService:
    """Service for interacting with Qdrant vector database."""

    def __init__(self, url: str = None, collection_name: str = None, dimensions: int = None) -> None:
        """Initialize the vector database service."""
        self.client: Optional[AsyncQdrantClient] = None
        self.url = url or settings.qdrant_url
        self.collection_name = collection_name or settings.qdrant_collection_name
        self.dimensions = dimensions or settings.embedding_dimensions

    async def connect(self) -> None:
        """Connect to Qdrant."""
        try:
            self.client = AsyncQdrantClient(
                url=self.url,
                timeout=30.0,
            )
            await self.ensure_collection()
        except Exception as e:
            raise VectorDBError(
                f"Failed to connect to Qdrant: {str(e)}") from e

    async def disconnect(self) -> None:
        """Disconnect from Qdrant."""
        if self.client:
            await self.client.close()

    def _require_client(self) -> AsyncQdrantClient:
        if not self.client:
            raise VectorDBError("Client not connected")
        return self.client

    async def ensure_collection(self) -> None:
        """Ensure the collection and its payload indexes exist."""
        client = self._require_client()

        collections = await client.get_collections()
        collection_names = [col.name for col in collections.collections]

        if self.collection_name not in collection_names:
            await client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(
                    size=self.dimensions,
                    distance=Distance.COSINE,
                ),
            )
            for field_name in INDEXED_PAYLOAD_FIELDS:
                await client.create_payload_index(
                    collection_name=self.collection_name,
                    field_name=field_name,
                    field_schema=PayloadSchemaType.KEYWORD,
                )

    async def upsert_records(self, records: Sequence[VectorRecord]) -> int:
        """
        Upsert vector records.

        Args:
            records: Records keyed by chunk id.

        Returns:
            Number of points written.
        """
        client = self._require_client()
        if not records:
            return 0

        points = [
            PointStruct(
                id=point_id(record.id),
                vector=record.embedding,
                payload={**record.metadata, "chunk_id": record.id},
            )
            for record in records
        ]
        try:
            await client.upsert(collection_name=self.collection_name, points=points, wait=True)
        except Exception as e:
            raise VectorDBError(f"Failed to upsert vectors: {str(e)}") from e
        return len(points)

    async def delete_ids(self, vector_ids: Sequence[str]) -> None:
        """
        Delete points by chunk id.

        Args:
            vector_ids: Chunk ids whose points should be removed.
        """
        client = self._require_client()
        if not vector_ids:
            return
        try:
            await client.delete(
                collection_name=self.collection_name,
                points_selector=PointIdsList(
                    points=[point_id(vid) for vid in vector_ids]),
                wait=True,
            )
        except Exception as e:
            raise VectorDBError(f"Failed to delete vectors: {str(e)}") from e

    async def search(
        self, query_embedding: List[float], top_k: int = 5, topic: Optional[str] = None
    ) -> List[dict]:
        """
        Search for similar chunks.

        Args:
            query_embedding: Query embedding vector.
            top_k: Number of results to return.
            topic: Restrict matches to this topic.

        Returns:
            Matches with chunk id, score and payload, best first.
        """
        client = self._require_client()

        query_filter = None
        if topic:
            query_filter = Filter(
                must=[FieldCondition(key="topic", match=MatchValue(value=topic))])

        try:
            results = await client.query_points(
                collection_name=self.collection_name,
                query=NearestQuery(nearest=query_embedding),
                limit=top_k,
                query_filter=query_filter,
                with_payload=True,
            )
        except Exception as e:
            raise VectorDBError(f"Failed to search vectors: {str(e)}") from e

        matches = []
        for point in results.points:
            payload = point.payload or {}
            matches.append(
                {
                    "id": payload.get("chunk_id", str(point.id)),
                    "score": point.score,
                    "metadata": payload,
                }
            )

        return matches

    async def count_points(self) -> int:
        """Return the exact number of points in the collection."""
        client = self._require_client()
        try:
            result = await client.count(collection_name=self.collection_name, exact=True)
        except Exception as e:
            raise VectorDBError(f"Failed to count vectors: {str(e)}") from e
        return result.count
