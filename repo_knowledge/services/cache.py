"""Redis caching service for query embeddings."""

import hashlib
import json
import logging
from typing import List, Optional

import redis.asyncio as redis

from repo_knowledge.core.config import settings
from repo_knowledge.core.exceptions import CacheError

logger = logging.getLogger(__name__)


def query_embedding_key(model: str, query: str) -> str:
    """Cache key for a query embedding under a given model."""
    digest = hashlib.sha256(query.encode("utf-8")).hexdigest()
    return f"query_embedding:{model}:{digest}"


class CacheService:
    """
    Service for caching query embeddings.

    Reads and writes fail open: a Redis outage degrades search to uncached
    embedding calls instead of failing it.
    """

    def __init__(self, url: str = None, ttl: int = None) -> None:
        """Initialize the cache service."""
        self.client: Optional[redis.Redis] = None
        self.url = url or settings.redis_url
        self.ttl = ttl or settings.cache_ttl

    async def connect(self) -> None:
        """Connect to Redis."""
        try:
            self.client = redis.from_url(
                self.url,
                decode_responses=True,
                max_connections=settings.redis_pool_size,
                socket_connect_timeout=5.0,
            )
            await self.client.ping()
        except Exception as e:
            raise CacheError(f"Failed to connect to Redis: {str(e)}") from e

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self.client:
            await self.client.close()

    async def ping(self) -> bool:
        if not self.client:
            return False
        return bool(await self.client.ping())

    async def get(self, key: str) -> Optional[str]:
        """
        Get a value from cache.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found.
        """
        if not self.client:
            return None
        try:
            return await self.client.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {str(e)}")
            return None

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """
        Set a value in cache.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: Time to live in seconds.
        """
        if not self.client:
            return
        try:
            await self.client.setex(key, ttl or self.ttl, value)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {str(e)}")

    async def get_embedding(self, model: str, query: str) -> Optional[List[float]]:
        """
        Look up a cached query embedding.

        Args:
            model: Embedding model the vector was produced by.
            query: Query text.

        Returns:
            Cached vector or None.
        """
        value = await self.get(query_embedding_key(model, query))
        if not value:
            return None
        try:
            embedding = json.loads(value)
        except json.JSONDecodeError:
            return None
        return embedding if isinstance(embedding, list) else None

    async def set_embedding(
        self, model: str, query: str, embedding: List[float], ttl: Optional[int] = None
    ) -> None:
        await self.set(query_embedding_key(model, query), json.dumps(embedding), ttl)
