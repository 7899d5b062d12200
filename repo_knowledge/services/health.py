"""Health check service for dependency verification."""

import time
from typing import Any, Dict

from repo_knowledge.core.exceptions import PipelineFatalError
from repo_knowledge.services.cache import CacheService
from repo_knowledge.services.database import DatabaseService
from repo_knowledge.services.embedding import EmbeddingProvider
from repo_knowledge.services.vector_db import VectorDBService


async def check_qdrant(vector_db: VectorDBService) -> Dict[str, Any]:
    """
    Check Qdrant connectivity and health.

    Args:
        vector_db: VectorDBService instance.

    Returns:
        Health status dictionary.
    """
    try:
        start_time = time.time()
        if not vector_db.client:
            return {"status": "unhealthy", "error": "Not connected", "latency_ms": 0}

        collections = await vector_db.client.get_collections()
        latency_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
            "collections": len(collections.collections),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "latency_ms": 0,
        }


async def check_redis(cache_service: CacheService) -> Dict[str, Any]:
    """
    Check Redis connectivity and health.

    Args:
        cache_service: CacheService instance.

    Returns:
        Health status dictionary.
    """
    try:
        start_time = time.time()
        if not cache_service.client:
            return {"status": "unhealthy", "error": "Not connected", "latency_ms": 0}

        await cache_service.ping()
        latency_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "latency_ms": 0,
        }


async def check_postgres(database: DatabaseService) -> Dict[str, Any]:
    """
    Check PostgreSQL connectivity through the service pool.

    Args:
        database: DatabaseService instance.

    Returns:
        Health status dictionary.
    """
    try:
        start_time = time.time()
        if not database.pool:
            return {"status": "unhealthy", "error": "Not connected", "latency_ms": 0}

        async with database.pool.acquire() as conn:
            await conn.execute("SELECT 1")
        latency_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "latency_ms": 0,
        }


def check_embedding_provider(provider: EmbeddingProvider) -> Dict[str, Any]:
    """Report whether the embedding provider has its credentials."""
    try:
        provider.check_configured()
    except PipelineFatalError as e:
        return {"status": "not_configured", "error": str(e), "model": provider.model}
    return {"status": "configured", "model": provider.model}
