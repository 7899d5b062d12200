"""Health check utilities."""

from typing import Dict

from repo_knowledge.services.cache import CacheService
from repo_knowledge.services.database import DatabaseService
from repo_knowledge.services.embedding import EmbeddingProvider
from repo_knowledge.services.health import (
    check_embedding_provider,
    check_postgres,
    check_qdrant,
    check_redis,
)
from repo_knowledge.services.vector_db import VectorDBService


async def check_all_dependencies(
    vector_db: VectorDBService,
    database: DatabaseService,
    provider: EmbeddingProvider,
    cache_service: CacheService = None,
) -> Dict:
    """
    Check all service dependencies.

    Redis is optional: a down cache degrades search but never makes the
    service unhealthy.

    Args:
        vector_db: Vector database service.
        database: Metadata store service.
        provider: Embedding provider.
        cache_service: Cache service, when caching is enabled.

    Returns:
        Dictionary with overall status and individual service statuses.
    """
    services = {}
    overall_status = "healthy"

    qdrant_status = await check_qdrant(vector_db)
    services["qdrant"] = qdrant_status
    if qdrant_status.get("status") != "healthy":
        overall_status = "unhealthy"

    postgres_status = await check_postgres(database)
    services["postgres"] = postgres_status
    if postgres_status.get("status") != "healthy":
        overall_status = "unhealthy"

    embedding_status = check_embedding_provider(provider)
    services["embedding"] = embedding_status
    if embedding_status.get("status") != "configured":
        overall_status = "unhealthy"

    if cache_service is not None:
        redis_status = await check_redis(cache_service)
        services["redis"] = redis_status
        if redis_status.get("status") != "healthy" and overall_status == "healthy":
            overall_status = "degraded"

    return {"status": overall_status, "services": services}


async def check_readiness(vector_db: VectorDBService, database: DatabaseService) -> Dict:
    """
    Check service readiness.

    Args:
        vector_db: Vector database service.
        database: Metadata store service.

    Returns:
        Readiness status dictionary.
    """
    qdrant_status = await check_qdrant(vector_db)
    postgres_status = await check_postgres(database)

    qdrant_ready = qdrant_status.get("status") == "healthy"
    postgres_ready = postgres_status.get("status") == "healthy"

    return {
        "ready": qdrant_ready and postgres_ready,
        "qdrant": qdrant_ready,
        "postgres": postgres_ready,
    }
