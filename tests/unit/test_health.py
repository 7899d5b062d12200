"""Unit tests for dependency health checks."""

from types import SimpleNamespace

import pytest

from repo_knowledge.api.health import check_all_dependencies, check_readiness
from repo_knowledge.services.health import check_embedding_provider
from tests.fakes import FakeDatabase, FakeEmbeddingProvider, FakeVectorDB


class FakeQdrantClient:
    async def get_collections(self):
        return SimpleNamespace(collections=[SimpleNamespace(name="knowledge")])


class FakeConnection:
    async def execute(self, query: str) -> str:
        return "SELECT 1"


class FakeAcquire:
    async def __aenter__(self) -> FakeConnection:
        return FakeConnection()

    async def __aexit__(self, *exc) -> None:
        return None


class FakePool:
    def acquire(self) -> FakeAcquire:
        return FakeAcquire()


def test_embedding_provider_status() -> None:
    assert check_embedding_provider(FakeEmbeddingProvider())["status"] == "configured"

    status = check_embedding_provider(FakeEmbeddingProvider(configured=False))
    assert status["status"] == "not_configured"
    assert "FAKE_API_KEY" in status["error"]


@pytest.mark.asyncio
async def test_all_dependencies_healthy(database: FakeDatabase, vector_db: FakeVectorDB) -> None:
    vector_db.client = FakeQdrantClient()
    database.pool = FakePool()

    result = await check_all_dependencies(vector_db, database, FakeEmbeddingProvider())

    assert result["status"] == "healthy"
    assert set(result["services"]) == {"qdrant", "postgres", "embedding"}
    assert result["services"]["qdrant"]["collections"] == 1


@pytest.mark.asyncio
async def test_disconnected_store_is_unhealthy(
    database: FakeDatabase, vector_db: FakeVectorDB
) -> None:
    vector_db.client = FakeQdrantClient()
    database.pool = None

    result = await check_all_dependencies(vector_db, database, FakeEmbeddingProvider())
    readiness = await check_readiness(vector_db, database)

    assert result["status"] == "unhealthy"
    assert result["services"]["postgres"]["error"] == "Not connected"
    assert readiness == {"ready": False, "qdrant": True, "postgres": False}
