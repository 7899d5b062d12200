"""Dependency injection for services."""

import asyncio
import logging

from repo_knowledge.core.config import settings
from repo_knowledge.core.exceptions import CacheError
from repo_knowledge.services.cache import CacheService
from repo_knowledge.services.chunking import ChunkingService
from repo_knowledge.services.database import DatabaseService
from repo_knowledge.services.embedding import EmbeddingService
from repo_knowledge.services.locks import KeyedLock
from repo_knowledge.services.pipeline import IndexingPipeline
from repo_knowledge.services.retrieval import RetrievalService
from repo_knowledge.services.status import StatusService
from repo_knowledge.services.sync_ledger import SyncLedger
from repo_knowledge.services.vector_db import VectorDBService
from repo_knowledge.services.writer import DualStoreWriter

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Container for service instances."""

    def __init__(self) -> None:
        """Initialize service container."""
        self.vector_db = VectorDBService()
        self.database = DatabaseService()
        self.embedding_service = EmbeddingService()
        self.chunking_service = ChunkingService()
        self.cache_service = CacheService() if settings.cache_enabled else None
        self.document_locks = KeyedLock()
        # One ingest run at a time per process.
        self.run_lock = asyncio.Lock()

        self.writer = DualStoreWriter(self.database, self.vector_db, locks=self.document_locks)
        self.ledger = SyncLedger(self.database)
        self.pipeline = IndexingPipeline(
            chunking_service=self.chunking_service,
            embedding_service=self.embedding_service,
            writer=self.writer,
            ledger=self.ledger,
            vector_db=self.vector_db,
        )
        self.retrieval = RetrievalService(
            embedding_service=self.embedding_service,
            vector_db=self.vector_db,
            database=self.database,
            cache_service=self.cache_service,
        )
        self.status = StatusService(self.database, self.vector_db, self.ledger)

    async def initialize(self) -> None:
        """Initialize all services."""
        await self.vector_db.connect()
        await self.database.connect()
        await self.database.init_schema()
        if self.cache_service:
            try:
                await self.cache_service.connect()
            except CacheError as e:
                logger.warning(f"Query embedding cache disabled: {str(e)}")
                self.cache_service.client = None

    async def shutdown(self) -> None:
        """Shutdown all services."""
        await self.embedding_service.provider.close()
        await self.database.disconnect()
        await self.vector_db.disconnect()
        if self.cache_service:
            await self.cache_service.disconnect()


services = ServiceContainer()


def get_retrieval_service() -> RetrievalService:
    return services.retrieval


def get_pipeline() -> IndexingPipeline:
    return services.pipeline


def get_ledger() -> SyncLedger:
    return services.ledger


def get_status_service() -> StatusService:
    return services.status


def get_run_lock() -> asyncio.Lock:
    return services.run_lock
