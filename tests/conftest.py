"""Shared pytest configuration and fixtures."""

from typing import List

import pytest

from repo_knowledge.services.chunking import ChunkingConfig, ChunkingService
from repo_knowledge.services.embedding import EmbeddingService
from repo_knowledge.services.file_filter import FileFilterConfig
from repo_knowledge.services.pipeline import IndexingPipeline
from repo_knowledge.services.sync_ledger import SyncLedger
from repo_knowledge.services.writer import DualStoreWriter
from tests.fakes import FakeClock, FakeDatabase, FakeEmbeddingProvider, FakeVectorDB


@pytest.fixture()
def calls() -> List[str]:
    return []


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def database(calls: List[str]) -> FakeDatabase:
    return FakeDatabase(calls)


@pytest.fixture()
def vector_db(calls: List[str]) -> FakeVectorDB:
    return FakeVectorDB(calls)


@pytest.fixture()
def provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture()
def embedding_service(provider: FakeEmbeddingProvider) -> EmbeddingService:
    return EmbeddingService(provider=provider, batch_size=5, batch_delay=0)


@pytest.fixture()
def chunking_service() -> ChunkingService:
    return ChunkingService(ChunkingConfig(chunk_size=512, min_chunk_size=10, overlap_lines=3))


@pytest.fixture()
def writer(database: FakeDatabase, vector_db: FakeVectorDB, clock: FakeClock) -> DualStoreWriter:
    return DualStoreWriter(database, vector_db, clock=clock)


@pytest.fixture()
def ledger(database: FakeDatabase, clock: FakeClock) -> SyncLedger:
    return SyncLedger(database, clock=clock)


@pytest.fixture()
def pipeline(
    chunking_service: ChunkingService,
    embedding_service: EmbeddingService,
    writer: DualStoreWriter,
    ledger: SyncLedger,
    vector_db: FakeVectorDB,
) -> IndexingPipeline:
    return IndexingPipeline(
        chunking_service=chunking_service,
        embedding_service=embedding_service,
        writer=writer,
        ledger=ledger,
        vector_db=vector_db,
        file_filter=FileFilterConfig(),
        max_files=0,
        embedding_retries=0,
    )
