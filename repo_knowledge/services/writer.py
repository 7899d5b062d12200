"""Dual-store writer keeping the metadata store and vector index in step."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Sequence

from repo_knowledge.core.exceptions import ReindexError, VectorDBError
from repo_knowledge.models.document import Document, DocumentChunk, TextChunk, VectorRecord
from repo_knowledge.monitoring.metrics import (
    reindex_duration_seconds,
    stale_vector_deletes_failed_total,
)
from repo_knowledge.services.database import DatabaseService
from repo_knowledge.services.identity import chunk_id, vector_id
from repo_knowledge.services.locks import KeyedLock
from repo_knowledge.services.vector_db import VectorDBService

logger = logging.getLogger(__name__)


@dataclass
class ReindexResult:
    """Outcome of a successful reindex."""

    document_id: str
    chunks_written: int
    vectors_upserted: int
    stale_vectors_deleted: int


class DualStoreWriter:
    """
    Replaces a document's chunks and vectors.

    Order of operations:
        1. read the vector ids currently owned by the document
        2. delete them from the vector index (best-effort)
        3-5. delete chunk rows, upsert the document row, insert new chunk
           rows, all in one metadata store transaction
        6. upsert the new vectors

    The vector index is written last so a failure leaves chunk rows without
    vectors, never vectors without text. Steps 2 and 6 are outside the
    transaction; between commit and upsert the stores disagree.
    """

    def __init__(
        self,
        database: DatabaseService,
        vector_db: VectorDBService,
        locks: KeyedLock = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the writer.

        Args:
            database: Metadata store.
            vector_db: Vector index.
            locks: Per-document locks, shared by every writer of the process.
            clock: Source of epoch seconds for ``updated_at``.
        """
        self.database = database
        self.vector_db = vector_db
        self.locks = locks or KeyedLock()
        self.clock = clock

    @staticmethod
    def build_rows(
        document: Document, chunks: Sequence[TextChunk], embeddings: Sequence[List[float]]
    ) -> tuple[List[DocumentChunk], List[VectorRecord]]:
        """Derive chunk rows and vector records sharing the same ids."""
        rows: List[DocumentChunk] = []
        records: List[VectorRecord] = []
        for chunk, embedding in zip(chunks, embeddings):
            cid = chunk_id(document.id, chunk.index)
            rows.append(
                DocumentChunk(
                    id=cid,
                    document_id=document.id,
                    chunk_index=chunk.index,
                    text=chunk.text,
                    word_count=chunk.word_count,
                    vector_id=vector_id(document.id, chunk.index),
                )
            )
            records.append(
                VectorRecord(
                    id=cid,
                    embedding=list(embedding),
                    metadata={
                        "chunk_id": cid,
                        "document_id": document.id,
                        "file_path": document.file_path,
                        "topic": document.topic,
                        "folder": document.folder,
                        "chunk_index": chunk.index,
                    },
                )
            )
        return rows, records

    async def reindex(
        self,
        document: Document,
        chunks: Sequence[TextChunk],
        embeddings: Sequence[List[float]],
    ) -> ReindexResult:
        """
        Make both stores reflect exactly this document's chunks.

        Args:
            document: Document being written.
            chunks: Chunker output for the document content.
            embeddings: One vector per chunk, same order.

        Returns:
            Counts of what was written.

        Raises:
            ValueError: If chunks and embeddings differ in length.
            DatabaseError: If the metadata store read or transaction fails.
            ReindexError: If the vector upsert fails after the metadata commit.
        """
        if len(chunks) != len(embeddings):
            raise ValueError(
                f"Chunks and embeddings must have the same length "
                f"({len(chunks)} != {len(embeddings)})")

        rows, records = self.build_rows(document, chunks, embeddings)

        async with self.locks.hold(document.id):
            start_time = time.time()

            stale_ids = await self.database.get_vector_ids(document.id)
            stale_deleted = 0
            if stale_ids:
                try:
                    await self.vector_db.delete_ids(stale_ids)
                    stale_deleted = len(stale_ids)
                    logger.info(
                        f"Deleted {stale_deleted} stale vectors for {document.id}")
                except VectorDBError as e:
                    stale_vector_deletes_failed_total.inc()
                    logger.warning(
                        f"Could not delete stale vectors for {document.id}, "
                        f"continuing: {str(e)}")

            await self.database.replace_document(
                document, rows, updated_at=int(self.clock()))

            try:
                upserted = await self.vector_db.upsert_records(records)
            except VectorDBError as e:
                raise ReindexError(
                    f"Metadata for {document.id} committed but vector upsert failed: {str(e)}",
                    chunks_written=len(rows),
                ) from e

            reindex_duration_seconds.observe(time.time() - start_time)

        logger.info(
            f"Reindexed {document.file_path} as {document.id}: "
            f"{len(rows)} chunks, {upserted} vectors")
        return ReindexResult(
            document_id=document.id,
            chunks_written=len(rows),
            vectors_upserted=upserted,
            stale_vectors_deleted=stale_deleted,
        )
