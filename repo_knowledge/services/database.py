"""Database service for PostgreSQL operations."""

import asyncpg
from typing import Dict, List, Optional, Sequence

from repo_knowledge.core.config import settings
from repo_knowledge.core.exceptions import DatabaseError
from repo_knowledge.models.document import Document, DocumentChunk
from repo_knowledge.models.sync_run import SyncRun

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        id TEXT PRIMARY KEY,
        file_path TEXT NOT NULL,
        file_name TEXT NOT NULL,
        folder TEXT NOT NULL,
        topic TEXT NOT NULL,
        file_type TEXT NOT NULL,
        content_hash TEXT NOT NULL,
        size_bytes BIGINT NOT NULL,
        github_sha TEXT,
        updated_at BIGINT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chunks (
        id TEXT PRIMARY KEY,
        document_id TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
        chunk_index INTEGER NOT NULL,
        text TEXT NOT NULL,
        word_count INTEGER NOT NULL,
        vector_id TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_chunks_document_id ON chunks (document_id)",
    """
    CREATE TABLE IF NOT EXISTS sync_log (
        id BIGSERIAL PRIMARY KEY,
        sync_started_at BIGINT NOT NULL,
        sync_completed_at BIGINT,
        status TEXT NOT NULL,
        github_commit_sha TEXT,
        files_processed INTEGER NOT NULL DEFAULT 0,
        chunks_created INTEGER NOT NULL DEFAULT 0,
        vectors_uploaded INTEGER NOT NULL DEFAULT 0,
        error_message TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_sync_log_status ON sync_log (status)",
)


def _row_to_sync_run(row) -> SyncRun:
    return SyncRun(
        id=row["id"],
        started_at=row["sync_started_at"],
        completed_at=row["sync_completed_at"],
        status=row["status"],
        source_revision=row["github_commit_sha"],
        files_processed=row["files_processed"],
        chunks_created=row["chunks_created"],
        vectors_uploaded=row["vectors_uploaded"],
        error_message=row["error_message"],
    )


class DatabaseService:
    """Service for PostgreSQL database operations."""

    def __init__(self, dsn: str = None) -> None:
        """Initialize database service."""
        self.dsn = dsn or settings.postgres_url
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self) -> None:
        """Create connection pool."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
            )
        except Exception as e:
            raise DatabaseError(
                f"Failed to connect to database: {str(e)}") from e

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()

    def _require_pool(self) -> asyncpg.Pool:
        if not self.pool:
            raise DatabaseError("Database not connected")
        return self.pool

    async def init_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                for statement in SCHEMA_STATEMENTS:
                    await conn.execute(statement)
        except Exception as e:
            raise DatabaseError(f"Failed to create schema: {str(e)}") from e

    async def get_vector_ids(self, document_id: str) -> List[str]:
        """
        Get vector ids of all chunks owned by a document.

        Args:
            document_id: Document id.

        Returns:
            Vector ids, in chunk order.
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT id, vector_id
                    FROM chunks
                    WHERE document_id = $1
                    ORDER BY chunk_index
                    """,
                    document_id,
                )
                return [row["vector_id"] or row["id"] for row in rows]
        except Exception as e:
            raise DatabaseError(f"Failed to fetch chunk ids: {str(e)}") from e

    async def replace_document(
        self, document: Document, chunks: Sequence[DocumentChunk], updated_at: int
    ) -> None:
        """
        Replace a document row and all of its chunks in one transaction.

        Args:
            document: Document to upsert.
            chunks: New chunk rows; existing chunks of the document are deleted.
            updated_at: Epoch seconds stored on the document row.
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        "DELETE FROM chunks WHERE document_id = $1",
                        document.id,
                    )
                    await conn.execute(
                        """
                        INSERT INTO documents
                            (id, file_path, file_name, folder, topic, file_type,
                             content_hash, size_bytes, github_sha, updated_at)
                        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                        ON CONFLICT (id) DO UPDATE SET
                            file_path = EXCLUDED.file_path,
                            file_name = EXCLUDED.file_name,
                            folder = EXCLUDED.folder,
                            topic = EXCLUDED.topic,
                            file_type = EXCLUDED.file_type,
                            content_hash = EXCLUDED.content_hash,
                            size_bytes = EXCLUDED.size_bytes,
                            github_sha = EXCLUDED.github_sha,
                            updated_at = EXCLUDED.updated_at
                        """,
                        document.id,
                        document.file_path,
                        document.file_name,
                        document.folder,
                        document.topic,
                        document.file_type,
                        document.content_hash,
                        document.size_bytes,
                        document.source_revision,
                        updated_at,
                    )
                    if chunks:
                        await conn.executemany(
                            """
                            INSERT INTO chunks
                                (id, document_id, chunk_index, text, word_count, vector_id)
                            VALUES ($1, $2, $3, $4, $5, $6)
                            """,
                            [
                                (
                                    chunk.id,
                                    chunk.document_id,
                                    chunk.chunk_index,
                                    chunk.text,
                                    chunk.word_count,
                                    chunk.vector_id,
                                )
                                for chunk in chunks
                            ],
                        )
        except Exception as e:
            raise DatabaseError(
                f"Failed to write document {document.id}: {str(e)}") from e

    async def get_chunk_texts(self, chunk_ids: Sequence[str]) -> Dict[str, str]:
        """
        Get chunk texts by id.

        Args:
            chunk_ids: Chunk ids to resolve.

        Returns:
            Mapping of chunk id to text; unknown ids are absent.
        """
        if not chunk_ids:
            return {}
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT id, text FROM chunks WHERE id = ANY($1::text[])",
                    list(chunk_ids),
                )
                return {row["id"]: row["text"] for row in rows}
        except Exception as e:
            raise DatabaseError(f"Failed to fetch chunk texts: {str(e)}") from e

    async def count_rows(self) -> Dict[str, int]:
        """
        Count documents and chunks.

        Returns:
            Counts keyed by "documents", "chunks" and "chunks_without_vector".
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                documents = await conn.fetchval("SELECT COUNT(*) FROM documents")
                chunks = await conn.fetchval("SELECT COUNT(*) FROM chunks")
                missing = await conn.fetchval(
                    "SELECT COUNT(*) FROM chunks WHERE vector_id IS NULL")
                return {
                    "documents": documents,
                    "chunks": chunks,
                    "chunks_without_vector": missing,
                }
        except Exception as e:
            raise DatabaseError(f"Failed to count rows: {str(e)}") from e

    async def insert_sync_run(self, started_at: int, source_revision: str) -> int:
        """
        Open a sync log row in the running state.

        Returns:
            Id of the new row.
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                return await conn.fetchval(
                    """
                    INSERT INTO sync_log (sync_started_at, github_commit_sha, status)
                    VALUES ($1, $2, 'running')
                    RETURNING id
                    """,
                    started_at,
                    source_revision,
                )
        except Exception as e:
            raise DatabaseError(f"Failed to start sync run: {str(e)}") from e

    async def complete_sync_run(
        self,
        run_id: int,
        completed_at: int,
        status: str,
        files_processed: int,
        chunks_created: int,
        vectors_uploaded: int,
        error_message: Optional[str],
    ) -> bool:
        """
        Move a running sync log row to a terminal state.

        Returns:
            True if a running row was updated.
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                result = await conn.execute(
                    """
                    UPDATE sync_log
                    SET sync_completed_at = $2,
                        status = $3,
                        files_processed = $4,
                        chunks_created = $5,
                        vectors_uploaded = $6,
                        error_message = $7
                    WHERE id = $1 AND status = 'running'
                    """,
                    run_id,
                    completed_at,
                    status,
                    files_processed,
                    chunks_created,
                    vectors_uploaded,
                    error_message,
                )
                return result == "UPDATE 1"
        except Exception as e:
            raise DatabaseError(f"Failed to complete sync run: {str(e)}") from e

    async def list_sync_runs(self, limit: int = 20) -> List[SyncRun]:
        """
        List sync runs, newest first.

        Args:
            limit: Maximum number of runs to return.
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT id, sync_started_at, sync_completed_at, status,
                           github_commit_sha, files_processed, chunks_created,
                           vectors_uploaded, error_message
                    FROM sync_log
                    ORDER BY sync_started_at DESC, id DESC
                    LIMIT $1
                    """,
                    limit,
                )
                return [_row_to_sync_run(row) for row in rows]
        except Exception as e:
            raise DatabaseError(f"Failed to fetch sync runs: {str(e)}") from e

    async def fail_stale_sync_runs(
        self, started_before: int, completed_at: int, error_message: str
    ) -> int:
        """
        Mark running rows started before a cutoff as failed.

        Returns:
            Number of rows updated.
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                result = await conn.execute(
                    """
                    UPDATE sync_log
                    SET status = 'failed',
                        sync_completed_at = $2,
                        error_message = $3
                    WHERE status = 'running' AND sync_started_at < $1
                    """,
                    started_before,
                    completed_at,
                    error_message,
                )
                return int(result.split()[-1])
        except Exception as e:
            raise DatabaseError(
                f"Failed to reconcile stale sync runs: {str(e)}") from e
