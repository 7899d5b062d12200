"""Indexing pipeline: files in, one audited sync run out."""

import logging
import time
from typing import List, Sequence

from repo_knowledge.core.config import settings
from repo_knowledge.core.exceptions import EmbeddingError, PipelineFatalError, ReindexError
from repo_knowledge.models.ingest_api import SourceFile
from repo_knowledge.models.sync_run import RunStats, RunSummary, SyncStatus
from repo_knowledge.monitoring.metrics import (
    chunks_created_total,
    embedding_duration_seconds,
    files_failed_total,
    files_processed_total,
    vectors_uploaded_total,
)
from repo_knowledge.services.chunking import ChunkingService
from repo_knowledge.services.embedding import EmbeddingService
from repo_knowledge.services.file_filter import FileFilterConfig, select_paths
from repo_knowledge.services.identity import build_document
from repo_knowledge.services.retry import retry_with_backoff
from repo_knowledge.services.sync_ledger import SyncLedger
from repo_knowledge.services.vector_db import VectorDBService
from repo_knowledge.services.writer import DualStoreWriter

logger = logging.getLogger(__name__)


class IndexingPipeline:
    """Chunks, embeds and writes changed files, recording the run in the ledger."""

    def __init__(
        self,
        chunking_service: ChunkingService,
        embedding_service: EmbeddingService,
        writer: DualStoreWriter,
        ledger: SyncLedger,
        vector_db: VectorDBService,
        file_filter: FileFilterConfig = None,
        max_files: int = None,
        embedding_retries: int = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            chunking_service: Splits file content into chunks.
            embedding_service: Embeds chunk texts.
            writer: Dual-store writer.
            ledger: Sync ledger.
            vector_db: Vector index, checked before any file is touched.
            file_filter: Which paths are indexable.
            max_files: Cap on files per run; 0 means unlimited.
            embedding_retries: Retries of a file's embedding batch.
        """
        self.chunking_service = chunking_service
        self.embedding_service = embedding_service
        self.writer = writer
        self.ledger = ledger
        self.vector_db = vector_db
        self.file_filter = file_filter or FileFilterConfig.from_settings()
        self.max_files = settings.max_files_per_run if max_files is None else max_files
        self.embedding_retries = (
            settings.embedding_max_retries if embedding_retries is None else embedding_retries
        )

    async def run(self, files: Sequence[SourceFile], source_revision: str = "") -> RunSummary:
        """
        Index a batch of changed files as one sync run.

        A failing file is recorded and skipped; the run continues. Only a
        pipeline-level error aborts the run, which is then closed as failed.

        Args:
            files: Changed files with their content.
            source_revision: Commit id the content was read at.

        Returns:
            Run summary.

        Raises:
            PipelineFatalError: If the run could not proceed.
        """
        stats = RunStats()
        run_id = await self.ledger.start(source_revision)

        try:
            await self._preflight()
            selected = self._select(files, stats)
            logger.info(
                f"Run {run_id}: {len(selected)} files to index, "
                f"{stats.files_skipped} skipped")

            for source_file in selected:
                await self._process_file(source_file, source_revision, stats)
        except Exception as e:
            message = f"Pipeline error: {str(e)}"
            summary = stats.error_summary()
            if summary:
                message = f"{message}; {summary}"
            logger.error(f"Run {run_id} failed: {message}")
            await self.ledger.complete(run_id, stats, SyncStatus.FAILED, message)
            if isinstance(e, PipelineFatalError):
                raise
            raise PipelineFatalError(message) from e

        status = stats.derive_status()
        await self.ledger.complete(run_id, stats, status, stats.error_summary())

        return RunSummary(
            run_id=run_id,
            status=status,
            files_processed=stats.files_processed,
            files_failed=stats.files_failed,
            files_skipped=stats.files_skipped,
            chunks_created=stats.chunks_created,
            vectors_uploaded=stats.vectors_uploaded,
            errors=list(stats.errors),
        )

    async def _preflight(self) -> None:
        """Fail the run before touching files when a dependency is unusable."""
        self.embedding_service.provider.check_configured()
        try:
            await self.vector_db.ensure_collection()
        except Exception as e:
            raise PipelineFatalError(
                f"Vector index unavailable: {str(e)}") from e

    def _select(self, files: Sequence[SourceFile], stats: RunStats) -> List[SourceFile]:
        """De-duplicate by path, apply the file filter and the per-run cap."""
        by_path = {}
        for source_file in files:
            by_path.setdefault(source_file.path, source_file)

        selected_paths, skipped_paths = select_paths(by_path, self.file_filter)
        for path in skipped_paths:
            logger.debug(f"Skipping non-text file {path}")
        stats.files_skipped += len(skipped_paths)
        selected: List[SourceFile] = [by_path[path] for path in selected_paths]

        if self.max_files and len(selected) > self.max_files:
            logger.warning(
                f"Found {len(selected)} files, limiting to {self.max_files}")
            stats.files_skipped += len(selected) - self.max_files
            selected = selected[:self.max_files]

        return selected

    async def _process_file(
        self, source_file: SourceFile, source_revision: str, stats: RunStats
    ) -> None:
        """Reindex one file, recording its outcome in ``stats``."""
        path = source_file.path
        try:
            document = build_document(path, source_file.content, source_revision)
            chunks = self.chunking_service.chunk(source_file.content)
            logger.info(f"Processing {path}: {len(chunks)} chunks")

            embeddings = []
            if chunks:
                texts = [chunk.text for chunk in chunks]
                start_time = time.time()

                async def embed():
                    return await self.embedding_service.embed_batch(texts)

                embeddings = await retry_with_backoff(
                    embed,
                    max_retries=self.embedding_retries,
                    exceptions=(EmbeddingError,),
                )
                embedding_duration_seconds.observe(time.time() - start_time)

            result = await self.writer.reindex(document, chunks, embeddings)
        except ReindexError as e:
            self._record_failure(stats, path, e, e.chunks_written)
        except Exception as e:
            self._record_failure(stats, path, e, 0)
        else:
            stats.record_success(result.chunks_written, result.vectors_upserted)
            files_processed_total.inc()
            chunks_created_total.inc(result.chunks_written)
            vectors_uploaded_total.inc(result.vectors_upserted)

    def _record_failure(self, stats: RunStats, path: str, error: Exception, chunks: int) -> None:
        logger.error(f"Error processing {path}: {str(error)}")
        stats.record_failure(path, str(error), chunks=chunks)
        files_failed_total.inc()
        if chunks:
            chunks_created_total.inc(chunks)
