"""Sync ledger: one audited row per indexing run."""

import logging
import time
from typing import Callable, List, Optional

from repo_knowledge.core.config import settings
from repo_knowledge.models.sync_run import RunStats, SyncRun, SyncStatus
from repo_knowledge.monitoring.metrics import ingest_runs_total
from repo_knowledge.services.database import DatabaseService

logger = logging.getLogger(__name__)

STALE_RUN_MESSAGE = "Run abandoned: no terminal update before reconciliation"


class SyncLedger:
    """
    Records indexing runs in the sync log.

    A run is opened in the running state and updated exactly once at the end.
    Per-file outcomes are aggregated by the caller in ``RunStats`` and
    flushed with ``complete``; a crash mid-run leaves the row running until
    ``mark_stale_runs`` is invoked.
    """

    def __init__(self, database: DatabaseService, clock: Callable[[], float] = time.time) -> None:
        self.database = database
        self.clock = clock

    async def start(self, source_revision: str = "") -> int:
        """
        Open a run.

        Args:
            source_revision: Commit id or branch being indexed.

        Returns:
            Run id.
        """
        run_id = await self.database.insert_sync_run(int(self.clock()), source_revision)
        logger.info(f"Started sync run {run_id} at revision {source_revision or '-'}")
        return run_id

    async def complete(
        self,
        run_id: int,
        stats: RunStats,
        status: SyncStatus,
        error_summary: Optional[str] = None,
    ) -> None:
        """
        Close a run with its aggregated statistics.

        Args:
            run_id: Id returned by ``start``.
            stats: Aggregated per-file outcomes.
            status: Terminal status.
            error_summary: Error text stored on the row.
        """
        if status == SyncStatus.RUNNING:
            raise ValueError("A run cannot be completed in the running state")

        updated = await self.database.complete_sync_run(
            run_id,
            completed_at=int(self.clock()),
            status=status.value,
            files_processed=stats.files_processed,
            chunks_created=stats.chunks_created,
            vectors_uploaded=stats.vectors_uploaded,
            error_message=error_summary,
        )
        if not updated:
            logger.warning(f"Sync run {run_id} was not running; terminal update skipped")
            return

        ingest_runs_total.labels(status=status.value).inc()
        logger.info(
            f"Sync run {run_id} {status.value}: files={stats.files_processed} "
            f"failed={stats.files_failed} chunks={stats.chunks_created} "
            f"vectors={stats.vectors_uploaded}")

    async def mark_stale_runs(self, older_than_seconds: int = None) -> int:
        """
        Mark runs stuck in the running state as failed.

        Args:
            older_than_seconds: Minimum age of a running row to be considered stale.

        Returns:
            Number of runs marked failed.
        """
        older_than = settings.stale_run_seconds if older_than_seconds is None else older_than_seconds
        now = int(self.clock())
        count = await self.database.fail_stale_sync_runs(
            started_before=now - older_than,
            completed_at=now,
            error_message=STALE_RUN_MESSAGE,
        )
        if count:
            ingest_runs_total.labels(status=SyncStatus.FAILED.value).inc(count)
            logger.warning(f"Marked {count} stale sync runs as failed")
        return count

    async def recent_runs(self, limit: int = 20) -> List[SyncRun]:
        return await self.database.list_sync_runs(limit)
