"""Consistency report across the metadata store, vector index and sync log."""

import logging

from repo_knowledge.core.exceptions import VectorDBError
from repo_knowledge.models.ingest_api import StoreStatusResponse
from repo_knowledge.models.sync_run import SyncStatus
from repo_knowledge.services.database import DatabaseService
from repo_knowledge.services.sync_ledger import SyncLedger
from repo_knowledge.services.vector_db import VectorDBService

logger = logging.getLogger(__name__)


class StatusService:
    """Compares what both stores hold and summarises recent runs."""

    def __init__(
        self, database: DatabaseService, vector_db: VectorDBService, ledger: SyncLedger
    ) -> None:
        self.database = database
        self.vector_db = vector_db
        self.ledger = ledger

    async def report(self, recent_limit: int = 5) -> StoreStatusResponse:
        """
        Build the store consistency report.

        Every chunk row should have exactly one vector point. A point count
        above the chunk count means stale vectors survived a failed delete;
        below means a vector upsert failed after its metadata commit.

        Args:
            recent_limit: Number of recent sync runs to include.

        Returns:
            Status report.

        Raises:
            DatabaseError: If the metadata store cannot be read.
        """
        counts = await self.database.count_rows()
        warnings = []

        vector_points = None
        try:
            vector_points = await self.vector_db.count_points()
        except VectorDBError as e:
            logger.warning(f"Could not count vector points: {str(e)}")
            warnings.append(f"Vector index unavailable: {str(e)}")

        if counts["chunks_without_vector"]:
            warnings.append(
                f"{counts['chunks_without_vector']} chunks have no vector id")

        if vector_points is not None and vector_points != counts["chunks"]:
            if vector_points > counts["chunks"]:
                warnings.append(
                    f"{vector_points - counts['chunks']} vector points have no chunk row "
                    f"(stale vectors)")
            else:
                warnings.append(
                    f"{counts['chunks'] - vector_points} chunk rows have no vector point "
                    f"(failed upserts)")

        recent = await self.ledger.recent_runs(recent_limit)
        running = sum(1 for run in recent if run.status == SyncStatus.RUNNING)
        if running:
            warnings.append(f"{running} recent runs are still marked running")

        return StoreStatusResponse(
            documents=counts["documents"],
            chunks=counts["chunks"],
            chunks_without_vector=counts["chunks_without_vector"],
            vector_points=vector_points,
            consistent=not warnings,
            warnings=warnings,
            running_runs=running,
            recent_runs=recent,
        )
