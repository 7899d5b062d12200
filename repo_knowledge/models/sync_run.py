"""Sync ledger models."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class SyncStatus(str, Enum):
    """Lifecycle states of an indexing run."""

    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


class SyncRun(BaseModel):
    """One row of the sync log."""

    id: int
    started_at: int
    completed_at: Optional[int] = None
    status: SyncStatus
    source_revision: Optional[str] = None
    files_processed: int = 0
    chunks_created: int = 0
    vectors_uploaded: int = 0
    error_message: Optional[str] = None

    class Config:
        """Pydantic config."""

        from_attributes = True


class RunStats(BaseModel):
    """In-memory aggregation of per-file outcomes, flushed once per run."""

    files_processed: int = 0
    files_failed: int = 0
    files_skipped: int = 0
    chunks_created: int = 0
    vectors_uploaded: int = 0
    errors: List[str] = Field(default_factory=list)

    def record_success(self, chunks: int, vectors: int) -> None:
        """Count a file that was fully reindexed."""
        self.files_processed += 1
        self.chunks_created += chunks
        self.vectors_uploaded += vectors

    def record_failure(self, file_path: str, error: str, chunks: int = 0) -> None:
        """Count a failed file. ``chunks`` are rows that landed before the failure."""
        self.files_failed += 1
        self.chunks_created += chunks
        self.errors.append(f"{file_path}: {error}")

    def error_summary(self) -> Optional[str]:
        """Concatenate per-file errors, or None when there were none."""
        if not self.errors:
            return None
        return "; ".join(self.errors)

    def derive_status(self) -> SyncStatus:
        """Terminal status for a run that reached the end of its file loop."""
        if self.files_failed > 0:
            return SyncStatus.COMPLETED_WITH_ERRORS
        return SyncStatus.COMPLETED


class RunSummary(BaseModel):
    """Result of an indexing run returned to the caller."""

    run_id: int
    status: SyncStatus
    files_processed: int
    files_failed: int
    files_skipped: int
    chunks_created: int
    vectors_uploaded: int
    errors: List[str] = Field(default_factory=list)
