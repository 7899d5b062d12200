"""Pydantic models for the ingest API."""

from typing import List, Optional

from pydantic import BaseModel, Field

from repo_knowledge.models.sync_run import SyncRun


class SourceFile(BaseModel):
    """A changed file handed over by the external enumerator."""

    path: str = Field(..., min_length=1)
    content: str


class IngestRequest(BaseModel):
    """Model for triggering an indexing run."""

    source_revision: str = ""
    files: List[SourceFile] = Field(default_factory=list)


class SyncRunListResponse(BaseModel):
    """Model for sync run list response."""

    runs: List[SyncRun]
    limit: int


class StaleRunsResponse(BaseModel):
    """Model for the stale-run reconciliation response."""

    marked_failed: int


class StoreStatusResponse(BaseModel):
    """Model for the store consistency report."""

    documents: int
    chunks: int
    chunks_without_vector: int
    vector_points: Optional[int] = None
    consistent: bool
    warnings: List[str] = Field(default_factory=list)
    running_runs: int = 0
    recent_runs: List[SyncRun] = Field(default_factory=list)
