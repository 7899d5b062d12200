"""Ingest Service: indexes changed repository files and audits each run."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from repo_knowledge.api.health import check_all_dependencies, check_readiness
from repo_knowledge.core.config import settings
from repo_knowledge.core.dependencies import (
    get_ledger,
    get_pipeline,
    get_run_lock,
    get_status_service,
    services,
)
from repo_knowledge.core.exceptions import DatabaseError, PipelineFatalError
from repo_knowledge.models.ingest_api import (
    IngestRequest,
    StaleRunsResponse,
    StoreStatusResponse,
    SyncRunListResponse,
)
from repo_knowledge.models.sync_run import RunSummary
from repo_knowledge.services.pipeline import IndexingPipeline
from repo_knowledge.services.status import StatusService
from repo_knowledge.services.sync_ledger import SyncLedger

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    await services.initialize()
    logger.info("Ingest Service started")
    yield
    await services.shutdown()
    logger.info("Ingest Service stopped")


app = FastAPI(title="Ingest Service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/ingest", response_model=RunSummary)
async def ingest(
    request: IngestRequest,
    pipeline: IndexingPipeline = Depends(get_pipeline),
    run_lock: asyncio.Lock = Depends(get_run_lock),
) -> RunSummary:
    """
    Index a batch of changed files as one sync run.

    Concurrent requests queue behind the run in progress.

    Args:
        request: Changed files and the revision they were read at.

    Returns:
        Run summary.
    """
    if run_lock.locked():
        logger.info("Another ingest run is in progress, waiting")

    async with run_lock:
        try:
            summary = await pipeline.run(request.files, request.source_revision)
        except PipelineFatalError as e:
            raise HTTPException(status_code=500, detail=f"Ingest failed: {str(e)}")
        except DatabaseError as e:
            logger.error(f"Ingest could not record its run: {str(e)}")
            raise HTTPException(status_code=500, detail=str(e))

    return summary


@app.get("/api/sync-runs", response_model=SyncRunListResponse)
async def list_sync_runs(
    limit: int = Query(20, ge=1, le=100),
    ledger: SyncLedger = Depends(get_ledger),
) -> SyncRunListResponse:
    """
    List recent sync runs, newest first.

    Args:
        limit: Maximum number of runs to return.

    Returns:
        Recent runs.
    """
    try:
        runs = await ledger.recent_runs(limit)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return SyncRunListResponse(runs=runs, limit=limit)


@app.post("/api/sync-runs/reconcile", response_model=StaleRunsResponse)
async def reconcile_sync_runs(
    older_than_seconds: Optional[int] = Query(None, ge=0),
    ledger: SyncLedger = Depends(get_ledger),
) -> StaleRunsResponse:
    """
    Mark abandoned running runs as failed.

    Args:
        older_than_seconds: Age threshold; defaults to settings.

    Returns:
        Number of runs marked failed.
    """
    try:
        count = await ledger.mark_stale_runs(older_than_seconds)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return StaleRunsResponse(marked_failed=count)


@app.get("/api/status", response_model=StoreStatusResponse)
async def store_status(
    status_service: StatusService = Depends(get_status_service),
) -> StoreStatusResponse:
    """
    Report metadata store and vector index consistency.

    Returns:
        Status report.
    """
    try:
        return await status_service.report()
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
async def health() -> dict:
    """
    Health check endpoint with dependency verification.

    Returns:
        Health status with service dependencies.
    """
    result = await check_all_dependencies(
        services.vector_db,
        services.database,
        services.embedding_service.provider,
    )
    return {"service": settings.ingest_service_name, **result}


@app.get("/ready")
async def readiness() -> dict:
    """
    Readiness check endpoint.

    Returns:
        Readiness status.
    """
    result = await check_readiness(services.vector_db, services.database)
    return {"service": settings.ingest_service_name, **result}
