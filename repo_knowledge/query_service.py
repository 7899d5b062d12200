"""Query Service: semantic search over the indexed repository."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from repo_knowledge.api.health import check_all_dependencies, check_readiness
from repo_knowledge.core.config import settings
from repo_knowledge.core.dependencies import get_retrieval_service, services
from repo_knowledge.core.exceptions import DatabaseError, EmbeddingError, VectorDBError
from repo_knowledge.models.search import SearchRequest, SearchResponse, TextContent
from repo_knowledge.monitoring.metrics import search_counter, search_errors_total
from repo_knowledge.services.retrieval import RetrievalService, render_matches

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    await services.initialize()
    logger.info("Query Service started")
    yield
    await services.shutdown()
    logger.info("Query Service stopped")


app = FastAPI(title="Query Service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    retrieval: RetrievalService = Depends(get_retrieval_service),
) -> SearchResponse:
    """
    Search the knowledge base.

    Args:
        request: Search request.

    Returns:
        One text block with the formatted matches.
    """
    start_time = time.time()
    search_counter.inc()

    try:
        matches = await retrieval.search(
            query=request.query,
            limit=request.limit,
            min_score=request.min_score,
            topic=request.topic,
        )
    except (EmbeddingError, VectorDBError, DatabaseError) as e:
        logger.error(f"Search failed: {str(e)}")
        search_errors_total.inc()
        raise HTTPException(status_code=500, detail=f"Search failed: {str(e)}")

    latency_ms = (time.time() - start_time) * 1000
    logger.info(f"Search processed in {latency_ms:.2f}ms")
    return SearchResponse(content=[TextContent(text=render_matches(matches))])


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
        services.cache_service,
    )
    return {"service": settings.query_service_name, **result}


@app.get("/ready")
async def readiness() -> dict:
    """
    Readiness check endpoint.

    Returns:
        Readiness status.
    """
    result = await check_readiness(services.vector_db, services.database)
    return {"service": settings.query_service_name, **result}
