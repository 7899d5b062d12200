"""Unit tests for the ingest HTTP entry point."""

import asyncio
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from repo_knowledge.core.dependencies import (
    get_ledger,
    get_pipeline,
    get_run_lock,
    get_status_service,
)
from repo_knowledge.ingest_service import app
from repo_knowledge.services.pipeline import IndexingPipeline
from repo_knowledge.services.status import StatusService
from repo_knowledge.services.sync_ledger import SyncLedger
from tests.fakes import FakeDatabase, FakeVectorDB

NOTE = "A note about deployments with comfortably more than ten words inside."


@pytest.fixture()
def client(
    pipeline: IndexingPipeline,
    ledger: SyncLedger,
    database: FakeDatabase,
    vector_db: FakeVectorDB,
) -> Iterator[TestClient]:
    status_service = StatusService(database, vector_db, ledger)
    run_lock = asyncio.Lock()
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_status_service] = lambda: status_service
    app.dependency_overrides[get_run_lock] = lambda: run_lock
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_ingest_returns_run_summary(client: TestClient, database: FakeDatabase) -> None:
    response = client.post(
        "/ingest",
        json={
            "source_revision": "abc123",
            "files": [
                {"path": "ops/deploy.md", "content": NOTE},
                {"path": "ops/diagram.png", "content": "png"},
            ],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["files_processed"] == 1
    assert body["files_skipped"] == 1
    assert body["chunks_created"] == 1
    assert database.runs[body["run_id"]]["source_revision"] == "abc123"


def test_ingest_fatal_error_is_server_error(
    client: TestClient, vector_db: FakeVectorDB, database: FakeDatabase
) -> None:
    vector_db.fail_ensure = True

    response = client.post("/ingest", json={"files": [{"path": "a.md", "content": NOTE}]})

    assert response.status_code == 500
    assert [run["status"] for run in database.runs.values()] == ["failed"]


def test_ingest_rejects_empty_path(client: TestClient) -> None:
    response = client.post("/ingest", json={"files": [{"path": "", "content": NOTE}]})
    assert response.status_code == 422


def test_sync_runs_listing(client: TestClient) -> None:
    client.post("/ingest", json={"source_revision": "one", "files": []})
    client.post("/ingest", json={"source_revision": "two", "files": []})

    response = client.get("/api/sync-runs", params={"limit": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["limit"] == 1
    assert [run["source_revision"] for run in body["runs"]] == ["two"]


def test_reconcile_marks_stale_runs(client: TestClient, database: FakeDatabase) -> None:
    database.runs[99] = {
        "id": 99,
        "started_at": 10,
        "completed_at": None,
        "status": "running",
        "source_revision": "",
        "files_processed": 0,
        "chunks_created": 0,
        "vectors_uploaded": 0,
        "error_message": None,
    }

    response = client.post("/api/sync-runs/reconcile", params={"older_than_seconds": 60})

    assert response.status_code == 200
    assert response.json() == {"marked_failed": 1}
    assert database.runs[99]["status"] == "failed"


def test_status_report_flags_missing_vectors(
    client: TestClient, vector_db: FakeVectorDB
) -> None:
    client.post("/ingest", json={"files": [{"path": "a.md", "content": NOTE}]})
    assert client.get("/api/status").json()["consistent"] is True

    vector_db.points.clear()
    body = client.get("/api/status").json()

    assert body["consistent"] is False
    assert body["chunks"] == 1
    assert body["vector_points"] == 0
    assert any("no vector point" in warning for warning in body["warnings"])
