"""In-memory fakes for the metadata store, vector index and embedding provider."""

from typing import Dict, List, Optional, Sequence

from repo_knowledge.core.exceptions import DatabaseError, PipelineFatalError, VectorDBError
from repo_knowledge.models.document import Document, DocumentChunk, VectorRecord
from repo_knowledge.models.sync_run import SyncRun
from repo_knowledge.services.embedding import EmbeddingProvider


class FakeClock:
    """Monotonic epoch seconds, one tick per call."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self.now = start

    def __call__(self) -> float:
        self.now += 1
        return float(self.now)


class FakeDatabase:
    """Dict-backed stand-in for DatabaseService."""

    def __init__(self, calls: Optional[List[str]] = None) -> None:
        self.calls = calls if calls is not None else []
        self.documents: Dict[str, Document] = {}
        self.chunks: Dict[str, DocumentChunk] = {}
        self.runs: Dict[int, dict] = {}
        self.pool = object()
        self.fail_replace = False
        self.fail_chunk_texts = False

    async def get_vector_ids(self, document_id: str) -> List[str]:
        self.calls.append("get_vector_ids")
        rows = sorted(
            (c for c in self.chunks.values() if c.document_id == document_id),
            key=lambda c: c.chunk_index,
        )
        return [c.vector_id or c.id for c in rows]

    async def replace_document(
        self, document: Document, chunks: Sequence[DocumentChunk], updated_at: int
    ) -> None:
        self.calls.append("replace_document")
        if self.fail_replace:
            raise DatabaseError(f"Failed to write document {document.id}: boom")
        for cid in [cid for cid, c in self.chunks.items() if c.document_id == document.id]:
            del self.chunks[cid]
        self.documents[document.id] = document.model_copy(update={"updated_at": updated_at})
        for chunk in chunks:
            self.chunks[chunk.id] = chunk

    async def get_chunk_texts(self, chunk_ids: Sequence[str]) -> Dict[str, str]:
        if self.fail_chunk_texts:
            raise DatabaseError("Failed to fetch chunk texts: boom")
        return {cid: self.chunks[cid].text for cid in chunk_ids if cid in self.chunks}

    async def count_rows(self) -> Dict[str, int]:
        return {
            "documents": len(self.documents),
            "chunks": len(self.chunks),
            "chunks_without_vector": sum(1 for c in self.chunks.values() if not c.vector_id),
        }

    async def insert_sync_run(self, started_at: int, source_revision: str) -> int:
        run_id = len(self.runs) + 1
        self.runs[run_id] = {
            "id": run_id,
            "started_at": started_at,
            "completed_at": None,
            "status": "running",
            "source_revision": source_revision,
            "files_processed": 0,
            "chunks_created": 0,
            "vectors_uploaded": 0,
            "error_message": None,
        }
        return run_id

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
        run = self.runs.get(run_id)
        if not run or run["status"] != "running":
            return False
        run.update(
            completed_at=completed_at,
            status=status,
            files_processed=files_processed,
            chunks_created=chunks_created,
            vectors_uploaded=vectors_uploaded,
            error_message=error_message,
        )
        return True

    async def list_sync_runs(self, limit: int = 20) -> List[SyncRun]:
        runs = sorted(self.runs.values(), key=lambda r: (r["started_at"], r["id"]), reverse=True)
        return [SyncRun(**run) for run in runs[:limit]]

    async def fail_stale_sync_runs(
        self, started_before: int, completed_at: int, error_message: str
    ) -> int:
        count = 0
        for run in self.runs.values():
            if run["status"] == "running" and run["started_at"] < started_before:
                run.update(status="failed", completed_at=completed_at, error_message=error_message)
                count += 1
        return count


class FakeVectorDB:
    """Dict-backed stand-in for VectorDBService."""

    def __init__(self, calls: Optional[List[str]] = None) -> None:
        self.calls = calls if calls is not None else []
        self.points: Dict[str, VectorRecord] = {}
        self.hits: Optional[List[dict]] = None
        self.last_search: Optional[dict] = None
        self.client = object()
        self.fail_upsert = False
        self.fail_delete = False
        self.fail_ensure = False
        self.fail_search = False
        self.fail_count = False

    async def ensure_collection(self) -> None:
        if self.fail_ensure:
            raise VectorDBError("Client not connected")

    async def upsert_records(self, records: Sequence[VectorRecord]) -> int:
        self.calls.append("upsert_records")
        if self.fail_upsert:
            raise VectorDBError("Failed to upsert vectors: boom")
        for record in records:
            self.points[record.id] = record
        return len(records)

    async def delete_ids(self, vector_ids: Sequence[str]) -> None:
        self.calls.append("delete_ids")
        if self.fail_delete:
            raise VectorDBError("Failed to delete vectors: boom")
        for vid in vector_ids:
            self.points.pop(vid, None)

    async def search(
        self, query_embedding: List[float], top_k: int = 5, topic: Optional[str] = None
    ) -> List[dict]:
        self.last_search = {"embedding": query_embedding, "top_k": top_k, "topic": topic}
        if self.fail_search:
            raise VectorDBError("Failed to search vectors: boom")
        if self.hits is not None:
            hits = self.hits
        else:
            hits = [
                {"id": record.id, "score": 1.0, "metadata": dict(record.metadata)}
                for record in self.points.values()
            ]
        if topic:
            hits = [h for h in hits if h["metadata"].get("topic") == topic]
        return hits[:top_k]

    async def count_points(self) -> int:
        if self.fail_count:
            raise VectorDBError("Failed to count vectors: boom")
        return len(self.points)


class FakeEmbeddingProvider(EmbeddingProvider):
    """Deterministic vectors derived from the text, no network."""

    model = "fake-embedding-model"

    def __init__(self, fail_on: Sequence[str] = (), configured: bool = True) -> None:
        self.fail_on = set(fail_on)
        self.configured = configured
        self.calls: List[str] = []

    def check_configured(self) -> None:
        if not self.configured:
            raise PipelineFatalError("Missing required configuration: FAKE_API_KEY")

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise RuntimeError(f"provider rejected input ({len(text)} chars)")
        return [float(len(text)), float(len(text.split())), 1.0]


