"""Prometheus metrics for monitoring."""

from prometheus_client import Counter, Histogram

search_counter = Counter("kb_search_requests_total",
                         "Total number of search requests processed")
search_errors_total = Counter(
    "kb_search_errors_total", "Total number of search errors")
search_latency_seconds = Histogram(
    "kb_search_latency_seconds", "Search latency in seconds", buckets=[0.1, 0.5, 1.0, 2.0, 5.0])
search_matches_returned = Histogram(
    "kb_search_matches_returned", "Matches returned per search", buckets=[0, 1, 3, 5, 10, 20])

ingest_runs_total = Counter(
    "kb_ingest_runs_total", "Indexing runs by terminal status", ["status"])
files_processed_total = Counter(
    "kb_files_processed_total", "Files reindexed successfully")
files_failed_total = Counter(
    "kb_files_failed_total", "Files whose reindex failed")
chunks_created_total = Counter(
    "kb_chunks_created_total", "Chunk rows written to the metadata store")
vectors_uploaded_total = Counter(
    "kb_vectors_uploaded_total", "Vectors upserted into the vector index")
stale_vector_deletes_failed_total = Counter(
    "kb_stale_vector_deletes_failed_total",
    "Best-effort stale vector deletions that failed")
reindex_duration_seconds = Histogram(
    "kb_reindex_duration_seconds", "Per-document reindex duration", buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0])
embedding_duration_seconds = Histogram(
    "kb_embedding_duration_seconds", "Per-document embedding duration", buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0])
