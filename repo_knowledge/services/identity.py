"""Content-derived identifiers for documents, chunks and vector points."""

import hashlib
import uuid

from repo_knowledge.models.document import Document

DOCUMENT_ID_PREFIX = "doc_"
DOCUMENT_ID_HASH_LENGTH = 16

# Qdrant only accepts UUID or integer point ids, so vector points are keyed
# by a uuid5 of the chunk id.
POINT_NAMESPACE = uuid.UUID("6f1c1b2e-8a4d-5e3f-9b7a-2c4d6e8f0a1b")


def content_hash(content: str) -> str:
    """Full hex sha256 digest of the UTF-8 encoded content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def document_id(content: str) -> str:
    """
    Derive a document id from content alone.

    Identical content always yields the same id regardless of its path.
    """
    return DOCUMENT_ID_PREFIX + content_hash(content)[:DOCUMENT_ID_HASH_LENGTH]


def chunk_id(doc_id: str, index: int) -> str:
    return f"{doc_id}_chunk_{index}"


def vector_id(doc_id: str, index: int) -> str:
    return chunk_id(doc_id, index)


def point_id(chunk_or_vector_id: str) -> str:
    """Deterministic UUID for a chunk id in the vector index."""
    return str(uuid.uuid5(POINT_NAMESPACE, chunk_or_vector_id))


def build_document(file_path: str, content: str, source_revision: str = "") -> Document:
    """
    Describe a source file as a Document.

    Args:
        file_path: Repository-relative path, "/"-separated.
        content: Full file content.
        source_revision: Commit id (or branch) the content was read at.

    Returns:
        Document with identity and path-derived attributes.
    """
    parts = [p for p in file_path.split("/") if p]
    file_name = parts.pop() if parts else "unknown"
    folder = "/".join(parts) or "root"
    topic = parts[0] if parts else "general"
    file_type = file_name.rsplit(".", 1)[1] if "." in file_name.lstrip(".") else "txt"

    digest = content_hash(content)
    return Document(
        id=DOCUMENT_ID_PREFIX + digest[:DOCUMENT_ID_HASH_LENGTH],
        file_path=file_path,
        file_name=file_name,
        folder=folder,
        topic=topic,
        file_type=file_type,
        content_hash=digest,
        size_bytes=len(content.encode("utf-8")),
        source_revision=source_revision,
    )
