"""Document models for the knowledge index."""

from typing import List, Optional

from pydantic import BaseModel, Field


class Document(BaseModel):
    """One version of a source file, identified by its content hash."""

    id: str
    file_path: str
    file_name: str
    folder: str
    topic: str
    file_type: str
    content_hash: str
    size_bytes: int = Field(ge=0)
    source_revision: str = ""
    updated_at: Optional[int] = None

    class Config:
        """Pydantic config."""

        from_attributes = True


class TextChunk(BaseModel):
    """Chunker output: a slice of document text before it has an identity."""

    text: str
    word_count: int
    index: int = Field(ge=0)


class DocumentChunk(BaseModel):
    """Chunk row stored in the metadata store."""

    id: str
    document_id: str
    chunk_index: int
    text: str
    word_count: int
    vector_id: str


class VectorRecord(BaseModel):
    """Vector index counterpart of a chunk. Metadata never carries the text."""

    id: str
    embedding: List[float]
    metadata: dict = Field(default_factory=dict)
