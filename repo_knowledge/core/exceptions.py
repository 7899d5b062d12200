"""Custom exceptions for the application."""


class VectorDBError(Exception):
    """Raised when vector database operations fail."""

    pass


class EmbeddingError(Exception):
    """Raised when embedding generation fails."""

    pass


class CacheError(Exception):
    """Raised when cache operations fail."""

    pass


class DatabaseError(Exception):
    """Raised when database operations fail."""

    pass


class ReindexError(Exception):
    """Raised when the vector index write fails after metadata was committed."""

    def __init__(self, message: str, chunks_written: int = 0) -> None:
        super().__init__(message)
        self.chunks_written = chunks_written


class PipelineFatalError(Exception):
    """Raised when an indexing run cannot proceed at all."""

    pass
