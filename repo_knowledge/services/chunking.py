"""Document chunking service."""

from dataclasses import dataclass
from typing import List

from repo_knowledge.core.config import settings
from repo_knowledge.models.document import TextChunk


@dataclass(frozen=True)
class ChunkingConfig:
    """Chunking parameters. Sizes are in words."""

    chunk_size: int = 512
    min_chunk_size: int = 10
    overlap_lines: int = 3

    @classmethod
    def from_settings(cls) -> "ChunkingConfig":
        return cls(
            chunk_size=settings.chunk_size,
            min_chunk_size=settings.min_chunk_size,
            overlap_lines=settings.chunk_overlap_lines,
        )


def count_words(text: str) -> int:
    return len(text.split())


class ChunkingService:
    """Service for chunking documents into overlapping, line-bounded pieces."""

    def __init__(self, config: ChunkingConfig = None) -> None:
        """
        Initialize the chunking service.

        Args:
            config: Chunking parameters; defaults come from settings.
        """
        self.config = config or ChunkingConfig.from_settings()

    def chunk(self, text: str) -> List[TextChunk]:
        """
        Split text into chunks of roughly ``chunk_size`` words.

        A line is never split, so a chunk can exceed ``chunk_size`` when a
        single line does. Each new chunk starts with the last
        ``overlap_lines`` lines of the previous buffer. Buffers below
        ``min_chunk_size`` words are dropped.

        Args:
            text: Document content.

        Returns:
            Ordered chunks with contiguous indexes.
        """
        chunks: List[TextChunk] = []
        buffer: List[str] = []
        buffer_words = 0

        for line in text.split("\n"):
            line_words = count_words(line)

            if buffer_words + line_words > self.config.chunk_size and buffer_words > 0:
                self._emit(chunks, buffer, buffer_words)
                overlap = buffer[-self.config.overlap_lines:] if self.config.overlap_lines > 0 else []
                buffer = overlap + [line]
                buffer_words = sum(count_words(b) for b in buffer)
            else:
                buffer.append(line)
                buffer_words += line_words

        self._emit(chunks, buffer, buffer_words)
        return chunks

    def _emit(self, chunks: List[TextChunk], buffer: List[str], words: int) -> None:
        if words == 0 or words < self.config.min_chunk_size:
            return
        chunks.append(
            TextChunk(
                text="\n".join(buffer).strip(),
                word_count=words,
                index=len(chunks),
            )
        )
