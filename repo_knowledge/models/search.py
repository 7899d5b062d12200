"""Pydantic models for the search entry point."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from repo_knowledge.core.config import settings


class SearchRequest(BaseModel):
    """Search tool arguments, validated at the boundary."""

    query: str = Field(..., min_length=1)
    limit: int = Field(default=settings.search_default_limit, ge=1)
    topic: Optional[str] = None
    min_score: float = Field(
        default=settings.search_default_min_score, ge=0.0, le=1.0)

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value

    @field_validator("limit")
    @classmethod
    def clamp_limit(cls, value: int) -> int:
        return min(value, settings.search_max_limit)

    @field_validator("topic")
    @classmethod
    def empty_topic_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class SearchMatch(BaseModel):
    """A vector match joined with its chunk text."""

    chunk_id: str
    score: float
    text: str
    document_id: Optional[str] = None
    file_path: Optional[str] = None
    topic: Optional[str] = None
    folder: Optional[str] = None
    chunk_index: Optional[int] = None


class TextContent(BaseModel):
    """A single text content block of a tool response."""

    type: Literal["text"] = "text"
    text: str


class SearchResponse(BaseModel):
    """Search tool response."""

    content: List[TextContent]
