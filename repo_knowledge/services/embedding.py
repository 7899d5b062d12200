"""Embedding providers and the batched embedding orchestrator."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import httpx
from openai import AsyncOpenAI

from repo_knowledge.core.config import settings
from repo_knowledge.core.exceptions import EmbeddingError, PipelineFatalError

logger = logging.getLogger(__name__)


class EmbeddingProvider(ABC):
    """Turns one text into one fixed-dimension vector."""

    model: str

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed a single text."""
        ...

    def check_configured(self) -> None:
        """Raise PipelineFatalError when required credentials are missing."""

    async def close(self) -> None:
        """Release network resources."""


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embedding provider backed by the OpenAI embeddings API."""

    def __init__(self, api_key: str = None, model: str = None, dimensions: int = None) -> None:
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.model = model or settings.embedding_model
        self.dimensions = dimensions or settings.embedding_dimensions
        self.client: Optional[AsyncOpenAI] = None

    def check_configured(self) -> None:
        if not self.api_key:
            raise PipelineFatalError("OPENAI_API_KEY must be configured")

    async def embed(self, text: str) -> List[float]:
        """
        Generate an embedding for a single text.

        Args:
            text: Text to embed.

        Returns:
            Embedding vector.
        """
        if self.client is None:
            self.check_configured()
            self.client = AsyncOpenAI(api_key=self.api_key)
        response = await self.client.embeddings.create(
            model=self.model,
            input=[text],
            dimensions=self.dimensions,
        )
        return response.data[0].embedding

    async def close(self) -> None:
        if self.client:
            await self.client.close()


class WorkersAIEmbeddingProvider(EmbeddingProvider):
    """Embedding provider backed by the Workers AI ``run`` REST endpoint."""

    def __init__(
        self,
        account_id: str = None,
        api_token: str = None,
        model: str = None,
        base_url: str = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.account_id = account_id if account_id is not None else settings.workers_ai_account_id
        self.api_token = api_token if api_token is not None else settings.workers_ai_api_token
        self.model = model or settings.workers_ai_model
        self.base_url = (base_url or settings.workers_ai_base_url).rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=settings.embedding_timeout_seconds)

    def check_configured(self) -> None:
        missing = [
            name
            for name, value in (
                ("WORKERS_AI_ACCOUNT_ID", self.account_id),
                ("WORKERS_AI_API_TOKEN", self.api_token),
            )
            if not value
        ]
        if missing:
            raise PipelineFatalError(
                f"Missing required configuration: {', '.join(missing)}")

    async def embed(self, text: str) -> List[float]:
        url = f"{self.base_url}/accounts/{self.account_id}/ai/run/{self.model}"
        response = await self.client.post(
            url,
            headers={"Authorization": f"Bearer {self.api_token}"},
            json={"text": [text]},
        )
        response.raise_for_status()
        payload = response.json()
        result = payload.get("result", payload)
        return result["data"][0]

    async def close(self) -> None:
        await self.client.aclose()


def create_embedding_provider(name: str = None) -> EmbeddingProvider:
    """
    Build the configured embedding provider.

    Args:
        name: "openai" or "workers_ai"; defaults to settings.

    Returns:
        Embedding provider instance.
    """
    name = name or settings.embedding_provider
    if name == "openai":
        return OpenAIEmbeddingProvider()
    if name == "workers_ai":
        return WorkersAIEmbeddingProvider()
    raise PipelineFatalError(f"Unknown embedding provider: {name}")


class EmbeddingService:
    """Embeds many texts through a provider in bounded concurrent groups."""

    def __init__(
        self,
        provider: EmbeddingProvider = None,
        batch_size: int = None,
        batch_delay: float = None,
    ) -> None:
        """
        Initialize the embedding service.

        Args:
            provider: Provider used for every call.
            batch_size: Maximum number of concurrent requests per group.
            batch_delay: Seconds to sleep between groups.
        """
        self.provider = provider or create_embedding_provider()
        self.batch_size = max(1, batch_size or settings.embedding_batch_size)
        self.batch_delay = (
            settings.embedding_batch_delay_seconds if batch_delay is None else batch_delay
        )

    @property
    def model(self) -> str:
        return self.provider.model

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts, preserving input order.

        Args:
            texts: Texts to embed.

        Returns:
            One embedding per input text, in input order.

        Raises:
            EmbeddingError: If any single embedding call fails.
        """
        embeddings: List[List[float]] = []
        for start in range(0, len(texts), self.batch_size):
            if start and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

            group = texts[start:start + self.batch_size]
            tasks = [asyncio.ensure_future(self.provider.embed(text)) for text in group]
            try:
                results = await asyncio.gather(*tasks)
            except Exception as e:
                # No provider call may outlive a failed batch
                for task in tasks:
                    if not task.done():
                        task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise EmbeddingError(
                    f"Failed to generate embeddings: {str(e)}") from e

            embeddings.extend(results)
            logger.debug(
                f"Embedded {start + len(group)}/{len(texts)} texts")

        return embeddings

    async def generate_embedding(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text string to embed.

        Returns:
            Embedding vector.
        """
        try:
            return await self.provider.embed(text)
        except Exception as e:
            raise EmbeddingError(
                f"Failed to generate embedding: {str(e)}") from e
